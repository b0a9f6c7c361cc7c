"""
MOSDAC HelpBot command line interface.
"""

import asyncio
import logging
from pathlib import Path
from typing import List, Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from .config import DEFAULT_CONFIG_PATH, load_config, load_env_file, setup_logging
from .ingestion.ingestion_pipeline import IngestionResult
from .query_engine import QueryEngine
from .rag.corpus import load_seed_corpus
from .rag.models import RAGResponse

logger = logging.getLogger(__name__)


class HelpBot:
    """Console front end over the query engine."""

    def __init__(self, config: dict, console: Optional[Console] = None):
        self.config = config
        self.console = console or Console()
        self.engine = QueryEngine(config)
        self.debug_mode = config.get("debug", {}).get("enabled", False)

    def initialize(self, documents=None) -> List[IngestionResult]:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=self.console,
            transient=True
        ) as progress:
            task = progress.add_task("Building knowledge graph...", total=None)
            results = self.engine.initialize(documents)
            progress.update(task, description="Knowledge graph ready")
        return results

    async def ask(self, question: str) -> RAGResponse:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=self.console,
            transient=True
        ) as progress:
            progress.add_task("Searching MOSDAC documentation...", total=None)
            return await self.engine.ask_question(question)

    def display_response(self, response: RAGResponse, debug: bool = False):
        """Display an answer with its sources and entities."""
        self.console.print(Panel(
            response.answer,
            title="[bold blue]Answer[/bold blue]",
            border_style="blue"
        ))

        if response.sources:
            sources_table = Table(title="Sources")
            sources_table.add_column("Title", style="cyan")
            sources_table.add_column("URL", style="blue")
            sources_table.add_column("Confidence", style="green")
            for source in response.sources:
                sources_table.add_row(source.title, source.url, f"{source.confidence:.2f}")
            self.console.print(sources_table)

        if response.entities:
            entities_table = Table(title="Entities")
            entities_table.add_column("Text", style="cyan")
            entities_table.add_column("Label", style="magenta")
            entities_table.add_column("Confidence", style="white")
            for entity in response.entities:
                entities_table.add_row(entity.text, entity.label, f"{entity.confidence:.2f}")
            self.console.print(entities_table)

        if debug and response.metadata:
            debug_table = Table(title="Debug Information")
            debug_table.add_column("Key", style="cyan")
            debug_table.add_column("Value", style="white")
            for key, value in response.metadata.items():
                debug_table.add_row(key, str(value))
            self.console.print(debug_table)

    def display_ingestion_results(self, results: List[IngestionResult]):
        """Display ingestion results in a formatted table."""
        if not results:
            self.console.print("[yellow]No documents ingested.[/yellow]")
            return

        table = Table(title="Ingestion Results")
        table.add_column("Document", style="cyan")
        table.add_column("Status", style="green")
        table.add_column("Entities", style="blue")
        table.add_column("Relations", style="magenta")
        table.add_column("Time (s)", style="white")

        for result in results:
            table.add_row(
                result.document_id,
                "✅ Success" if result.success else "❌ Failed",
                str(result.entities_found),
                str(result.relations_inferred),
                f"{result.processing_time:.2f}"
            )
        self.console.print(table)

        succeeded = sum(1 for result in results if result.success)
        summary = Table(title="Summary")
        summary.add_column("Metric", style="cyan")
        summary.add_column("Value", style="white")
        summary.add_row("Total Documents", str(len(results)))
        summary.add_row("Successful", str(succeeded))
        summary.add_row("Failed", str(len(results) - succeeded))
        summary.add_row("Total Entity Mentions", str(sum(result.entities_found for result in results)))
        summary.add_row("Total Relation Candidates", str(sum(result.relations_inferred for result in results)))
        self.console.print(summary)

        errors = [f"{result.document_id}: {error}" for result in results for error in result.errors]
        if errors:
            self.console.print("\n[red]Errors:[/red]")
            for error in errors:
                self.console.print(f"  • {error}")

    def show_stats(self):
        """Display system statistics."""
        stats = self.engine.get_stats()
        graph_stats = stats["graph"]

        kg_table = Table(title="Knowledge Graph Statistics")
        kg_table.add_column("Metric", style="cyan")
        kg_table.add_column("Value", style="white")
        kg_table.add_row("Total Entities", str(graph_stats["total_entities"]))
        kg_table.add_row("Total Relationships", str(graph_stats["total_relationships"]))
        kg_table.add_row("Entity Types", ", ".join(graph_stats["entity_types"]))
        kg_table.add_row("Relationship Types", ", ".join(graph_stats["relationship_types"]))
        kg_table.add_row("Connected Components", str(graph_stats["connected_components"]))
        kg_table.add_row("Most Connected", ", ".join(graph_stats["most_connected"]))

        system_table = Table(title="System Statistics")
        system_table.add_column("Metric", style="cyan")
        system_table.add_column("Value", style="white")
        system_table.add_row("Documents", str(stats["documents"]))
        system_table.add_row("Documents Processed", str(stats["ingestion"]["documents_processed"]))
        system_table.add_row("Entity Mentions", str(stats["ingestion"]["total_mentions"]))
        system_table.add_row("Completion Providers", ", ".join(stats["providers"]) or "none (rule-based fallback)")

        self.console.print(kg_table)
        self.console.print(system_table)

    def show_related(self, name: str):
        related = self.engine.knowledge_graph.related_entities(name)
        if not related:
            self.console.print(f"[yellow]No related entities found for {name}[/yellow]")
            return

        table = Table(title=f"Entities related to {name}")
        table.add_column("Relation", style="magenta")
        table.add_column("Entity", style="cyan")
        table.add_column("Type", style="blue")
        table.add_column("Confidence", style="white")
        for item in related:
            relation = item["relation"]
            arrow = f"{relation.type} →" if item["direction"] == "out" else f"← {relation.type}"
            table.add_row(arrow, item["entity"].name, item["entity"].type.value, f"{relation.confidence:.2f}")
        self.console.print(table)

    async def interactive_mode(self):
        """Run the help bot in interactive mode."""
        self.console.print(Panel(
            "[bold blue]MOSDAC HelpBot[/bold blue]\n"
            "Ask questions about ISRO satellites, MOSDAC data products and access policies!\n"
            "Type 'quit' to exit, 'stats' for system statistics, 'help' for commands.",
            border_style="blue"
        ))

        while True:
            try:
                question = click.prompt("\nQuestion")

                if question.lower() in ['quit', 'exit', 'q']:
                    break
                elif question.lower() == 'stats':
                    self.show_stats()
                    continue
                elif question.lower() == 'help':
                    self.console.print(
                        "[bold]Available Commands:[/bold]\n"
                        "  • Ask any question about MOSDAC missions, instruments or data\n"
                        "  • 'stats' - Show system statistics\n"
                        "  • 'help' - Show this help message\n"
                        "  • 'quit' - Exit"
                    )
                    continue
                elif not question.strip():
                    continue

                response = await self.ask(question)
                self.display_response(response, debug=self.debug_mode)

            except (KeyboardInterrupt, EOFError, click.Abort):
                self.console.print("\n[yellow]Exiting...[/yellow]")
                break


@click.group()
@click.option('--config', '-c', default=DEFAULT_CONFIG_PATH, help='Configuration file path')
@click.option('--debug', '-d', is_flag=True, help='Enable debug mode')
@click.pass_context
def cli(ctx, config, debug):
    """MOSDAC HelpBot CLI."""
    load_env_file()

    ctx.ensure_object(dict)
    ctx.obj['config'] = load_config(config)
    ctx.obj['debug'] = debug

    if debug:
        ctx.obj['config']['debug']['enabled'] = True
        ctx.obj['config']['logging']['level'] = 'DEBUG'

    setup_logging(ctx.obj['config'])


@cli.command()
@click.argument('question')
@click.option('--provider', '-p', help='Completion provider to use')
@click.pass_context
def query(ctx, question, provider):
    """Ask a single question."""
    config = ctx.obj['config']
    if provider:
        config['rag']['provider'] = provider

    bot = HelpBot(config)
    bot.initialize()
    response = asyncio.run(bot.ask(question))
    bot.display_response(response, debug=ctx.obj['debug'])


@cli.command()
@click.pass_context
def interactive(ctx):
    """Start interactive question mode."""
    bot = HelpBot(ctx.obj['config'])
    bot.initialize()
    asyncio.run(bot.interactive_mode())


@cli.command()
@click.argument('data_path', type=click.Path(exists=True))
@click.option('--no-seed-corpus', is_flag=True, help='Ingest only the given documents')
@click.pass_context
def ingest(ctx, data_path, no_seed_corpus):
    """Build the knowledge graph from documents under DATA_PATH."""
    bot = HelpBot(ctx.obj['config'])
    documents = [] if no_seed_corpus else load_seed_corpus()
    loaded = bot.engine.processor.load_documents(data_path)
    bot.console.print(f"[yellow]Loaded {len(loaded)} documents from {data_path}[/yellow]")

    results = bot.initialize(documents + loaded)
    bot.display_ingestion_results(results)


@cli.command()
@click.pass_context
def stats(ctx):
    """Show knowledge graph and system statistics."""
    bot = HelpBot(ctx.obj['config'])
    bot.initialize()
    bot.show_stats()


@cli.command(name='export-graph')
@click.argument('output_path', type=click.Path())
@click.pass_context
def export_graph(ctx, output_path):
    """Export the knowledge graph as {nodes, links} JSON."""
    bot = HelpBot(ctx.obj['config'])
    bot.initialize()
    graph_data = bot.engine.export_graph(output_path)
    bot.console.print(
        f"[green]✅ Exported {len(graph_data['nodes'])} nodes and "
        f"{len(graph_data['links'])} links to {Path(output_path)}[/green]"
    )


@cli.command()
@click.argument('name')
@click.pass_context
def related(ctx, name):
    """Show entities related to NAME in the knowledge graph."""
    bot = HelpBot(ctx.obj['config'])
    bot.initialize()
    bot.show_related(name)


if __name__ == "__main__":
    cli()
