#!/usr/bin/env python3
"""
MOSDAC HelpBot - Knowledge Graph + RAG question answering
"""

from mosdac_rag.cli import cli


if __name__ == "__main__":
    cli()
