"""
Query engine tying ingestion, retrieval and answer synthesis together.
"""

import logging
from pathlib import Path
from typing import Dict, Any, List, Optional

from .exceptions import InitializationError
from .ingestion.document_processor import DocumentProcessor
from .ingestion.ingestion_pipeline import IngestionPipeline, IngestionResult
from .kg.entity_extractor import EntityExtractor, PatternEntityExtractor
from .kg.graph_store import GraphStore
from .kg.knowledge_graph import KnowledgeGraph
from .kg.models import GraphSnapshot
from .kg.relation_inferencer import RelationInferencer
from .models.llm_manager import LLMManager
from .rag.answer_synthesizer import AnswerSynthesizer
from .rag.corpus import load_seed_corpus
from .rag.document_index import DocumentIndex, DocumentScorer, LexicalScorer
from .rag.models import Document, RAGResponse

logger = logging.getLogger(__name__)

RETRIEVAL_FAILURE_ANSWER = (
    "I apologize, but I couldn't find relevant information to answer your question. "
    "Please try rephrasing or ask about MOSDAC satellites, data products, or access policies."
)


class QueryEngine:
    """
    Question answering over the MOSDAC corpus.

    ``initialize`` builds the corpus and its knowledge graph; only then can
    questions be asked. Every question yields a RAGResponse.
    """

    def __init__(
        self,
        config: Dict[str, Any],
        llm_manager: Optional[LLMManager] = None,
        graph_store: Optional[GraphStore] = None,
        extractor: Optional[EntityExtractor] = None,
        scorer: Optional[DocumentScorer] = None
    ):
        self.config = config
        graph_config = config.get("graph", {})
        ingestion_config = config.get("ingestion", {})

        self.llm_manager = llm_manager or LLMManager(config)
        self.graph_store = graph_store or GraphStore(
            graph_config.get("storage_path"),
            confidence_increment=graph_config.get("confidence_increment", 0.1)
        )
        self.extractor = extractor or PatternEntityExtractor()
        self.processor = DocumentProcessor(ingestion_config, extractor=self.extractor)
        self.ingestion = IngestionPipeline(
            ingestion_config,
            self.graph_store,
            processor=self.processor,
            inferencer=RelationInferencer(config.get("extraction", {}))
        )
        self.knowledge_graph = KnowledgeGraph(self.graph_store, graph_config)
        self.synthesizer = AnswerSynthesizer(self.llm_manager, self.extractor, config.get("rag", {}))

        self.seed_domain_knowledge = graph_config.get("seed_domain_knowledge", True)
        self._scorer = scorer
        self.index: Optional[DocumentIndex] = None
        self.corpus: List[Document] = []
        self.is_initialized = False

    def initialize(self, documents: Optional[List[Document]] = None, rebuild: bool = True) -> List[IngestionResult]:
        """
        Build the corpus and its knowledge graph.

        Args:
            documents: Corpus to serve; defaults to the built-in documents
                plus any files under ``ingestion.documents_path``
            rebuild: Clear the graph first so the same corpus always yields
                the same graph

        Returns:
            Ingestion result per document
        """
        corpus = list(documents) if documents is not None else self.default_corpus()
        logger.info(f"Initializing query engine with {len(corpus)} documents")

        if rebuild:
            self.graph_store.clear()
        results = self.ingestion.ingest(corpus, seed_domain_knowledge=self.seed_domain_knowledge)

        self.corpus = corpus
        index_config = self.config.get("index", {})
        self.index = DocumentIndex(self._build_scorer(index_config), top_k=index_config.get("top_k", 3))
        self.is_initialized = True

        stats = self.graph_store.get_stats()
        logger.info(
            f"Query engine ready: {len(corpus)} documents, {stats['total_entities']} entities, "
            f"{stats['total_relationships']} relationships"
        )
        return results

    def default_corpus(self) -> List[Document]:
        corpus = load_seed_corpus()
        documents_path = self.config.get("ingestion", {}).get("documents_path")
        if documents_path and Path(documents_path).exists():
            known = {document.id for document in corpus}
            for document in self.processor.load_documents(documents_path):
                if document.id not in known:
                    corpus.append(document)
                    known.add(document.id)
        return corpus

    def _build_scorer(self, index_config: Dict[str, Any]) -> DocumentScorer:
        if self._scorer is not None:
            return self._scorer

        if index_config.get("scorer", "lexical") == "embedding":
            # sentence-transformers is an optional extra
            from .rag.embedding_index import EmbeddingScorer
            return EmbeddingScorer(index_config)

        scorer = LexicalScorer(self.processor)
        for document in self.corpus:
            processed = self.ingestion.processed.get(document.id)
            if processed is not None:
                scorer.prime(document, processed.keywords, [entity.text for entity in processed.entities])
        return scorer

    async def ask_question(self, question: str) -> RAGResponse:
        """
        Answer a question about the corpus.

        Raises:
            InitializationError: if ``initialize`` has not run
        """
        if not self.is_initialized:
            raise InitializationError("Query engine not initialized, call initialize() first")

        logger.info(f"Processing question: {question}")

        try:
            scored_docs = self.index.rank(question, self.corpus)
        except Exception as e:
            logger.error(f"Document retrieval failed: {e}")
            return RAGResponse(answer=RETRIEVAL_FAILURE_ANSWER, metadata={"error": str(e)})

        logger.debug(f"Retrieved {len(scored_docs)} documents for question")
        return await self.synthesizer.answer(question, scored_docs)

    def get_knowledge_base(self) -> List[Document]:
        """Documents currently served, in corpus order."""
        return list(self.corpus)

    def get_graph_snapshot(self) -> GraphSnapshot:
        return self.graph_store.snapshot()

    def export_graph(self, filepath: Optional[str] = None) -> Dict[str, Any]:
        return self.graph_store.export_graph(filepath)

    def get_stats(self) -> Dict[str, Any]:
        """Get statistics across the graph, ingestion and completion providers."""
        return {
            "documents": len(self.corpus),
            "graph": self.knowledge_graph.get_stats(),
            "ingestion": self.ingestion.get_processing_stats(),
            "providers": self.llm_manager.get_available_providers()
        }
