"""
Document loading, processing and ingestion into the knowledge graph.
"""

from .document_processor import DocumentProcessor, ProcessedDocument
from .ingestion_pipeline import IngestionPipeline, IngestionResult

__all__ = ["DocumentProcessor", "ProcessedDocument", "IngestionPipeline", "IngestionResult"]
