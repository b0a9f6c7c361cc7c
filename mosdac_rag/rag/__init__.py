"""
Retrieval and answer synthesis over the MOSDAC document corpus.
"""

from .models import Document, ScoredDocument, Source, ResponseEntity, RAGResponse

__all__ = ["Document", "ScoredDocument", "Source", "ResponseEntity", "RAGResponse"]
