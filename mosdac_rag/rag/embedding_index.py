"""
Embedding similarity scorer, a drop-in replacement for the lexical scorer.
"""

import logging
import threading
from typing import Dict, Any, Optional

import numpy as np
from sentence_transformers import SentenceTransformer

from .document_index import DocumentScorer
from .models import Document

logger = logging.getLogger(__name__)


class EmbeddingScorer(DocumentScorer):
    """Cosine similarity between sentence embeddings of question and document."""

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        config = config or {}
        self.min_similarity = config.get("min_similarity", 0.3)
        self.embedding_model = SentenceTransformer(
            config.get("embedding_model", "sentence-transformers/all-MiniLM-L6-v2")
        )
        self._document_embeddings: Dict[str, np.ndarray] = {}
        self._lock = threading.Lock()

    def _embed(self, text: str) -> np.ndarray:
        return np.asarray(self.embedding_model.encode(text), dtype=float)

    def _document_embedding(self, document: Document) -> np.ndarray:
        with self._lock:
            cached = self._document_embeddings.get(document.id)
        if cached is None:
            cached = self._embed(f"{document.title}\n{document.content}")
            with self._lock:
                self._document_embeddings[document.id] = cached
        return cached

    def score(self, question: str, document: Document) -> float:
        """Cosine similarity, or 0.0 when below ``min_similarity``."""
        question_embedding = self._embed(question)
        document_embedding = self._document_embedding(document)

        norm = np.linalg.norm(question_embedding) * np.linalg.norm(document_embedding)
        if norm == 0:
            return 0.0

        similarity = float(np.dot(question_embedding, document_embedding) / norm)
        return similarity if similarity >= self.min_similarity else 0.0
