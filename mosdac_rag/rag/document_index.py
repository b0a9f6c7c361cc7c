"""
Document relevance scoring and top-K ranking.
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Set, Tuple

from ..ingestion.document_processor import DocumentProcessor
from .models import Document, ScoredDocument

logger = logging.getLogger(__name__)

TOKEN_PUNCTUATION = "?!.,;:\"'()[]{}"


def tokenize_question(question: str) -> List[str]:
    """Lowercased whitespace tokens with surrounding punctuation removed."""
    tokens = (token.strip(TOKEN_PUNCTUATION) for token in question.lower().split())
    return [token for token in tokens if token]


class DocumentScorer(ABC):
    """Scores one document against a question; zero or less means irrelevant."""

    @abstractmethod
    def score(self, question: str, document: Document) -> float:
        pass


class LexicalScorer(DocumentScorer):
    """
    Heuristic keyword/entity overlap scorer.

    - +2 when the title contains the first question token
    - for each question token longer than three characters: +1 if it occurs
      in the body, +1.5 if it is a document keyword, +2 if it is one of the
      document's entity mentions
    """

    TITLE_WEIGHT = 2.0
    BODY_WEIGHT = 1.0
    KEYWORD_WEIGHT = 1.5
    ENTITY_WEIGHT = 2.0

    def __init__(self, processor: Optional[DocumentProcessor] = None):
        self.processor = processor or DocumentProcessor()
        self._features: Dict[str, Tuple[Set[str], Set[str]]] = {}
        self._lock = threading.Lock()

    def features(self, document: Document) -> Tuple[Set[str], Set[str]]:
        """Keyword set and lowercased entity-mention set, computed once per document id."""
        with self._lock:
            cached = self._features.get(document.id)
        if cached is not None:
            return cached

        if self.processor.validate_content(document.content):
            keywords = set(self.processor.extract_keywords(document.content))
            entity_texts = {e.text.lower() for e in self.processor.extractor.extract(document.content)}
        else:
            logger.debug(f"Document {document.id} has no indexable content")
            keywords, entity_texts = set(), set()

        with self._lock:
            self._features[document.id] = (keywords, entity_texts)
        return keywords, entity_texts

    def prime(self, document: Document, keywords: List[str], entity_texts: List[str]):
        """Reuse features already computed during ingestion."""
        with self._lock:
            self._features[document.id] = (set(keywords), {text.lower() for text in entity_texts})

    def score(self, question: str, document: Document) -> float:
        tokens = tokenize_question(question)
        if not tokens:
            return 0.0

        keywords, entity_texts = self.features(document)
        title = (document.title or "").lower()
        body = document.content.lower() if isinstance(document.content, str) else ""

        score = 0.0
        if tokens[0] in title:
            score += self.TITLE_WEIGHT

        for token in tokens:
            if len(token) <= 3:
                continue
            if token in body:
                score += self.BODY_WEIGHT
            if token in keywords:
                score += self.KEYWORD_WEIGHT
            if token in entity_texts:
                score += self.ENTITY_WEIGHT

        return score


class DocumentIndex:
    """Ranks corpus documents for a question with a pluggable scorer."""

    def __init__(self, scorer: Optional[DocumentScorer] = None, top_k: int = 3):
        self.scorer = scorer or LexicalScorer()
        self.top_k = top_k

    def rank(self, question: str, corpus: List[Document]) -> List[ScoredDocument]:
        """
        Score every document and return the top-K with a positive score.

        Ties keep corpus order, so identical input always ranks identically.
        """
        scored = []
        for document in corpus:
            score = self.scorer.score(question, document)
            if score > 0:
                scored.append(ScoredDocument(document=document, score=score))

        scored.sort(key=lambda item: item.score, reverse=True)
        top = scored[:self.top_k]

        logger.debug(f"Ranked {len(corpus)} documents, {len(scored)} relevant, returning {len(top)}")
        return top
