"""
Data models for the RAG module.
"""

from dataclasses import dataclass, field
from typing import Dict, Any, List


@dataclass(frozen=True)
class Document:
    """A corpus document. Content is plain text and never rewritten."""
    id: str
    url: str
    title: str
    content: str
    category: str = "general"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Document":
        url = data.get("url", "")
        return cls(
            id=str(data.get("id") or url or data["title"]),
            url=url,
            title=data["title"],
            content=data.get("content", ""),
            category=data.get("category", "general"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "url": self.url,
            "title": self.title,
            "content": self.content,
            "category": self.category,
        }


@dataclass
class ScoredDocument:
    """A document with its relevance score for one question."""
    document: Document
    score: float


@dataclass
class Source:
    """Citation attached to an answer."""
    title: str
    url: str
    snippet: str
    confidence: float


@dataclass
class ResponseEntity:
    """Entity surfaced alongside an answer."""
    text: str
    label: str
    confidence: float


@dataclass
class RAGResponse:
    """Answer returned for every question."""
    answer: str
    sources: List[Source] = field(default_factory=list)
    entities: List[ResponseEntity] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)
