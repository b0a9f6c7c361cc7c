"""
Data models for the Knowledge Graph module.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Any, List


class EntityLabel(str, Enum):
    """Closed set of entity labels recognised in MOSDAC documentation."""
    SATELLITE = "SATELLITE"
    INSTRUMENT = "INSTRUMENT"
    ORGANIZATION = "ORGANIZATION"
    DATA_PRODUCT = "DATA_PRODUCT"
    MISSION = "MISSION"


def normalize_text(text: str) -> str:
    """Lowercase and collapse whitespace runs to underscores."""
    return re.sub(r'\s+', '_', text.strip().lower())


def canonical_entity_id(text: str, label: EntityLabel) -> str:
    """Deterministic node id for a (label, text) pair."""
    return f"{EntityLabel(label).value.lower()}_{normalize_text(text)}"


def relation_id(source_id: str, relation_type: str, target_id: str) -> str:
    return f"{source_id}-{relation_type}-{target_id}"


@dataclass
class ExtractedEntity:
    """A single entity mention within one document."""
    text: str
    label: EntityLabel
    confidence: float
    start_offset: int
    end_offset: int

    def __post_init__(self):
        self.label = EntityLabel(self.label)

    @property
    def canonical_id(self) -> str:
        return canonical_entity_id(self.text, self.label)


@dataclass
class RelationCandidate:
    """A typed relation proposed between two mentions of the same document."""
    source_text: str
    source_label: EntityLabel
    target_text: str
    target_label: EntityLabel
    type: str
    confidence: float

    def __post_init__(self):
        self.source_label = EntityLabel(self.source_label)
        self.target_label = EntityLabel(self.target_label)

    @property
    def source_id(self) -> str:
        return canonical_entity_id(self.source_text, self.source_label)

    @property
    def target_id(self) -> str:
        return canonical_entity_id(self.target_text, self.target_label)


@dataclass
class GraphEntity:
    """Canonical node folding together every mention of one entity."""
    id: str
    name: str
    type: EntityLabel
    description: str
    frequency: int = 0
    avg_confidence: float = 0.0
    document_ids: List[str] = field(default_factory=list)
    properties: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        self.type = EntityLabel(self.type)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type.value,
            "description": self.description,
            "frequency": self.frequency,
            "avg_confidence": self.avg_confidence,
            "document_ids": list(self.document_ids),
            "properties": dict(self.properties),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GraphEntity":
        return cls(
            id=data["id"],
            name=data["name"],
            type=data["type"],
            description=data.get("description", ""),
            frequency=data.get("frequency", 0),
            avg_confidence=data.get("avg_confidence", 0.0),
            document_ids=list(data.get("document_ids", [])),
            properties=dict(data.get("properties", {})),
        )


@dataclass
class GraphRelation:
    """Directed, evidence-backed edge between two canonical entities."""
    id: str
    source_id: str
    target_id: str
    type: str
    confidence: float
    evidence_document_ids: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "source_id": self.source_id,
            "target_id": self.target_id,
            "type": self.type,
            "confidence": self.confidence,
            "evidence_document_ids": list(self.evidence_document_ids),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GraphRelation":
        return cls(
            id=data["id"],
            source_id=data["source_id"],
            target_id=data["target_id"],
            type=data["type"],
            confidence=data["confidence"],
            evidence_document_ids=list(data.get("evidence_document_ids", [])),
        )


@dataclass
class GraphSnapshot:
    """Read-only copy of the graph at one point in time."""
    entities: List[GraphEntity]
    relations: List[GraphRelation]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entities": [entity.to_dict() for entity in self.entities],
            "relations": [relation.to_dict() for relation in self.relations],
        }
