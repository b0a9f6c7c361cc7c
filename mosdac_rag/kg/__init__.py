"""
Knowledge graph construction: entity extraction, relation inference and the graph store.
"""

from .entity_extractor import EntityExtractor, PatternEntityExtractor
from .graph_store import GraphStore
from .knowledge_graph import KnowledgeGraph
from .models import (
    EntityLabel,
    ExtractedEntity,
    GraphEntity,
    GraphRelation,
    GraphSnapshot,
    RelationCandidate,
)
from .relation_inferencer import RelationInferencer

__all__ = [
    "EntityExtractor",
    "PatternEntityExtractor",
    "RelationInferencer",
    "GraphStore",
    "KnowledgeGraph",
    "EntityLabel",
    "ExtractedEntity",
    "RelationCandidate",
    "GraphEntity",
    "GraphRelation",
    "GraphSnapshot",
]
