"""
Read-only query view over the graph store for inspection tooling.
"""

import logging
from typing import Dict, Any, List, Optional

import networkx as nx

from .graph_store import GraphStore
from .models import GraphEntity, GraphRelation, normalize_text

logger = logging.getLogger(__name__)


class KnowledgeGraph:
    """Search, neighbourhood and path queries over MOSDAC entities."""

    def __init__(self, graph_store: GraphStore, config: Optional[Dict[str, Any]] = None):
        config = config or {}
        self.graph_store = graph_store
        self.max_depth = config.get("max_depth", 3)
        self.max_paths = config.get("max_paths", 5)

    def to_networkx(self) -> nx.DiGraph:
        """Build a directed graph with entity attributes on nodes and relation attributes on edges."""
        snapshot = self.graph_store.snapshot()
        G = nx.DiGraph()

        for entity in snapshot.entities:
            G.add_node(entity.id, name=entity.name, type=entity.type.value, frequency=entity.frequency)

        # Parallel relation types between the same pair keep the most confident one
        for rel in sorted(snapshot.relations, key=lambda r: r.confidence):
            G.add_edge(rel.source_id, rel.target_id, id=rel.id, type=rel.type, confidence=rel.confidence)

        return G

    def search(self, term: str) -> List[GraphEntity]:
        """Entities whose name or description contains ``term``."""
        term_lower = term.lower()
        return [
            entity for entity in self.graph_store.get_all_entities()
            if term_lower in entity.name.lower() or term_lower in entity.description.lower()
        ]

    def resolve(self, name: str) -> Optional[GraphEntity]:
        """Find the entity for a name, preferring the most frequent on label ambiguity."""
        normalized = normalize_text(name)
        matches = [
            entity for entity in self.graph_store.get_all_entities()
            if normalize_text(entity.name) == normalized or entity.id == name
        ]
        if not matches:
            return None
        return max(matches, key=lambda e: e.frequency)

    def related_entities(self, name: str) -> List[Dict[str, Any]]:
        """
        Neighbours of an entity with the connecting relation.

        Returns:
            Dicts with ``entity``, ``relation`` and ``direction`` ("out"/"in"),
            most confident relations first
        """
        entity = self.resolve(name)
        if entity is None:
            return []

        related = []
        for rel in self.graph_store.get_relationships_by_entity(entity.id):
            outgoing = rel.source_id == entity.id
            other = self.graph_store.get_entity(rel.target_id if outgoing else rel.source_id)
            if other is None:
                continue
            related.append({
                "entity": other,
                "relation": rel,
                "direction": "out" if outgoing else "in"
            })

        related.sort(key=lambda item: item["relation"].confidence, reverse=True)
        return related

    def find_paths(self, source_name: str, target_name: str) -> List[List[str]]:
        """Simple paths between two entities, ignoring edge direction."""
        source = self.resolve(source_name)
        target = self.resolve(target_name)
        if source is None or target is None or source.id == target.id:
            return []

        G = self.to_networkx().to_undirected()
        try:
            paths = nx.all_simple_paths(G, source.id, target.id, cutoff=self.max_depth)
            return [path for _, path in zip(range(self.max_paths), paths)]
        except nx.NodeNotFound:
            return []

    def describe_path(self, path: List[str]) -> List[GraphRelation]:
        """Relations traversed along a path returned by ``find_paths``."""
        G = self.to_networkx()
        relations = []
        for a, b in zip(path, path[1:]):
            edge = G.get_edge_data(a, b) or G.get_edge_data(b, a)
            if edge:
                rel = self.graph_store.get_relation(edge["id"])
                if rel:
                    relations.append(rel)
        return relations

    def get_stats(self) -> Dict[str, Any]:
        """Get knowledge graph statistics."""
        stats = self.graph_store.get_stats()
        G = self.to_networkx()
        stats["connected_components"] = nx.number_weakly_connected_components(G) if len(G) else 0
        degrees = sorted(G.degree(), key=lambda item: item[1], reverse=True)
        stats["most_connected"] = [
            G.nodes[node_id]["name"] for node_id, degree in degrees[:5] if degree > 0
        ]
        return stats
