"""
Graph Store holding the canonical entities and relations of the knowledge graph.
"""

import copy
import json
import logging
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ..rag.models import Document
from .domain_knowledge import DOMAIN_KNOWLEDGE_EVIDENCE, SEED_RELATIONS, describe_entity
from .models import (
    EntityLabel,
    ExtractedEntity,
    GraphEntity,
    GraphRelation,
    GraphSnapshot,
    RelationCandidate,
    canonical_entity_id,
    relation_id,
)

logger = logging.getLogger(__name__)


class GraphStore:
    """
    Mutable store of canonical entities and relations.

    Merge, seeding, loading and clearing are the only mutations. They are
    serialized by an internal lock so ingestion workers can share one store.
    """

    def __init__(self, storage_path: Optional[Union[str, Path]] = None, confidence_increment: float = 0.1):
        self.confidence_increment = confidence_increment
        self.storage_path = Path(storage_path) if storage_path else None

        self.entities: List[GraphEntity] = []
        self.relations: List[GraphRelation] = []
        self.entity_index: Dict[str, int] = {}  # id -> index mapping
        self.relation_index: Dict[str, int] = {}  # id -> index mapping
        self._lock = threading.RLock()

        if self.storage_path:
            self.storage_path.mkdir(parents=True, exist_ok=True)
            self.entities_file = self.storage_path / "entities.json"
            self.relations_file = self.storage_path / "relations.json"
            self._load_data()

    def _load_data(self):
        """Load entities and relations from persistent storage."""
        data = {"entities": [], "relations": []}
        try:
            if self.entities_file.exists():
                with open(self.entities_file, 'r') as f:
                    data["entities"] = json.load(f)
            else:
                logger.info("No existing entities found")

            if self.relations_file.exists():
                with open(self.relations_file, 'r') as f:
                    data["relations"] = json.load(f)
            else:
                logger.info("No existing relations found")

            self.load_snapshot(data)
            logger.info(f"Loaded {len(self.entities)} entities and {len(self.relations)} relations from storage")

        except (OSError, ValueError, KeyError) as e:
            logger.error(f"Failed to load graph data: {e}")
            self._reset()

    def save(self):
        """Persist entities and relations to ``storage_path``."""
        if not self.storage_path:
            return
        with self._lock:
            with open(self.entities_file, 'w') as f:
                json.dump([entity.to_dict() for entity in self.entities], f, indent=2)
            with open(self.relations_file, 'w') as f:
                json.dump([rel.to_dict() for rel in self.relations], f, indent=2)
        logger.debug(f"Saved {len(self.entities)} entities and {len(self.relations)} relations to storage")

    def _reset(self):
        self.entities = []
        self.relations = []
        self.entity_index = {}
        self.relation_index = {}

    def _insert_entity(self, entity: GraphEntity):
        self.entities.append(entity)
        self.entity_index[entity.id] = len(self.entities) - 1

    def _insert_relation(self, relation: GraphRelation):
        self.relations.append(relation)
        self.relation_index[relation.id] = len(self.relations) - 1

    def merge(self, candidates: List[RelationCandidate], entities: List[ExtractedEntity], document: Document):
        """
        Fold one document's mentions and relation candidates into the graph.

        Entities are merged first so every candidate finds both endpoints.
        Re-merging the same (label, text) always updates the same node.
        """
        with self._lock:
            for mention in entities:
                self._merge_entity(mention, document.id)
            for candidate in candidates:
                self._merge_relation(candidate, document.id)

    def _merge_entity(self, mention: ExtractedEntity, document_id: str):
        entity_id = mention.canonical_id

        if entity_id in self.entity_index:
            entity = self.entities[self.entity_index[entity_id]]
            total = entity.avg_confidence * entity.frequency + mention.confidence
            entity.frequency += 1
            entity.avg_confidence = total / entity.frequency
            entity.document_ids.append(document_id)
        else:
            self._insert_entity(GraphEntity(
                id=entity_id,
                name=mention.text,
                type=mention.label,
                description=describe_entity(mention.text, mention.label),
                frequency=1,
                avg_confidence=mention.confidence,
                document_ids=[document_id],
                properties={"first_seen": document_id}
            ))

    def _merge_relation(self, candidate: RelationCandidate, document_id: str):
        source_id, target_id = candidate.source_id, candidate.target_id
        if source_id not in self.entity_index or target_id not in self.entity_index:
            logger.warning(f"Skipping relation {candidate.type} between unknown entities {source_id}, {target_id}")
            return

        rel_id = relation_id(source_id, candidate.type, target_id)
        if rel_id in self.relation_index:
            relation = self.relations[self.relation_index[rel_id]]
            relation.evidence_document_ids.append(document_id)
            relation.confidence = round(min(1.0, relation.confidence + self.confidence_increment), 6)
        else:
            self._insert_relation(GraphRelation(
                id=rel_id,
                source_id=source_id,
                target_id=target_id,
                type=candidate.type,
                confidence=min(1.0, candidate.confidence),
                evidence_document_ids=[document_id]
            ))

    def seed_domain_knowledge(self) -> int:
        """
        Fill gaps with known-true relations.

        Existing relations with the same id are left untouched. Endpoints not
        yet mentioned by any document are created with ``frequency == 0``.

        Returns:
            Number of relations added
        """
        added = 0
        with self._lock:
            for seed in SEED_RELATIONS:
                source_id = self._ensure_seed_entity(seed.source_name, seed.source_label)
                target_id = self._ensure_seed_entity(seed.target_name, seed.target_label)
                rel_id = relation_id(source_id, seed.type, target_id)
                if rel_id in self.relation_index:
                    continue
                self._insert_relation(GraphRelation(
                    id=rel_id,
                    source_id=source_id,
                    target_id=target_id,
                    type=seed.type,
                    confidence=1.0,
                    evidence_document_ids=[DOMAIN_KNOWLEDGE_EVIDENCE]
                ))
                added += 1

        logger.info(f"Seeded {added} domain knowledge relations")
        return added

    def _ensure_seed_entity(self, name: str, label: EntityLabel) -> str:
        entity_id = canonical_entity_id(name, label)
        if entity_id not in self.entity_index:
            self._insert_entity(GraphEntity(
                id=entity_id,
                name=name,
                type=label,
                description=describe_entity(name, label),
                properties={"seeded": True}
            ))
        return entity_id

    def get_entity(self, entity_id: str) -> Optional[GraphEntity]:
        """Get an entity by ID."""
        if entity_id in self.entity_index:
            return copy.deepcopy(self.entities[self.entity_index[entity_id]])
        return None

    def get_relation(self, rel_id: str) -> Optional[GraphRelation]:
        """Get a relation by ID."""
        if rel_id in self.relation_index:
            return copy.deepcopy(self.relations[self.relation_index[rel_id]])
        return None

    def get_all_entities(self) -> List[GraphEntity]:
        return self.snapshot().entities

    def get_all_relationships(self) -> List[GraphRelation]:
        return self.snapshot().relations

    def get_relationships_by_entity(self, entity_id: str) -> List[GraphRelation]:
        """Get all relations involving a specific entity."""
        return [
            rel for rel in self.get_all_relationships()
            if rel.source_id == entity_id or rel.target_id == entity_id
        ]

    def snapshot(self) -> GraphSnapshot:
        """Deep copy of the current entities and relations."""
        with self._lock:
            return GraphSnapshot(
                entities=copy.deepcopy(self.entities),
                relations=copy.deepcopy(self.relations)
            )

    def load_snapshot(self, snapshot: Union[GraphSnapshot, Dict[str, Any]]):
        """Replace the store contents with a snapshot or its dict form."""
        if isinstance(snapshot, dict):
            snapshot = GraphSnapshot(
                entities=[GraphEntity.from_dict(e) for e in snapshot.get("entities", [])],
                relations=[GraphRelation.from_dict(r) for r in snapshot.get("relations", [])]
            )
        with self._lock:
            self._reset()
            for entity in copy.deepcopy(snapshot.entities):
                self._insert_entity(entity)
            for relation in copy.deepcopy(snapshot.relations):
                if relation.source_id in self.entity_index and relation.target_id in self.entity_index:
                    self._insert_relation(relation)
                else:
                    logger.warning(f"Dropping relation {relation.id} with a missing endpoint")

    def export_graph(self, filepath: Optional[str] = None) -> Dict[str, Any]:
        """
        Export the graph as ``{nodes, links}`` for visualization tooling.

        Links repeat their endpoints under ``source``/``target`` so force
        layouts can consume the document as is.
        """
        snapshot = self.snapshot()
        graph_data = {
            "nodes": [entity.to_dict() for entity in snapshot.entities],
            "links": [
                dict(rel.to_dict(), source=rel.source_id, target=rel.target_id)
                for rel in snapshot.relations
            ]
        }

        if filepath:
            Path(filepath).parent.mkdir(parents=True, exist_ok=True)
            with open(filepath, 'w') as f:
                json.dump(graph_data, f, indent=2)
            logger.info(f"Exported graph with {len(graph_data['nodes'])} nodes and {len(graph_data['links'])} links to {filepath}")

        return graph_data

    def get_stats(self) -> Dict[str, Any]:
        """Get statistics about the graph store."""
        snapshot = self.snapshot()
        entity_types = sorted(set(entity.type.value for entity in snapshot.entities))
        relation_types = sorted(set(rel.type for rel in snapshot.relations))

        return {
            "total_entities": len(snapshot.entities),
            "total_relationships": len(snapshot.relations),
            "entity_types": entity_types,
            "relationship_types": relation_types
        }

    def clear(self):
        """Clear all entities and relations from the store."""
        with self._lock:
            self._reset()
        self.save()
        logger.info("Cleared all entities and relations from store")
