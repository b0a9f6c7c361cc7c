"""
Relation inference between co-occurring entity mentions.

Relations are proposed from three layers: a proximity window over mention
offsets, a directed lookup table keyed on the label pair, and keyword boosts
found in the text surrounding the pair.
"""

import logging
from typing import Dict, Any, List, Optional, Tuple

from ..rag.models import Document
from .models import EntityLabel, ExtractedEntity, RelationCandidate

logger = logging.getLogger(__name__)

DEFAULT_RELATION_TYPE = "related_to"
DEFAULT_RELATION_CONFIDENCE = 0.6

RELATION_TABLE: Dict[Tuple[EntityLabel, EntityLabel], Tuple[str, float]] = {
    (EntityLabel.SATELLITE, EntityLabel.INSTRUMENT): ("carries", 0.8),
    (EntityLabel.INSTRUMENT, EntityLabel.SATELLITE): ("carried_by", 0.8),
    (EntityLabel.INSTRUMENT, EntityLabel.DATA_PRODUCT): ("measures", 0.7),
    (EntityLabel.DATA_PRODUCT, EntityLabel.INSTRUMENT): ("measured_by", 0.7),
    (EntityLabel.ORGANIZATION, EntityLabel.SATELLITE): ("operates", 0.9),
    (EntityLabel.SATELLITE, EntityLabel.ORGANIZATION): ("operated_by", 0.9),
    (EntityLabel.MISSION, EntityLabel.DATA_PRODUCT): ("provides", 0.7),
    (EntityLabel.DATA_PRODUCT, EntityLabel.MISSION): ("provided_by", 0.7),
}


class RelationInferencer:
    """Proposes typed relations for pairs of nearby mentions in one document."""

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        config = config or {}
        self.confidence_threshold = config.get("relation_confidence_threshold", 0.7)
        self.proximity_window = config.get("proximity_window", 500)
        self.context_window = config.get("context_window", 100)

    def infer(self, entities: List[ExtractedEntity], document: Document) -> List[RelationCandidate]:
        """
        Infer relation candidates for the mentions of a single document.

        Args:
            entities: Mentions extracted from ``document.content``
            document: The document the mentions belong to

        Returns:
            One candidate per qualifying pair, enumerated by ascending offset
        """
        confident = [e for e in entities if e.confidence > self.confidence_threshold]
        confident.sort(key=lambda e: e.start_offset)

        candidates = []
        for i, first in enumerate(confident):
            for second in confident[i + 1:]:
                if abs(first.start_offset - second.start_offset) > self.proximity_window:
                    continue
                candidates.append(self._infer_pair(first, second, document.content))

        logger.debug(f"Inferred {len(candidates)} relation candidates for document {document.id}")
        return candidates

    def _infer_pair(self, source: ExtractedEntity, target: ExtractedEntity, content: str) -> RelationCandidate:
        relation_type, confidence = RELATION_TABLE.get(
            (source.label, target.label),
            (DEFAULT_RELATION_TYPE, DEFAULT_RELATION_CONFIDENCE)
        )

        context = self._context(source, target, content)

        if "launched" in context:
            if source.label == EntityLabel.ORGANIZATION and target.label == EntityLabel.SATELLITE:
                relation_type, confidence = "launched", 0.85

        if "provides" in context or "offers" in context:
            relation_type, confidence = "provides", 0.8

        return RelationCandidate(
            source_text=source.text,
            source_label=source.label,
            target_text=target.text,
            target_label=target.label,
            type=relation_type,
            confidence=confidence
        )

    def _context(self, source: ExtractedEntity, target: ExtractedEntity, content: str) -> str:
        """Lowercased text spanning both mentions plus the context window."""
        start = max(0, min(source.start_offset, target.start_offset) - self.context_window)
        end = max(source.end_offset, target.end_offset) + self.context_window
        return (content or "")[start:end].lower()
