"""
Pattern-based entity extraction for MOSDAC documentation.

The extractor tags satellites, instruments, organizations, data products and
application missions with a fixed, ordered list of case-insensitive rules.
It sits behind the ``EntityExtractor`` interface so that a statistical NER
model can replace it without touching relation inference or graph merging.
"""

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Pattern, Sequence

from .models import EntityLabel, ExtractedEntity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExtractionRule:
    """One labelled pattern with the confidence assigned to its matches."""
    label: EntityLabel
    pattern: Pattern[str]
    confidence: float


def _rule(label: EntityLabel, pattern: str, confidence: float) -> ExtractionRule:
    return ExtractionRule(label, re.compile(pattern, re.IGNORECASE), confidence)


# Order matters: mentions are emitted rule by rule, then by offset.
DEFAULT_RULES: Sequence[ExtractionRule] = (
    _rule(
        EntityLabel.SATELLITE,
        r"\b(?:INSAT(?:[-\s]?\d[A-Z0-9]*)?"
        r"|Oceansat(?:[-\s]?\d[A-Z0-9]*)?"
        r"|Megha[-\s]?Tropiques"
        r"|ScatSat(?:[-\s]?\d[A-Z0-9]*)?"
        r"|Kalpana(?:[-\s]?\d[A-Z0-9]*)?"
        r"|SARAL(?:[-\s]?AltiKa)?"
        r"|EOS[-\s]?\d+)\b",
        0.9,
    ),
    _rule(
        EntityLabel.INSTRUMENT,
        r"\b(?:Imager|Sounder|OCM(?:[-\s]?\d)?|SSTM|MADRAS|SAPHIR|ScaRaB|AltiKa|Scatterometer)\b",
        0.85,
    ),
    _rule(
        EntityLabel.ORGANIZATION,
        r"\b(?:ISRO|SAC|MOSDAC|CNES|NASA|NOAA|EUMETSAT|IMD)\b",
        0.95,
    ),
    _rule(
        EntityLabel.DATA_PRODUCT,
        r"\b(?:rainfall|temperature|humidity|chlorophyll|SST|precipitation"
        r"|wind\s+speed|soil\s+moisture|water\s+vapou?r|salinity)\b",
        0.8,
    ),
    _rule(
        EntityLabel.MISSION,
        r"\b(?:weather\s+forecasting|disaster\s+warning|cyclone\s+tracking"
        r"|monsoon\s+prediction|fishery\s+forecasting|coastal\s+zone\s+management"
        r"|climate\s+studies|oceanographic\s+studies)\b",
        0.75,
    ),
)


class EntityExtractor(ABC):
    """Interface for anything that turns text into entity mentions."""

    @abstractmethod
    def extract(self, text: str) -> List[ExtractedEntity]:
        """Return every entity mention found in ``text``."""
        pass


class PatternEntityExtractor(EntityExtractor):
    """Regex rule extractor with fixed per-label confidences."""

    def __init__(self, rules: Sequence[ExtractionRule] = DEFAULT_RULES):
        self.rules = list(rules)

    def extract(self, text: str) -> List[ExtractedEntity]:
        """
        Scan ``text`` with every rule in order.

        Overlapping matches from different rules are all kept; deduplication
        happens when mentions are merged into the graph. Malformed input
        (``None``, non-strings, empty text) yields an empty list.
        """
        if not isinstance(text, str) or not text:
            if text not in (None, ""):
                logger.debug(f"Skipping extraction for non-text input of type {type(text).__name__}")
            return []

        entities = []
        for rule in self.rules:
            for match in rule.pattern.finditer(text):
                entities.append(ExtractedEntity(
                    text=match.group(0),
                    label=rule.label,
                    confidence=rule.confidence,
                    start_offset=match.start(),
                    end_offset=match.end()
                ))

        return entities
