"""
Answer synthesis from ranked documents with a rule-based fallback chain.
"""

import logging
from typing import Dict, Any, List, Optional, Tuple

from ..exceptions import CompletionServiceError
from ..kg.entity_extractor import EntityExtractor, PatternEntityExtractor
from ..models.llm_manager import LLMManager
from .models import RAGResponse, ResponseEntity, ScoredDocument, Source

logger = logging.getLogger(__name__)

SERVICE_APOLOGY_PREFIX = "I apologize, but I encountered an error"

EXCERPT_PREFIX = "Based on MOSDAC information: "

GENERIC_ANSWER = (
    "I can help you with information about MOSDAC satellites, data products, access policies, "
    "and more. Please ask me about specific missions like INSAT-3D, Oceansat-3, or data access procedures."
)

# (triggers, answer); first rule with any trigger in the lowercased question wins
FALLBACK_RULES: List[Tuple[Tuple[str, ...], str]] = [
    (
        ("insat-3d",),
        "INSAT-3D is an advanced meteorological satellite launched by ISRO in July 2013. It provides "
        "weather forecasting and disaster warning capabilities with its Imager and Sounder instruments."
    ),
    (
        ("oceansat",),
        "Oceansat-3 is an earth observation satellite that monitors ocean color, sea surface temperature, "
        "and marine ecosystems using OCM-3 and SSTM instruments."
    ),
    (
        ("megha-tropiques",),
        "Megha-Tropiques is a joint Indo-French satellite mission launched in 2011 for studying tropical "
        "climate. Its MADRAS radiometer and SAPHIR humidity sounder support rainfall and humidity products."
    ),
    (
        ("data access", "download"),
        "MOSDAC provides free access to satellite data for research use. You need to register on the "
        "portal and can access data in HDF5, NetCDF, and GeoTIFF formats."
    ),
    (
        ("rainfall", "precipitation"),
        "MOSDAC offers various satellite-based rainfall products including INSAT-3D Hydro-Estimator, "
        "GPM-IMERG, and GSMaP with different temporal and spatial resolutions."
    ),
]


class AnswerSynthesizer:
    """
    Turns a question and its ranked documents into a RAGResponse.

    The completion service is asked first. Its failures never reach the
    caller: an error, an empty reply or the service's own apology all fall
    through to deterministic answers.
    """

    def __init__(
        self,
        llm_manager: LLMManager,
        extractor: Optional[EntityExtractor] = None,
        config: Optional[Dict[str, Any]] = None
    ):
        config = config or {}
        self.llm_manager = llm_manager
        self.extractor = extractor or PatternEntityExtractor()
        self.snippet_length = config.get("snippet_length", 200)
        self.excerpt_length = config.get("excerpt_length", 300)
        self.confidence_scale = config.get("confidence_scale", 10.0)
        self.provider = config.get("provider")

    async def answer(self, question: str, scored_docs: List[ScoredDocument]) -> RAGResponse:
        """
        Answer a question from its ranked documents.

        Args:
            question: The user's question
            scored_docs: Ranked documents, best first (may be empty)

        Returns:
            RAGResponse with answer, sources and entities
        """
        context = self.build_context(scored_docs)

        answer = None
        answer_source = "fallback"
        try:
            completion = await self.llm_manager.complete(question, context, provider=self.provider)
            if self.is_usable(completion):
                answer = completion
                answer_source = "completion"
            else:
                logger.warning("Completion service returned an unusable answer, using fallback")
        except CompletionServiceError as e:
            logger.warning(f"Completion service failed, using fallback: {e}")
        except Exception:
            logger.exception("Unexpected completion failure, using fallback")

        if answer is None:
            answer = self.fallback_answer(question, scored_docs)

        return RAGResponse(
            answer=answer,
            sources=self.build_sources(scored_docs),
            entities=self.collect_entities(question, context),
            metadata={
                "answer_source": answer_source,
                "documents_retrieved": len(scored_docs)
            }
        )

    def build_context(self, scored_docs: List[ScoredDocument]) -> str:
        return "\n\n".join(
            f"{item.document.title}\n{item.document.content}\nSource: {item.document.url}"
            for item in scored_docs
        )

    def is_usable(self, completion: Optional[str]) -> bool:
        if not isinstance(completion, str) or not completion.strip():
            return False
        return not completion.strip().startswith(SERVICE_APOLOGY_PREFIX)

    def fallback_answer(self, question: str, scored_docs: List[ScoredDocument]) -> str:
        """Canned answer for known topics, else an excerpt of the top document."""
        if not scored_docs:
            return GENERIC_ANSWER

        question_lower = question.lower()
        for triggers, canned in FALLBACK_RULES:
            if any(trigger in question_lower for trigger in triggers):
                return canned

        top = scored_docs[0].document
        return f"{EXCERPT_PREFIX}{top.content[:self.excerpt_length]}..."

    def build_sources(self, scored_docs: List[ScoredDocument]) -> List[Source]:
        return [
            Source(
                title=item.document.title,
                url=item.document.url,
                snippet=item.document.content[:self.snippet_length] + "...",
                confidence=min(1.0, item.score / self.confidence_scale)
            )
            for item in scored_docs
        ]

    def collect_entities(self, question: str, context: str) -> List[ResponseEntity]:
        """Entities from the question and the context, first mention per (text, label)."""
        seen = set()
        entities = []
        for mention in self.extractor.extract(f"{question}\n{context}"):
            key = (mention.text.upper(), mention.label)
            if key in seen:
                continue
            seen.add(key)
            entities.append(ResponseEntity(
                text=mention.text,
                label=mention.label.value,
                confidence=mention.confidence
            ))
        return entities
