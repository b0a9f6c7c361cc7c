"""
Tests for document ranking and answer synthesis.
"""

from unittest.mock import AsyncMock, Mock, patch

import pytest

from mosdac_rag.exceptions import CompletionServiceError
from mosdac_rag.models.llm_manager import HttpCompletionProvider, LLMConfig, LLMManager
from mosdac_rag.rag.answer_synthesizer import (
    EXCERPT_PREFIX,
    FALLBACK_RULES,
    GENERIC_ANSWER,
    AnswerSynthesizer,
)
from mosdac_rag.rag.corpus import load_seed_corpus
from mosdac_rag.rag.document_index import DocumentIndex, DocumentScorer, LexicalScorer, tokenize_question
from mosdac_rag.rag.models import Document, ScoredDocument

INSAT_DOCUMENT = Document(
    id="insat-3d",
    url="https://mosdac.gov.in/insat-3d",
    title="INSAT-3D Satellite Mission",
    content=(
        "INSAT-3D is a meteorological satellite operated by ISRO. "
        "The satellite carries an Imager and a Sounder for weather observation."
    )
)

RAINFALL_ANSWER = FALLBACK_RULES[-1][1]


def seed_document(doc_id):
    return next(document for document in load_seed_corpus() if document.id == doc_id)


class TestDocumentIndex:
    """Test lexical scoring and top-K ranking."""

    @pytest.fixture
    def corpus(self):
        return load_seed_corpus()

    @pytest.fixture
    def index(self):
        return DocumentIndex(LexicalScorer(), top_k=3)

    def test_tokenize_question(self):
        assert tokenize_question("What is Oceansat-3?") == ["what", "is", "oceansat-3"]
        assert tokenize_question("  ") == []

    def test_unrelated_question_scores_zero(self, index):
        """Oceansat-3 has nothing in common with an INSAT-3D-only corpus."""
        assert index.rank("What is Oceansat-3?", [INSAT_DOCUMENT]) == []

    def test_rank_orders_by_score(self, index, corpus):
        ranked = index.rank("rainfall products", corpus)

        assert ranked[0].document.id == "rainfall-products"
        assert len(ranked) <= 3
        scores = [item.score for item in ranked]
        assert scores == sorted(scores, reverse=True)
        assert all(score > 0 for score in scores)

    def test_top_k(self, corpus):
        index = DocumentIndex(LexicalScorer(), top_k=1)
        assert len(index.rank("satellite data", corpus)) == 1

    def test_deterministic(self, index, corpus):
        first = index.rank("INSAT-3D rainfall data", corpus)
        second = index.rank("INSAT-3D rainfall data", corpus)

        assert [(item.document.id, item.score) for item in first] == [
            (item.document.id, item.score) for item in second
        ]

    def test_ties_keep_corpus_order(self, corpus):
        scorer = Mock(spec=DocumentScorer)
        scorer.score.return_value = 1.0
        index = DocumentIndex(scorer, top_k=5)

        ranked = index.rank("anything", corpus)

        assert [item.document.id for item in ranked] == [document.id for document in corpus]

    def test_lexical_weights(self):
        scorer = LexicalScorer()
        scorer.prime(INSAT_DOCUMENT, keywords=["satellite"], entity_texts=["INSAT-3D"])

        # title +2, "insat-3d": body +1 and entity +2, "satellite": body +1 and keyword +1.5
        assert scorer.score("INSAT-3D satellite", INSAT_DOCUMENT) == pytest.approx(7.5)

    def test_short_tokens_ignored(self):
        scorer = LexicalScorer()
        assert scorer.score("xyz ab", INSAT_DOCUMENT) == 0.0

    def test_features_computed_once(self):
        scorer = LexicalScorer()
        scorer.processor.extract_keywords = Mock(wraps=scorer.processor.extract_keywords)

        scorer.score("satellite", INSAT_DOCUMENT)
        scorer.score("imager", INSAT_DOCUMENT)

        assert scorer.processor.extract_keywords.call_count == 1

    def test_unusable_content_scores_title_only(self):
        document = Document(id="blank", url="", title="Satellite Notes", content="")
        assert LexicalScorer().score("satellite data", document) == 2.0


class TestEmbeddingScorer:
    """Test the embedding similarity scorer."""

    @pytest.fixture
    def scorer(self):
        pytest.importorskip("sentence_transformers")
        from mosdac_rag.rag.embedding_index import EmbeddingScorer

        vectors = {
            "ocean": [1.0, 0.0],
            "Ocean Mission\nocean colour": [1.0, 0.0],
            "Weather Mission\ncyclones": [0.0, 1.0],
        }
        with patch("mosdac_rag.rag.embedding_index.SentenceTransformer") as mock_model:
            mock_model.return_value.encode.side_effect = lambda text: vectors[text]
            yield EmbeddingScorer({"min_similarity": 0.3})

    def test_cosine_similarity(self, scorer):
        document = Document(id="ocean", url="", title="Ocean Mission", content="ocean colour")
        assert scorer.score("ocean", document) == pytest.approx(1.0)

    def test_below_threshold_is_zero(self, scorer):
        document = Document(id="weather", url="", title="Weather Mission", content="cyclones")
        assert scorer.score("ocean", document) == 0.0

    def test_document_embedding_cached(self, scorer):
        document = Document(id="ocean", url="", title="Ocean Mission", content="ocean colour")
        scorer.score("ocean", document)
        scorer.score("ocean", document)

        assert scorer.embedding_model.encode.call_count == 3


class TestAnswerSynthesizer:
    """Test answer synthesis and the fallback chain."""

    @pytest.fixture
    def llm_manager(self):
        manager = Mock(spec=LLMManager)
        manager.complete = AsyncMock(return_value="INSAT-3D carries an Imager and a Sounder.")
        return manager

    @pytest.fixture
    def synthesizer(self, llm_manager):
        return AnswerSynthesizer(llm_manager)

    @pytest.fixture
    def rainfall_docs(self):
        return [ScoredDocument(document=seed_document("rainfall-products"), score=7.5)]

    @pytest.mark.asyncio
    async def test_usable_answer_returned_verbatim(self, synthesizer, llm_manager):
        docs = [ScoredDocument(document=INSAT_DOCUMENT, score=5.0)]

        response = await synthesizer.answer("What does INSAT-3D carry?", docs)

        assert response.answer == "INSAT-3D carries an Imager and a Sounder."
        assert response.metadata["answer_source"] == "completion"
        expected_context = f"{INSAT_DOCUMENT.title}\n{INSAT_DOCUMENT.content}\nSource: {INSAT_DOCUMENT.url}"
        llm_manager.complete.assert_awaited_once_with("What does INSAT-3D carry?", expected_context, provider=None)

    @pytest.mark.asyncio
    async def test_timeout_uses_rainfall_fallback(self, synthesizer, llm_manager, rainfall_docs):
        """A timed-out completion falls back to the canned rainfall answer with sources intact."""
        llm_manager.complete.side_effect = CompletionServiceError("timed out", transient=True)

        response = await synthesizer.answer("Which rainfall products are available?", rainfall_docs)

        assert response.answer == RAINFALL_ANSWER
        assert response.metadata["answer_source"] == "fallback"
        assert [source.title for source in response.sources] == ["Satellite-based Rainfall Products"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("completion", [
        "",
        "   ",
        None,
        "I apologize, but I encountered an error processing your question. Please try again.",
    ])
    async def test_unusable_answer_falls_back(self, synthesizer, llm_manager, rainfall_docs, completion):
        llm_manager.complete.return_value = completion

        response = await synthesizer.answer("Show me precipitation data", rainfall_docs)

        assert response.answer == RAINFALL_ANSWER

    @pytest.mark.asyncio
    async def test_trigger_order(self, synthesizer, llm_manager, rainfall_docs):
        llm_manager.complete.side_effect = CompletionServiceError("down", transient=True)

        response = await synthesizer.answer("INSAT-3D rainfall", rainfall_docs)

        assert response.answer.startswith("INSAT-3D is an advanced meteorological satellite")

    @pytest.mark.asyncio
    async def test_excerpt_fallback(self, synthesizer, llm_manager):
        llm_manager.complete.side_effect = CompletionServiceError("bad request", status_code=400)
        document = seed_document("data-access")

        response = await synthesizer.answer("Which formats are supported?", [ScoredDocument(document, 3.0)])

        assert response.answer == f"{EXCERPT_PREFIX}{document.content[:300]}..."

    @pytest.mark.asyncio
    async def test_no_documents_generic_answer(self, synthesizer, llm_manager):
        """With nothing retrieved, even a known topic gets the generic answer."""
        llm_manager.complete.side_effect = CompletionServiceError("no provider")

        response = await synthesizer.answer("What is Oceansat-3?", [])

        assert response.answer == GENERIC_ANSWER
        assert response.sources == []
        llm_manager.complete.assert_awaited_once_with("What is Oceansat-3?", "", provider=None)

    @pytest.mark.asyncio
    async def test_sources(self, synthesizer):
        document = seed_document("insat-3d")
        docs = [ScoredDocument(document, 7.5), ScoredDocument(seed_document("rainfall-products"), 15.0)]

        response = await synthesizer.answer("INSAT-3D", docs)

        assert response.sources[0].snippet == document.content[:200] + "..."
        assert response.sources[0].url == "https://mosdac.gov.in/insat-3d"
        assert response.sources[0].confidence == pytest.approx(0.75)
        assert response.sources[1].confidence == 1.0

    @pytest.mark.asyncio
    async def test_entities_deduplicated(self, synthesizer):
        response = await synthesizer.answer("Is INSAT-3D the same as insat-3d?", [])

        satellites = [entity for entity in response.entities if entity.label == "SATELLITE"]
        assert len(satellites) == 1
        assert satellites[0].text == "INSAT-3D"
        assert satellites[0].confidence == 0.9

    @pytest.mark.asyncio
    async def test_entities_include_context(self, synthesizer):
        docs = [ScoredDocument(INSAT_DOCUMENT, 5.0)]
        response = await synthesizer.answer("Tell me more", docs)

        texts = {entity.text for entity in response.entities}
        assert {"INSAT-3D", "ISRO", "Imager", "Sounder"} <= texts

    @pytest.mark.asyncio
    async def test_configurable_provider(self, llm_manager):
        synthesizer = AnswerSynthesizer(llm_manager, config={"provider": "anthropic"})

        await synthesizer.answer("INSAT-3D", [])

        llm_manager.complete.assert_awaited_once_with("INSAT-3D", "", provider="anthropic")

    @pytest.mark.asyncio
    async def test_unexpected_provider_error_falls_back(self, synthesizer, llm_manager, rainfall_docs):
        llm_manager.complete.side_effect = RuntimeError("provider bug")

        response = await synthesizer.answer("Which rainfall products are available?", rainfall_docs)

        assert response.answer == RAINFALL_ANSWER
        assert response.metadata["answer_source"] == "fallback"

    @pytest.mark.asyncio
    async def test_non_text_completion_falls_back(self, synthesizer, llm_manager):
        llm_manager.complete.return_value = {"text": "x"}

        response = await synthesizer.answer("What is MOSDAC?", [])

        assert response.answer == GENERIC_ANSWER

    @pytest.mark.asyncio
    async def test_misconfigured_http_provider_falls_back(self):
        manager = LLMManager({"llm": {"retry_wait": 0}})
        manager.register_provider(
            "http", HttpCompletionProvider(LLMConfig(provider="http", base_url="ftp://example.invalid/complete"))
        )

        response = await AnswerSynthesizer(manager).answer("What is MOSDAC?", [])

        assert response.answer == GENERIC_ANSWER
