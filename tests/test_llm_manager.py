"""
Tests for the completion service client.
"""

import asyncio
import json
from unittest.mock import AsyncMock, Mock, patch

import httpx
import openai
import pytest

from mosdac_rag.exceptions import CompletionServiceError
from mosdac_rag.models.llm_manager import (
    CompletionProvider,
    HttpCompletionProvider,
    LLMConfig,
    LLMManager,
    _sdk_error,
    build_system_prompt,
)


def manager_with(provider, timeout=1.0, max_retries=1):
    manager = LLMManager({"llm": {
        "default_provider": "fake",
        "timeout": timeout,
        "max_retries": max_retries,
        "retry_wait": 0
    }})
    manager.register_provider("fake", provider)
    return manager


def fake_provider(side_effect):
    provider = Mock(spec=CompletionProvider)
    provider.complete = AsyncMock(side_effect=side_effect)
    return provider


class TestLLMManager:
    """Test provider setup, retries and timeouts."""

    @pytest.fixture
    def config(self):
        return {
            "llm": {
                "default_provider": "openai",
                "timeout": 5,
                "openai": {
                    "api_key": "test_key",
                    "model": "meta-llama/llama-4-scout-17b-16e-instruct",
                    "base_url": "https://api.groq.com/openai/v1",
                    "temperature": 0.7,
                    "max_tokens": 1000
                }
            }
        }

    @pytest.fixture
    def llm_manager(self, config):
        with patch('mosdac_rag.models.llm_manager.openai.AsyncOpenAI') as mock_client:
            mock_client.return_value = Mock()
            return LLMManager(config)

    def test_initialization(self, llm_manager):
        """Test LLM manager initialization."""
        assert llm_manager.default_provider == "openai"
        assert llm_manager.get_available_providers() == ["openai"]
        assert llm_manager.max_retries == 1

    def test_client_disables_sdk_retries(self, config):
        with patch('mosdac_rag.models.llm_manager.openai.AsyncOpenAI') as mock_client:
            LLMManager(config)

        kwargs = mock_client.call_args.kwargs
        assert kwargs["max_retries"] == 0
        assert kwargs["base_url"] == "https://api.groq.com/openai/v1"
        assert kwargs["api_key"] == "test_key"

    @pytest.mark.asyncio
    async def test_openai_complete(self, llm_manager):
        """Test completion through the OpenAI-compatible provider."""
        mock_response = Mock()
        mock_response.choices = [Mock()]
        mock_response.choices[0].message.content = "Test response"
        create = AsyncMock(return_value=mock_response)
        llm_manager.providers["openai"].client.chat.completions.create = create

        result = await llm_manager.complete("What is INSAT-3D?", "INSAT-3D context")

        assert result == "Test response"
        messages = create.call_args.kwargs["messages"]
        assert messages[0] == {"role": "system", "content": build_system_prompt("INSAT-3D context")}
        assert messages[1] == {"role": "user", "content": "What is INSAT-3D?"}

    def test_unresolved_api_key_skips_provider(self, monkeypatch):
        monkeypatch.delenv("GROQ_API_KEY", raising=False)
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)

        manager = LLMManager({"llm": {"openai": {"api_key": "${GROQ_API_KEY}"}}})

        assert manager.get_available_providers() == []

    @pytest.mark.asyncio
    async def test_no_provider_fails_fast(self):
        manager = LLMManager({"llm": {}})

        with pytest.raises(CompletionServiceError) as exc_info:
            await manager.complete("What is INSAT-3D?", "")
        assert not exc_info.value.transient

    @pytest.mark.asyncio
    async def test_unknown_provider(self):
        manager = manager_with(fake_provider(["ok"]))

        with pytest.raises(CompletionServiceError):
            await manager.complete("question", "context", provider="missing")

    @pytest.mark.asyncio
    async def test_falls_back_to_first_provider(self):
        provider = fake_provider(["ok"])
        manager = LLMManager({"llm": {"default_provider": "openai"}})
        manager.register_provider("fake", provider)

        assert await manager.complete("question", "context") == "ok"

    @pytest.mark.asyncio
    async def test_retries_once_on_transient_error(self):
        provider = fake_provider([CompletionServiceError("503", transient=True, status_code=503), "recovered"])
        manager = manager_with(provider)

        assert await manager.complete("question", "context") == "recovered"
        assert provider.complete.await_count == 2

    @pytest.mark.asyncio
    async def test_gives_up_after_one_retry(self):
        provider = fake_provider([
            CompletionServiceError("first", transient=True),
            CompletionServiceError("second", transient=True),
            "never reached",
        ])
        manager = manager_with(provider)

        with pytest.raises(CompletionServiceError, match="second"):
            await manager.complete("question", "context")
        assert provider.complete.await_count == 2

    @pytest.mark.asyncio
    async def test_no_retry_on_client_error(self):
        provider = fake_provider([CompletionServiceError("bad request", status_code=400), "never reached"])
        manager = manager_with(provider)

        with pytest.raises(CompletionServiceError) as exc_info:
            await manager.complete("question", "context")
        assert exc_info.value.status_code == 400
        assert provider.complete.await_count == 1

    @pytest.mark.asyncio
    async def test_timeout_is_transient(self):
        calls = []

        class SlowProvider(CompletionProvider):
            async def complete(self, question, context):
                calls.append(question)
                await asyncio.sleep(1)
                return "too late"

        manager = manager_with(SlowProvider(), timeout=0.05)

        with pytest.raises(CompletionServiceError) as exc_info:
            await manager.complete("question", "context")
        assert exc_info.value.transient
        assert len(calls) == 2


class TestSdkErrorMapping:
    """Test classification of SDK exceptions."""

    @pytest.fixture
    def request_(self):
        return httpx.Request("POST", "https://api.groq.com/openai/v1/chat/completions")

    def test_connection_error_is_transient(self, request_):
        error = _sdk_error("OpenAI", openai.APIConnectionError(request=request_), openai)
        assert error.transient

    def test_server_error_is_transient(self, request_):
        response = httpx.Response(500, request=request_)
        error = _sdk_error("OpenAI", openai.InternalServerError("boom", response=response, body=None), openai)

        assert error.transient
        assert error.status_code == 500

    def test_bad_request_is_not_transient(self, request_):
        response = httpx.Response(400, request=request_)
        error = _sdk_error("OpenAI", openai.BadRequestError("bad", response=response, body=None), openai)

        assert not error.transient
        assert error.status_code == 400

    def test_auth_error_is_not_transient(self, request_):
        response = httpx.Response(401, request=request_)
        error = _sdk_error("OpenAI", openai.AuthenticationError("no key", response=response, body=None), openai)

        assert not error.transient


class TestHttpCompletionProvider:
    """Test the plain HTTP completion provider."""

    URL = "https://example.supabase.co/functions/v1/groq-chat"

    def provider(self, handler):
        config = LLMConfig(provider="http", base_url=self.URL, api_key="secret", timeout=5)
        return HttpCompletionProvider(config, transport=httpx.MockTransport(handler))

    @pytest.mark.asyncio
    async def test_complete(self):
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json={"answer": "MOSDAC archives satellite data.", "sources": []})

        answer = await self.provider(handler).complete("What is MOSDAC?", "MOSDAC context")

        assert answer == "MOSDAC archives satellite data."
        assert seen["body"]["question"] == "What is MOSDAC?"
        assert seen["body"]["context"] == "MOSDAC context"
        assert seen["auth"] == "Bearer secret"

    @pytest.mark.asyncio
    async def test_server_error_is_transient(self):
        provider = self.provider(lambda request: httpx.Response(503, text="unavailable"))

        with pytest.raises(CompletionServiceError) as exc_info:
            await provider.complete("question", "context")
        assert exc_info.value.transient
        assert exc_info.value.status_code == 503

    @pytest.mark.asyncio
    async def test_client_error_is_not_transient(self):
        provider = self.provider(lambda request: httpx.Response(400, json={"error": "bad"}))

        with pytest.raises(CompletionServiceError) as exc_info:
            await provider.complete("question", "context")
        assert not exc_info.value.transient

    @pytest.mark.asyncio
    async def test_connection_error_is_transient(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(CompletionServiceError) as exc_info:
            await self.provider(handler).complete("question", "context")
        assert exc_info.value.transient

    @pytest.mark.asyncio
    async def test_error_payload(self):
        provider = self.provider(lambda request: httpx.Response(200, json={"error": "GROQ_API_KEY not configured"}))

        with pytest.raises(CompletionServiceError, match="GROQ_API_KEY"):
            await provider.complete("question", "context")

    def test_requires_url(self):
        with pytest.raises(ValueError):
            HttpCompletionProvider(LLMConfig(provider="http"))

    @pytest.mark.asyncio
    async def test_unsupported_scheme_is_not_transient(self):
        provider = HttpCompletionProvider(LLMConfig(provider="http", base_url="ftp://example.invalid/complete"))

        with pytest.raises(CompletionServiceError) as exc_info:
            await provider.complete("question", "context")
        assert not exc_info.value.transient

    @pytest.mark.asyncio
    async def test_decoding_error(self):
        def handler(request):
            raise httpx.DecodingError("corrupt body", request=request)

        with pytest.raises(CompletionServiceError) as exc_info:
            await self.provider(handler).complete("question", "context")
        assert not exc_info.value.transient

    @pytest.mark.asyncio
    async def test_non_text_answer(self):
        provider = self.provider(lambda request: httpx.Response(200, json={"answer": {"text": "x"}}))

        with pytest.raises(CompletionServiceError, match="non-text"):
            await provider.complete("question", "context")

    @pytest.mark.asyncio
    async def test_missing_answer_is_empty(self):
        provider = self.provider(lambda request: httpx.Response(200, json={"sources": []}))

        assert await provider.complete("question", "context") == ""
