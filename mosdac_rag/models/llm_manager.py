"""
LLM Manager for calling the external completion service.
"""

import asyncio
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Any, List, Optional

import anthropic
import httpx
import openai
from tenacity import AsyncRetrying, before_sleep_log, retry_if_exception, stop_after_attempt, wait_fixed

from ..config import resolve_env_vars
from ..exceptions import CompletionServiceError

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a helpful AI assistant for MOSDAC (Meteorological and Oceanographic "
    "Satellite Data Archival Centre). Use the following context to answer questions "
    "about ISRO satellites, weather data, and ocean monitoring:\n{context}"
)


def build_system_prompt(context: str) -> str:
    return SYSTEM_PROMPT.format(context=context or "No specific context provided.")


@dataclass
class LLMConfig:
    """Configuration for completion providers."""
    provider: str
    model: str = ""
    temperature: float = 0.7
    max_tokens: int = 1000
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    timeout: float = 20.0

    def __post_init__(self):
        """Resolve environment variables after initialization."""
        if self.api_key:
            self.api_key = resolve_env_vars(self.api_key)
            # An unset ${VAR} stays literal; treat it as missing
            if "${" in self.api_key:
                self.api_key = None


def _sdk_error(provider_name: str, error: Exception, sdk: Any) -> CompletionServiceError:
    """Map an openai/anthropic SDK exception onto CompletionServiceError."""
    status_code = getattr(error, "status_code", None)
    transient = isinstance(error, (
        sdk.APITimeoutError,
        sdk.APIConnectionError,
        sdk.RateLimitError,
        sdk.InternalServerError,
    )) or (status_code is not None and status_code >= 500)
    return CompletionServiceError(
        f"{provider_name} completion failed: {error}",
        transient=transient,
        status_code=status_code,
        cause=error
    )


class CompletionProvider(ABC):
    """Abstract base class for completion providers."""

    @abstractmethod
    async def complete(self, question: str, context: str) -> str:
        """Answer ``question`` grounded on ``context``."""
        pass


class OpenAIProvider(CompletionProvider):
    """OpenAI-compatible chat completions (OpenAI, Groq and similar)."""

    def __init__(self, config: LLMConfig):
        self.config = config
        self.api_key = config.api_key or os.getenv("GROQ_API_KEY") or os.getenv("OPENAI_API_KEY")
        if not self.api_key:
            raise ValueError("OpenAI-compatible API key not found")

        # Retries are owned by LLMManager
        self.client = openai.AsyncOpenAI(
            api_key=self.api_key,
            base_url=config.base_url,
            timeout=config.timeout,
            max_retries=0
        )

    async def complete(self, question: str, context: str) -> str:
        try:
            response = await self.client.chat.completions.create(
                model=self.config.model,
                messages=[
                    {"role": "system", "content": build_system_prompt(context)},
                    {"role": "user", "content": question}
                ],
                max_tokens=self.config.max_tokens,
                temperature=self.config.temperature
            )
        except openai.APIError as e:
            raise _sdk_error("OpenAI", e, openai) from e

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""


class AnthropicProvider(CompletionProvider):
    """Anthropic messages API."""

    def __init__(self, config: LLMConfig):
        self.config = config
        self.api_key = config.api_key or os.getenv("ANTHROPIC_API_KEY")
        if not self.api_key:
            raise ValueError("Anthropic API key not found")

        self.client = anthropic.AsyncAnthropic(
            api_key=self.api_key,
            timeout=config.timeout,
            max_retries=0
        )

    async def complete(self, question: str, context: str) -> str:
        try:
            response = await self.client.messages.create(
                model=self.config.model,
                max_tokens=self.config.max_tokens,
                temperature=self.config.temperature,
                system=build_system_prompt(context),
                messages=[{"role": "user", "content": question}]
            )
        except anthropic.APIError as e:
            raise _sdk_error("Anthropic", e, anthropic) from e

        texts = [block.text for block in response.content if getattr(block, "type", "") == "text"]
        return "".join(texts)


class HttpCompletionProvider(CompletionProvider):
    """
    Plain HTTP completion endpoint.

    Posts ``{question, context}`` (plus a chat-style ``messages`` list) and
    expects ``{answer}`` back, or ``{error}`` on failure.
    """

    def __init__(self, config: LLMConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        if not config.base_url:
            raise ValueError("HTTP completion provider requires a url")
        self.config = config
        self.transport = transport
        self.headers = {"Content-Type": "application/json"}
        if config.api_key:
            self.headers["Authorization"] = f"Bearer {config.api_key}"

    async def complete(self, question: str, context: str) -> str:
        payload = {
            "question": question,
            "context": context,
            "messages": [{"role": "user", "content": question}]
        }
        try:
            async with httpx.AsyncClient(
                timeout=self.config.timeout, headers=self.headers, transport=self.transport
            ) as client:
                response = await client.post(self.config.base_url, json=payload)
        except (httpx.TimeoutException, httpx.NetworkError, httpx.RemoteProtocolError) as e:
            raise CompletionServiceError(f"Completion service unreachable: {e}", transient=True, cause=e) from e
        except httpx.HTTPError as e:
            raise CompletionServiceError(f"Completion request failed: {e}", cause=e) from e

        if response.status_code >= 400:
            raise CompletionServiceError(
                f"Completion service returned {response.status_code}: {response.text[:200]}",
                transient=response.status_code >= 500 or response.status_code == 429,
                status_code=response.status_code
            )

        try:
            data = response.json()
        except ValueError as e:
            raise CompletionServiceError(f"Completion service returned invalid JSON: {e}", cause=e) from e

        if not isinstance(data, dict):
            raise CompletionServiceError("Completion service returned an unexpected payload")
        if data.get("error"):
            raise CompletionServiceError(f"Completion service error: {data['error']}")
        answer = data.get("answer")
        if answer is None:
            return ""
        if not isinstance(answer, str):
            raise CompletionServiceError("Completion service returned a non-text answer")
        return answer


PROVIDER_CLASSES = {
    "openai": OpenAIProvider,
    "anthropic": AnthropicProvider,
    "http": HttpCompletionProvider,
}


def _is_transient(error: BaseException) -> bool:
    return isinstance(error, CompletionServiceError) and error.transient


class LLMManager:
    """
    Manager for completion providers.

    Every call is bounded by ``timeout`` and retried ``max_retries`` times on
    transient failures only. A manager with no usable provider is valid: its
    calls fail fast with a non-transient CompletionServiceError.
    """

    def __init__(self, config: Dict[str, Any]):
        self.config = config
        llm_config = config.get("llm", {})
        self.default_provider = llm_config.get("default_provider")
        self.timeout = llm_config.get("timeout", 20.0)
        self.max_retries = llm_config.get("max_retries", 1)
        self.retry_wait = llm_config.get("retry_wait", 1.0)
        self.providers: Dict[str, CompletionProvider] = {}
        self._initialize_providers(llm_config)

    def _initialize_providers(self, llm_config: Dict[str, Any]):
        """Initialize every configured provider that has credentials."""
        for name, provider_class in PROVIDER_CLASSES.items():
            if name not in llm_config:
                continue
            settings = llm_config[name] or {}
            provider_config = LLMConfig(
                provider=name,
                model=settings.get("model", ""),
                temperature=settings.get("temperature", 0.7),
                max_tokens=settings.get("max_tokens", 1000),
                api_key=settings.get("api_key"),
                base_url=settings.get("base_url") or settings.get("url"),
                timeout=self.timeout
            )
            try:
                self.providers[name] = provider_class(provider_config)
                logger.info(f"{name} completion provider initialized")
            except ValueError as e:
                logger.warning(f"Failed to initialize {name} completion provider: {e}")

        if not self.providers:
            logger.warning("No completion providers available, answers will use rule-based fallbacks")

    def register_provider(self, name: str, provider: CompletionProvider):
        """Add or replace a provider."""
        self.providers[name] = provider

    def get_available_providers(self) -> List[str]:
        """Get list of available providers."""
        return list(self.providers.keys())

    async def complete(self, question: str, context: str, provider: Optional[str] = None) -> str:
        """
        Ask the completion service to answer ``question`` from ``context``.

        Raises:
            CompletionServiceError: when no provider is available or every
                attempt failed
        """
        provider_name = provider or self.default_provider
        if provider_name not in self.providers:
            if provider is None and self.providers:
                provider_name = next(iter(self.providers))
            else:
                raise CompletionServiceError(f"Completion provider {provider_name} not available")

        completion_provider = self.providers[provider_name]

        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_fixed(self.retry_wait),
            retry=retry_if_exception(_is_transient),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True
        ):
            with attempt:
                return await self._attempt(completion_provider, question, context)

    async def _attempt(self, provider: CompletionProvider, question: str, context: str) -> str:
        try:
            return await asyncio.wait_for(provider.complete(question, context), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise CompletionServiceError(
                f"Completion timed out after {self.timeout}s", transient=True, cause=e
            ) from e
