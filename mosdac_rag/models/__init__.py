"""
Completion service clients for the MOSDAC HelpBot.
"""

from .llm_manager import (
    LLMManager,
    CompletionProvider,
    OpenAIProvider,
    AnthropicProvider,
    HttpCompletionProvider,
)

__all__ = [
    "LLMManager",
    "CompletionProvider",
    "OpenAIProvider",
    "AnthropicProvider",
    "HttpCompletionProvider",
]
