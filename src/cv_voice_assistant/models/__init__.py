"""
Models module for the hosted LLM client.

Provides chat completion and embedding access over an injected OpenAI client.
"""

from cv_voice_assistant.models.llm_client import (
    DEFAULT_CHAT_MODEL,
    DEFAULT_EMBEDDING_MODEL,
    LLMClient,
    LLMClientBase,
    LLMResponse,
    Message,
    create_openai_client,
)

__all__ = [
    "LLMClient",
    "LLMClientBase",
    "LLMResponse",
    "Message",
    "DEFAULT_CHAT_MODEL",
    "DEFAULT_EMBEDDING_MODEL",
    "create_openai_client",
]
