"""
Hosted LLM client.

Wraps the OpenAI async SDK for chat completions and embeddings. The
underlying ``AsyncOpenAI`` instance is built once by ``create_openai_client``
and injected everywhere it is needed (chat, embeddings, speech).
"""

from __future__ import annotations

import ast
import json
import logging
import re
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

import openai
from pydantic import BaseModel, Field

from cv_voice_assistant.config import Settings, get_settings
from cv_voice_assistant.errors import CompletionFailedError, InitializationFailedError

if TYPE_CHECKING:
    from openai import AsyncOpenAI

logger = logging.getLogger(__name__)

DEFAULT_CHAT_MODEL = "gpt-4o-mini"
DEFAULT_EMBEDDING_MODEL = "text-embedding-3-small"


class Message(BaseModel):
    """A message in a conversation."""

    role: str = Field(..., description="Role of the speaker (system, user, assistant)")
    content: str = Field(..., description="Message content")


class LLMResponse(BaseModel):
    """Response from an LLM."""

    content: str = Field(..., description="Generated text content (empty if the model returned none)")
    finish_reason: str = Field(default="stop", description="Reason for completion")
    usage: dict[str, int] = Field(
        default_factory=dict,
        description="Token usage information",
    )
    model: str = Field(default="", description="Model used for generation")


def create_openai_client(settings: Settings | None = None) -> "AsyncOpenAI":
    """
    Build the shared hosted API client.

    Retries and timeout are set here, once, for every call made through it.

    Raises:
        InitializationFailedError: If no API key is configured.
    """
    settings = settings or get_settings()
    if settings.openai_api_key is None or not settings.openai_api_key.get_secret_value():
        logger.error("Missing OpenAI API key")
        raise InitializationFailedError("Missing OpenAI API key (set OPENAI_API_KEY)")

    client = openai.AsyncOpenAI(
        api_key=settings.openai_api_key.get_secret_value(),
        max_retries=settings.openai_max_retries,
        timeout=settings.openai_timeout,
    )
    logger.info(
        f"Initialized OpenAI client (max_retries={settings.openai_max_retries}, "
        f"timeout={settings.openai_timeout}s)"
    )
    return client


class LLMClientBase(ABC):
    """Abstract base class for LLM clients."""

    @abstractmethod
    async def chat(
        self,
        messages: list[Message],
        temperature: float = 0.7,
        max_tokens: int | None = None,
        **kwargs: Any,
    ) -> LLMResponse:
        """
        Generate a chat completion.

        Args:
            messages: Conversation history.
            temperature: Sampling temperature.
            max_tokens: Maximum tokens to generate.
            **kwargs: Additional model-specific parameters.

        Returns:
            Generated response.
        """
        ...

    @abstractmethod
    async def embed(self, text: str) -> list[float]:
        """
        Generate an embedding for text.

        Args:
            text: Text to embed.

        Returns:
            Embedding vector.
        """
        ...


class LLMClient(LLMClientBase):
    """
    OpenAI-backed LLM client.

    Chat completions and embeddings go through the injected ``AsyncOpenAI``
    instance; no retries happen here beyond what that client performs.
    """

    def __init__(
        self,
        client: "AsyncOpenAI",
        model: str | None = None,
        embedding_model: str | None = None,
    ) -> None:
        """
        Initialize the LLM client.

        Args:
            client: Shared hosted API client.
            model: Chat model name (uses config if not provided).
            embedding_model: Embedding model name (uses config if not provided).
        """
        settings = get_settings()
        self._client = client
        self._model = model or settings.chat_model or DEFAULT_CHAT_MODEL
        self._embedding_model = embedding_model or settings.embedding_model or DEFAULT_EMBEDDING_MODEL

        logger.info(f"Initialized LLM client with model: {self._model}")

    @property
    def model(self) -> str:
        """Get the chat model name."""
        return self._model

    @property
    def embedding_model(self) -> str:
        """Get the embedding model name."""
        return self._embedding_model

    async def chat(
        self,
        messages: list[Message],
        temperature: float = 0.7,
        max_tokens: int | None = None,
        **kwargs: Any,
    ) -> LLMResponse:
        """
        Generate a chat completion.

        Args:
            messages: Conversation history, sent in order.
            temperature: Sampling temperature.
            max_tokens: Maximum tokens to generate.
            **kwargs: Passed through to the SDK (e.g. ``response_format``).

        Returns:
            Generated response. ``content`` is empty when the model produced none.

        Raises:
            CompletionFailedError: If the hosted call fails.
        """
        params: dict[str, Any] = {
            "model": self._model,
            "messages": [m.model_dump() for m in messages],
            "temperature": temperature,
        }
        if max_tokens is not None:
            params["max_tokens"] = max_tokens
        params.update(kwargs)

        try:
            completion = await self._client.chat.completions.create(**params)
        except openai.OpenAIError as e:
            logger.error(f"Chat completion failed: {e}")
            raise CompletionFailedError("Chat completion failed") from e

        choice = completion.choices[0] if completion.choices else None
        content = (choice.message.content if choice and choice.message else None) or ""
        usage = {}
        if getattr(completion, "usage", None) is not None:
            usage = {
                "prompt_tokens": completion.usage.prompt_tokens,
                "completion_tokens": completion.usage.completion_tokens,
            }

        logger.debug(f"Chat response length: {len(content)} chars")
        return LLMResponse(
            content=content,
            finish_reason=(choice.finish_reason if choice else None) or "stop",
            usage=usage,
            model=getattr(completion, "model", None) or self._model,
        )

    async def embed(self, text: str) -> list[float]:
        """
        Generate an embedding for text.

        The text is sent whole; inputs beyond the model's own limit are not
        chunked locally.

        Raises:
            CompletionFailedError: If the hosted call fails.
        """
        try:
            response = await self._client.embeddings.create(
                model=self._embedding_model,
                input=text,
            )
        except openai.OpenAIError as e:
            logger.error(f"Embedding request failed: {e}")
            raise CompletionFailedError("Embedding request failed") from e

        return list(response.data[0].embedding)

    async def chat_with_json(
        self,
        messages: list[Message],
        schema: dict[str, Any] | None = None,
        temperature: float = 0.2,
        **kwargs: Any,
    ) -> dict[str, Any]:
        """
        Generate a chat completion with JSON structured output.

        Args:
            messages: Conversation history.
            schema: Optional JSON schema for expected output.
            temperature: Sampling temperature (lower for more deterministic).
            **kwargs: Additional parameters.

        Returns:
            Parsed JSON response, or empty dict if nothing parseable came back.
        """
        if schema:
            instruction = (
                "You must respond with valid JSON only. No additional text or explanation. "
                f"Your response must match this JSON schema: {json.dumps(schema)}"
            )
        else:
            instruction = "You must respond with valid JSON only. No additional text or explanation."
        augmented_messages = [Message(role="system", content=instruction)] + messages

        response = await self.chat(augmented_messages, temperature, **kwargs)

        if not response.content:
            logger.warning("JSON chat returned no content, returning empty dict")
            return {}

        content = response.content.strip()

        # Models sometimes wrap the object in prose; cut out the outermost bracket span.
        start_idx = content.find("{")
        if start_idx == -1:
            start_idx = content.find("[")

        if start_idx != -1:
            open_bracket = content[start_idx]
            close_bracket = "}" if open_bracket == "{" else "]"
            depth = 0
            end_idx = len(content)
            for i, char in enumerate(content[start_idx:], start=start_idx):
                if char == open_bracket:
                    depth += 1
                elif char == close_bracket:
                    depth -= 1
                    if depth == 0:
                        end_idx = i + 1
                        break

            parsed = self._parse_json_loose(content[start_idx:end_idx])
            if isinstance(parsed, dict):
                return parsed
            if isinstance(parsed, list):
                return {"items": parsed}

        parsed = self._parse_json_loose(content)
        if isinstance(parsed, dict):
            return parsed
        if isinstance(parsed, list):
            return {"items": parsed}

        logger.warning("Failed to parse JSON from response")
        logger.debug(f"Response content: {response.content[:500]}")
        return {}

    @staticmethod
    def _repair_json(raw: str) -> str:
        """Normalize the usual LLM JSON slips (fences, smart quotes, trailing commas, bare keys)."""
        if not raw:
            return ""

        result = raw.strip()
        result = re.sub(r"^```(?:json)?\s*", "", result, flags=re.IGNORECASE)
        result = re.sub(r"\s*```$", "", result)
        result = (
            result.replace("“", '"')
            .replace("”", '"')
            .replace("‘", "'")
            .replace("’", "'")
        )
        result = re.sub(r",(\s*[}\]])", r"\1", result)
        result = re.sub(r"\bNone\b", "null", result)
        result = re.sub(r"\bTrue\b", "true", result)
        result = re.sub(r"\bFalse\b", "false", result)
        result = re.sub(
            r"([\{,]\s*)([A-Za-z_][A-Za-z0-9_\-]*)(\s*:)",
            r'\1"\2"\3',
            result,
        )
        if "'" in result and '"' not in result:
            result = result.replace("'", '"')
        return result

    def _parse_json_loose(self, raw: str) -> dict[str, Any] | list[Any] | None:
        """Parse JSON with best-effort repair. Returns a dict/list on success, else None."""
        if not raw:
            return None

        cleaned = self._repair_json(raw)
        try:
            return json.loads(cleaned)
        except json.JSONDecodeError:
            pass

        # Python-literal fallback (single quotes etc.), re-serialized through json.
        for candidate in (raw.strip(), cleaned):
            try:
                obj = ast.literal_eval(candidate)
            except (ValueError, SyntaxError):
                continue
            if isinstance(obj, (dict, list, tuple)):
                try:
                    return json.loads(json.dumps(obj, default=str))
                except (TypeError, ValueError):
                    return None
        return None

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.close()
