"""
In-memory stand-ins for the hosted API client.

``FakeOpenAI`` mirrors the slice of the ``AsyncOpenAI`` surface the adapters
use, so the real adapters run end to end without network access.
"""

import json
from types import SimpleNamespace
from typing import Any, Callable

SAMPLE_CV = {
    "personal_info": {
        "name": "Jane Doe",
        "email": "jane@example.com",
        "summary": "Backend engineer focused on data platforms.",
    },
    "skills": ["Python", "PostgreSQL"],
    "experience": [
        {
            "role": "Software Engineer",
            "company": "Acme",
            "period": "2019 - 2022",
            "highlights": ["Built the billing pipeline"],
        }
    ],
}


def constant_embedding(text: str) -> list[float]:
    return [1.0, 0.0, 0.0]


def _default_reply(messages: list[dict[str, Any]]) -> str:
    if "valid JSON only" in messages[0]["content"]:
        return json.dumps(SAMPLE_CV)
    return "She built the billing pipeline at Acme."


class _Completions:
    def __init__(self, owner: "FakeOpenAI") -> None:
        self._owner = owner

    async def create(self, **kwargs: Any) -> SimpleNamespace:
        self._owner.chat_calls.append(kwargs)
        if self._owner.chat_error is not None:
            raise self._owner.chat_error
        content = self._owner.reply_fn(kwargs["messages"])
        return SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content=content), finish_reason="stop")],
            usage=None,
            model=kwargs["model"],
        )


class _Embeddings:
    def __init__(self, owner: "FakeOpenAI") -> None:
        self._owner = owner

    async def create(self, **kwargs: Any) -> SimpleNamespace:
        self._owner.embedding_calls.append(kwargs)
        return SimpleNamespace(data=[SimpleNamespace(embedding=self._owner.embed_fn(kwargs["input"]))])


class _Transcriptions:
    def __init__(self, owner: "FakeOpenAI") -> None:
        self._owner = owner

    async def create(self, **kwargs: Any) -> str:
        self._owner.transcription_calls.append(kwargs)
        if self._owner.transcription_error is not None:
            raise self._owner.transcription_error
        return self._owner.transcript


class _Speech:
    def __init__(self, owner: "FakeOpenAI") -> None:
        self._owner = owner

    async def create(self, **kwargs: Any) -> SimpleNamespace:
        self._owner.speech_calls.append(kwargs)
        if self._owner.speech_error is not None:
            raise self._owner.speech_error
        return SimpleNamespace(content=self._owner.speech_bytes)


class FakeOpenAI:
    def __init__(
        self,
        *,
        transcript: str = "Tell me about your role at Acme",
        reply_fn: Callable[[list[dict[str, Any]]], str] = _default_reply,
        embed_fn: Callable[[str], list[float]] = constant_embedding,
        speech_bytes: bytes = b"ID3-fake-mp3",
    ) -> None:
        self.transcript = transcript
        self.reply_fn = reply_fn
        self.embed_fn = embed_fn
        self.speech_bytes = speech_bytes

        self.chat_error: Exception | None = None
        self.transcription_error: Exception | None = None
        self.speech_error: Exception | None = None

        self.chat_calls: list[dict[str, Any]] = []
        self.embedding_calls: list[dict[str, Any]] = []
        self.transcription_calls: list[dict[str, Any]] = []
        self.speech_calls: list[dict[str, Any]] = []
        self.closed = False

        self.chat = SimpleNamespace(completions=_Completions(self))
        self.embeddings = _Embeddings(self)
        self.audio = SimpleNamespace(transcriptions=_Transcriptions(self), speech=_Speech(self))

    async def close(self) -> None:
        self.closed = True


