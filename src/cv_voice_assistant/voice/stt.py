"""Speech-to-text (hosted).

Validates the recorded blob locally, then delegates to the hosted
transcription endpoint.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from cv_voice_assistant.config import get_settings
from cv_voice_assistant.errors import (
    SizeLimitExceededError,
    TranscriptionFailedError,
    UnsupportedFormatError,
)

if TYPE_CHECKING:
    from openai import AsyncOpenAI

logger = logging.getLogger(__name__)

MAX_AUDIO_BYTES = 25 * 1024 * 1024
SUPPORTED_MIME_TYPES = ("audio/webm", "audio/wav", "audio/mp3", "audio/mpeg")

_EXTENSIONS = {
    "audio/webm": "webm",
    "audio/wav": "wav",
    "audio/mp3": "mp3",
    "audio/mpeg": "mp3",
}


@dataclass(frozen=True)
class AudioBlob:
    """Recorded audio plus its MIME label."""

    data: bytes
    mime_type: str

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def base_mime_type(self) -> str:
        # "audio/webm;codecs=opus" -> "audio/webm"
        return self.mime_type.split(";", 1)[0].strip().lower()


@dataclass(frozen=True)
class STTConfig:
    model: str = "whisper-1"
    language: str = "en"
    temperature: float = 0.3


def validate_audio_format(blob: AudioBlob) -> bool:
    """
    Check that a blob can be sent for transcription.

    Raises:
        UnsupportedFormatError: MIME type not in SUPPORTED_MIME_TYPES.
        SizeLimitExceededError: Payload larger than MAX_AUDIO_BYTES.
    """
    logger.debug(f"Validating audio format type={blob.mime_type!r} size={blob.size}")

    if blob.base_mime_type not in SUPPORTED_MIME_TYPES:
        raise UnsupportedFormatError(blob.mime_type)

    if blob.size > MAX_AUDIO_BYTES:
        raise SizeLimitExceededError(blob.size, MAX_AUDIO_BYTES)

    return True


class STTProvider:
    async def transcribe(self, blob: AudioBlob) -> str:
        raise NotImplementedError


class HostedSTT(STTProvider):
    """Hosted transcription wrapper (OpenAI audio API)."""

    def __init__(self, client: "AsyncOpenAI", config: STTConfig | None = None) -> None:
        if config is None:
            settings = get_settings()
            config = STTConfig(model=settings.transcription_model)
        self._client = client
        self._config = config

    @property
    def config(self) -> STTConfig:
        return self._config

    async def transcribe(self, blob: AudioBlob) -> str:
        """
        Transcribe an audio blob to text.

        Validation failures are raised as-is and no request is made.

        Raises:
            UnsupportedFormatError, SizeLimitExceededError: Local validation failed.
            TranscriptionFailedError: The hosted call failed.
        """
        validate_audio_format(blob)

        filename = f"audio.{_EXTENSIONS[blob.base_mime_type]}"
        logger.debug(f"[VOICE][STT] start size={blob.size} type={blob.mime_type}")

        try:
            transcript = await self._client.audio.transcriptions.create(
                file=(filename, blob.data, blob.base_mime_type),
                model=self._config.model,
                language=self._config.language,
                response_format="text",
                temperature=self._config.temperature,
            )
        except Exception as e:
            logger.error(f"Audio transcription error: {e}")
            raise TranscriptionFailedError("Failed to transcribe audio") from e

        # response_format="text" yields a bare string; older SDKs return an object.
        text = transcript if isinstance(transcript, str) else getattr(transcript, "text", "")
        text = (text or "").strip()
        logger.debug(f"[VOICE][STT] done len={len(text)} sample={text[:100]!r}")
        return text
