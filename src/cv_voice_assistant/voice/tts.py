"""Text-to-speech (hosted).

Sends the answer text to the hosted speech endpoint and returns the encoded
audio bytes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from cv_voice_assistant.config import get_settings
from cv_voice_assistant.errors import SynthesisFailedError

if TYPE_CHECKING:
    from openai import AsyncOpenAI

logger = logging.getLogger(__name__)

MAX_TTS_CHARS = 4000
TRUNCATION_MARKER = "..."


@dataclass(frozen=True)
class TTSConfig:
    model: str = "tts-1"
    voice: str = "alloy"
    speed: float = 1.0
    response_format: str = "mp3"


def truncate_for_speech(text: str, max_chars: int = MAX_TTS_CHARS) -> str:
    """Hard cutoff at ``max_chars`` plus an ellipsis; no word-boundary handling."""
    if len(text) > max_chars:
        return text[:max_chars] + TRUNCATION_MARKER
    return text


class TTSProvider:
    async def synthesize(self, text: str) -> bytes:
        raise NotImplementedError


class HostedTTS(TTSProvider):
    """Hosted speech synthesis wrapper (OpenAI audio API)."""

    def __init__(self, client: "AsyncOpenAI", config: TTSConfig | None = None) -> None:
        if config is None:
            settings = get_settings()
            config = TTSConfig(
                model=settings.tts_model,
                voice=settings.tts_voice,
                speed=settings.tts_speed,
                response_format=settings.tts_response_format,
            )
        self._client = client
        self._config = config

    @property
    def config(self) -> TTSConfig:
        return self._config

    async def synthesize(self, text: str) -> bytes:
        """
        Synthesize speech for ``text``.

        Raises:
            SynthesisFailedError: The hosted call failed.
        """
        speakable = truncate_for_speech(text)
        logger.debug(f"[VOICE][TTS] start len={len(text)} sent_len={len(speakable)} sample={text[:100]!r}")

        try:
            response = await self._client.audio.speech.create(
                model=self._config.model,
                voice=self._config.voice,
                input=speakable,
                speed=self._config.speed,
                response_format=self._config.response_format,
            )
            audio = response.content
        except Exception as e:
            logger.error(f"Speech generation error: {e}")
            raise SynthesisFailedError("Failed to generate speech") from e

        logger.debug(f"[VOICE][TTS] done bytes={len(audio)}")
        return audio
