"""Voice subsystem.

This package provides the hosted audio adapters and the push-to-talk
interaction surface:

mic -> STT -> orchestrator -> TTS -> speaker
"""

from cv_voice_assistant.voice.audio_io import AudioIO, AudioIOConfig
from cv_voice_assistant.voice.stt import (
    MAX_AUDIO_BYTES,
    SUPPORTED_MIME_TYPES,
    AudioBlob,
    HostedSTT,
    STTConfig,
    STTProvider,
    validate_audio_format,
)
from cv_voice_assistant.voice.tts import MAX_TTS_CHARS, HostedTTS, TTSConfig, TTSProvider, truncate_for_speech
from cv_voice_assistant.voice.voice_session import VoiceSession, VoiceSessionConfig

__all__ = [
    "AudioIO",
    "AudioIOConfig",
    "MAX_AUDIO_BYTES",
    "SUPPORTED_MIME_TYPES",
    "AudioBlob",
    "HostedSTT",
    "STTConfig",
    "STTProvider",
    "validate_audio_format",
    "MAX_TTS_CHARS",
    "HostedTTS",
    "TTSConfig",
    "TTSProvider",
    "truncate_for_speech",
    "VoiceSession",
    "VoiceSessionConfig",
]

