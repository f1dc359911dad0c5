"""
Tests for the hosted speech adapters.

Covers local validation before upload, request parameters, and the
truncation applied before synthesis.
"""

import pytest

from cv_voice_assistant.errors import (
    SizeLimitExceededError,
    SynthesisFailedError,
    TranscriptionFailedError,
    UnsupportedFormatError,
)
from cv_voice_assistant.voice.stt import MAX_AUDIO_BYTES, AudioBlob, HostedSTT, STTConfig, validate_audio_format
from cv_voice_assistant.voice.tts import MAX_TTS_CHARS, HostedTTS, TTSConfig, truncate_for_speech

from tests.fakes import FakeOpenAI


class TestAudioValidation:
    """Tests for validate_audio_format."""

    @pytest.mark.parametrize("mime_type", ["audio/webm", "audio/wav", "audio/mp3", "audio/mpeg"])
    def test_supported_types_pass(self, mime_type: str) -> None:
        assert validate_audio_format(AudioBlob(data=b"\x00" * 16, mime_type=mime_type)) is True

    def test_codec_parameters_are_ignored(self) -> None:
        assert validate_audio_format(AudioBlob(data=b"\x00", mime_type="audio/webm;codecs=opus"))

    def test_unsupported_type_rejected(self) -> None:
        with pytest.raises(UnsupportedFormatError, match="Please use WebM, WAV, or MP3"):
            validate_audio_format(AudioBlob(data=b"\x00", mime_type="audio/ogg"))

    def test_exactly_at_limit_passes(self) -> None:
        assert validate_audio_format(AudioBlob(data=bytes(MAX_AUDIO_BYTES), mime_type="audio/wav"))

    def test_type_is_checked_before_size(self) -> None:
        blob = AudioBlob(data=bytes(MAX_AUDIO_BYTES + 1), mime_type="video/mp4")
        with pytest.raises(UnsupportedFormatError):
            validate_audio_format(blob)


class TestHostedSTT:
    """Tests for HostedSTT."""

    @pytest.mark.asyncio
    async def test_oversized_audio_never_reaches_the_api(self) -> None:
        fake = FakeOpenAI()
        stt = HostedSTT(fake, STTConfig())

        with pytest.raises(SizeLimitExceededError, match="25MB"):
            await stt.transcribe(AudioBlob(data=bytes(MAX_AUDIO_BYTES + 1), mime_type="audio/wav"))
        assert fake.transcription_calls == []

    @pytest.mark.asyncio
    async def test_unsupported_format_never_reaches_the_api(self) -> None:
        fake = FakeOpenAI()
        stt = HostedSTT(fake, STTConfig())

        with pytest.raises(UnsupportedFormatError):
            await stt.transcribe(AudioBlob(data=b"OggS", mime_type="audio/ogg"))
        assert fake.transcription_calls == []

    @pytest.mark.asyncio
    async def test_transcribe_sends_fixed_parameters(self) -> None:
        fake = FakeOpenAI(transcript="  What did you build at Acme?\n")
        stt = HostedSTT(fake, STTConfig())

        text = await stt.transcribe(AudioBlob(data=b"RIFF....", mime_type="audio/webm;codecs=opus"))

        assert text == "What did you build at Acme?"
        call = fake.transcription_calls[0]
        assert call["model"] == "whisper-1"
        assert call["language"] == "en"
        assert call["temperature"] == 0.3
        assert call["response_format"] == "text"
        assert call["file"] == ("audio.webm", b"RIFF....", "audio/webm")

    @pytest.mark.asyncio
    async def test_api_failure_becomes_transcription_failed(self) -> None:
        fake = FakeOpenAI()
        fake.transcription_error = ConnectionError("reset by peer")
        stt = HostedSTT(fake, STTConfig())

        with pytest.raises(TranscriptionFailedError) as exc_info:
            await stt.transcribe(AudioBlob(data=b"x", mime_type="audio/wav"))
        assert exc_info.value.__cause__ is fake.transcription_error


class TestSpeechTruncation:
    """Tests for truncate_for_speech."""

    def test_short_text_unchanged(self) -> None:
        assert truncate_for_speech("Hello there.") == "Hello there."

    def test_text_at_limit_unchanged(self) -> None:
        text = "a" * MAX_TTS_CHARS
        assert truncate_for_speech(text) == text

    def test_long_text_cut_hard_with_ellipsis(self) -> None:
        text = "word " * 1500
        out = truncate_for_speech(text)
        assert len(out) == MAX_TTS_CHARS + 3
        assert out == text[:MAX_TTS_CHARS] + "..."


class TestHostedTTS:
    """Tests for HostedTTS."""

    @pytest.mark.asyncio
    async def test_synthesize_returns_audio_bytes(self) -> None:
        fake = FakeOpenAI(speech_bytes=b"mp3-bytes")
        tts = HostedTTS(fake, TTSConfig())

        audio = await tts.synthesize("Hello")

        assert audio == b"mp3-bytes"
        assert fake.speech_calls == [
            {"model": "tts-1", "voice": "alloy", "input": "Hello", "speed": 1.0, "response_format": "mp3"}
        ]

    @pytest.mark.asyncio
    async def test_long_answer_is_truncated_before_sending(self) -> None:
        fake = FakeOpenAI()
        tts = HostedTTS(fake, TTSConfig())

        await tts.synthesize("x" * 5000)

        assert fake.speech_calls[0]["input"] == "x" * 4000 + "..."

    @pytest.mark.asyncio
    async def test_api_failure_becomes_synthesis_failed(self) -> None:
        fake = FakeOpenAI()
        fake.speech_error = TimeoutError("timed out")
        tts = HostedTTS(fake, TTSConfig())

        with pytest.raises(SynthesisFailedError) as exc_info:
            await tts.synthesize("Hello")
        assert exc_info.value.__cause__ is fake.speech_error
