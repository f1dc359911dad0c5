"""Audio capture + playback (LLM-agnostic).

This module is intentionally "dumb hardware I/O": it knows nothing about the
interview, prompts, or hosted APIs.

It provides:
- push-to-talk microphone capture (start/stop)
- in-memory WAV encoding/decoding
- speaker playback of WAV payloads
"""

from __future__ import annotations

import asyncio
import io
import logging
import wave
from dataclasses import dataclass
from pathlib import Path

import numpy as np

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AudioIOConfig:
    sample_rate: int = 44100
    channels: int = 1
    dtype: str = "int16"  # sounddevice dtype and WAV sample width
    playback_timeout_s: float = 120.0


def encode_wav(audio: np.ndarray, sample_rate: int, channels: int = 1) -> bytes:
    """Encode int16 PCM samples ``[samples, channels]`` as a WAV payload."""
    if audio.ndim == 1:
        audio = audio[:, None]
    audio_i16 = audio.astype(np.int16, copy=False)

    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(2)  # int16
        wf.setframerate(sample_rate)
        wf.writeframes(audio_i16.tobytes())
    return buf.getvalue()


def decode_wav(data: bytes) -> tuple[np.ndarray, int]:
    """Decode a 16-bit WAV payload to ``([samples, channels] int16, sample_rate)``."""
    with wave.open(io.BytesIO(data), "rb") as wf:
        sr = wf.getframerate()
        n_channels = wf.getnchannels()
        sampwidth = wf.getsampwidth()
        if sampwidth != 2:
            raise ValueError(f"Only 16-bit WAV supported, got sampwidth={sampwidth}")
        frames = wf.readframes(wf.getnframes())

    audio = np.frombuffer(frames, dtype=np.int16)
    return audio.reshape(-1, n_channels), sr


class AudioIO:
    def __init__(self, config: AudioIOConfig | None = None) -> None:
        self._config = config or AudioIOConfig()
        self._recording_stream = None
        self._recording_frames: list[np.ndarray] = []

    @property
    def config(self) -> AudioIOConfig:
        return self._config

    def _require_sounddevice(self):
        try:
            import sounddevice as sd  # type: ignore

            return sd
        except (ImportError, OSError) as e:  # pragma: no cover
            raise RuntimeError(
                "sounddevice is required for voice mode. Install Python deps with: pip install -e '.[voice]'. "
                "If you see 'PortAudio library not found', install PortAudio (Debian/Ubuntu: sudo apt-get install portaudio19-dev)."
            ) from e

    async def start_recording(self) -> None:
        """Start mic capture (push-to-talk)."""
        sd = self._require_sounddevice()
        self._recording_frames = []

        def callback(indata, frames, time, status):  # noqa: ANN001
            if status:
                logger.debug(f"Input status: {status}")
            self._recording_frames.append(indata.copy())

        self._recording_stream = sd.InputStream(
            samplerate=self._config.sample_rate,
            channels=self._config.channels,
            dtype=self._config.dtype,
            callback=callback,
        )

        await asyncio.to_thread(self._recording_stream.start)

    async def stop_recording(self) -> np.ndarray:
        """Stop mic capture and return audio as int16 numpy array [samples, channels]."""
        if self._recording_stream is None:
            return np.zeros((0, self._config.channels), dtype=np.int16)

        stream = self._recording_stream
        self._recording_stream = None

        await asyncio.to_thread(stream.stop)
        await asyncio.to_thread(stream.close)

        if not self._recording_frames:
            return np.zeros((0, self._config.channels), dtype=np.int16)

        return np.concatenate(self._recording_frames, axis=0)

    def to_wav_bytes(self, audio: np.ndarray) -> bytes:
        return encode_wav(audio, self._config.sample_rate, self._config.channels)

    def write_audio(self, path: str | Path, data: bytes) -> Path:
        """Write an encoded audio payload to disk."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        return path

    async def play_audio(self, data: bytes, *, audio_format: str) -> bool:
        """
        Play an encoded payload through the default output device.

        Only WAV can be decoded locally. Returns False (nothing played) for
        other containers.
        """
        if audio_format != "wav":
            logger.warning(f"[VOICE][AUDIO] local playback of {audio_format!r} is not supported")
            return False

        sd = self._require_sounddevice()
        audio, sr = decode_wav(data)
        audio_f32 = audio.astype(np.float32) / 32768.0
        if audio_f32.shape[1] == 1:
            audio_f32 = audio_f32.squeeze(-1)

        sd.play(audio_f32, samplerate=sr, blocking=False)
        try:
            await asyncio.wait_for(asyncio.to_thread(sd.wait), timeout=self._config.playback_timeout_s)
        except asyncio.TimeoutError:
            logger.warning(f"[VOICE][AUDIO] playback timed out after {self._config.playback_timeout_s:.0f}s")
            sd.stop()
        return True
