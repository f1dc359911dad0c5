"""Voice session loop (interaction surface).

This module drives:
mic -> orchestrator -> playback

It owns the two UI flags (recording / processing) and the in-memory
conversation, and it intentionally does NOT re-implement the query pipeline.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Protocol

from cv_voice_assistant.errors import AssistantError
from cv_voice_assistant.orchestrator.query_orchestrator import QueryOrchestrator
from cv_voice_assistant.schemas import ConversationTurn, CVData, Speaker, TurnResult, TurnState
from cv_voice_assistant.voice.stt import AudioBlob

logger = logging.getLogger(__name__)

Notifier = Callable[[str], None]


@dataclass(frozen=True)
class VoiceSessionConfig:
    artifacts_dir: str = "data/sessions"
    # Container the synthesizer returns; playback needs "wav".
    playback_format: str = "mp3"
    save_artifacts: bool = True


class AudioIOProtocol(Protocol):
    async def start_recording(self) -> None: ...

    async def stop_recording(self) -> Any: ...

    def to_wav_bytes(self, audio: Any) -> bytes: ...

    def write_audio(self, path: str | Path, data: bytes) -> Path: ...

    async def play_audio(self, data: bytes, *, audio_format: str) -> bool: ...


def print_notifier(message: str) -> None:
    print(f"\n[Voice] ! {message}\n", flush=True)


class VoiceSession:
    def __init__(
        self,
        *,
        orchestrator: QueryOrchestrator,
        audio: AudioIOProtocol,
        user_id: str,
        cv_data: CVData,
        notifier: Notifier | None = None,
        config: VoiceSessionConfig | None = None,
    ) -> None:
        self._orchestrator = orchestrator
        self._audio = audio
        self._user_id = user_id
        self._cv_data = cv_data
        self._notify = notifier or print_notifier
        self._config = config or VoiceSessionConfig()

        self._state = TurnState.IDLE
        self._is_recording = False
        self._messages: list[ConversationTurn] = []
        self._turn_index = 0
        self._session_dir: Path | None = None

    @property
    def config(self) -> VoiceSessionConfig:
        return self._config

    @property
    def state(self) -> TurnState:
        return self._state

    @property
    def is_processing(self) -> bool:
        return self._state == TurnState.PROCESSING

    @property
    def is_recording(self) -> bool:
        return self._is_recording

    @property
    def messages(self) -> list[ConversationTurn]:
        return list(self._messages)

    async def start_recording(self) -> bool:
        """Begin capturing a question. Refused while a turn is processing."""
        if self.is_processing or self._is_recording:
            return False
        try:
            await self._audio.start_recording()
        except Exception as e:
            logger.error(f"Error starting recording: {e}")
            self._notify("Failed to start recording")
            return False
        self._is_recording = True
        logger.info("[VOICE] listening")
        return True

    async def stop_recording(self) -> TurnResult | None:
        """Stop capturing and run the turn on what was recorded."""
        if not self._is_recording:
            return None
        self._is_recording = False

        try:
            audio = await self._audio.stop_recording()
        except Exception as e:
            logger.error(f"Error stopping recording: {e}")
            self._notify("Failed to stop recording")
            return None
        if getattr(audio, "size", 0) == 0:
            self._notify("I didn't catch anything. Please try again.")
            return None

        blob = AudioBlob(data=self._audio.to_wav_bytes(audio), mime_type="audio/wav")
        return await self.handle_audio(blob)

    async def handle_audio(self, blob: AudioBlob) -> TurnResult | None:
        """
        Run one turn: IDLE -> PROCESSING -> (playback) -> IDLE.

        Any failure notifies the user and returns to IDLE immediately. A blob
        arriving while another turn is processing is ignored.
        """
        if self.is_processing:
            logger.info("[VOICE] turn already in progress; ignoring audio")
            return None

        self._state = TurnState.PROCESSING
        self._turn_index += 1
        try:
            self._save_artifact(f"turn_{self._turn_index:03d}_question", blob.data, "wav")
            result = await self._orchestrator.process_audio_query(blob, self._user_id, self._cv_data)

            if result.transcript:
                self._append(Speaker.USER, result.transcript)
            self._append(Speaker.ASSISTANT, result.response)
            self._save_artifact(
                f"turn_{self._turn_index:03d}_reply",
                result.audio,
                self._config.playback_format,
            )

            played = await self._audio.play_audio(result.audio, audio_format=self._config.playback_format)
            if not played:
                logger.info("[VOICE][AUDIO] reply not played; see session artifacts")
            return result
        except AssistantError as e:
            logger.error(f"Error processing audio: {e}", exc_info=e.__cause__ is not None)
            self._notify("Failed to process query")
            return None
        except Exception as e:
            logger.error(f"Unexpected error processing audio: {e}", exc_info=True)
            self._notify("Failed to process query")
            return None
        finally:
            self._state = TurnState.IDLE

    async def run(self) -> None:
        """Push-to-talk loop on the terminal until the user types 'q'."""
        print("\n[Voice] Press Enter to ask a question, or type q then Enter to quit.", flush=True)
        while True:
            choice = await asyncio.to_thread(input, "\n[Voice] Press Enter to start recording... ")
            if (choice or "").strip().lower() in {"q", "quit", "exit"}:
                break

            if not await self.start_recording():
                continue
            await asyncio.to_thread(input, "[Voice] Recording... press Enter to stop. ")

            print("[Voice] Processing response...", flush=True)
            result = await self.stop_recording()
            if result is not None:
                print(f"\n[Recruiter] {result.transcript}\n")
                print(f"[Assistant] {result.response}\n")

    def _append(self, speaker: Speaker, content: str) -> None:
        turn = ConversationTurn(speaker=speaker, content=content)
        self._messages.append(turn)
        self._log_turn(turn)

    def _ensure_session_dir(self) -> Path:
        if self._session_dir is None:
            ts = datetime.now().strftime("%Y%m%d_%H%M%S")
            d = Path(self._config.artifacts_dir) / f"{self._user_id}_{ts}"
            d.mkdir(parents=True, exist_ok=True)
            self._session_dir = d
        return self._session_dir

    def _save_artifact(self, stem: str, data: bytes, ext: str) -> None:
        if not self._config.save_artifacts or not data:
            return
        self._audio.write_audio(self._ensure_session_dir() / f"{stem}.{ext}", data)

    def _log_turn(self, turn: ConversationTurn) -> None:
        if not self._config.save_artifacts:
            return
        rec = {
            "ts": turn.timestamp.isoformat(),
            "turn": self._turn_index,
            "speaker": turn.speaker.value,
            "text": turn.content,
        }
        with (self._ensure_session_dir() / "turns.jsonl").open("a", encoding="utf-8") as f:
            f.write(json.dumps(rec, ensure_ascii=False) + "\n")
