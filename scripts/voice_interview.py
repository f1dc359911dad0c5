#!/usr/bin/env python

import argparse
import asyncio
import os
import sys

from cv_voice_assistant.config import get_settings
from cv_voice_assistant.main import build_components
from cv_voice_assistant.orchestrator.cv_ingestion import UploadedFile
from cv_voice_assistant.schemas import CVData
from cv_voice_assistant.voice.audio_io import AudioIO, AudioIOConfig
from cv_voice_assistant.voice.voice_session import VoiceSession, VoiceSessionConfig


async def _load_cv(args, document_store) -> CVData:
    if args.cv_file:
        await document_store.initialize_user(args.user_id)
        return await document_store.store_document(UploadedFile.from_path(args.cv_file), args.user_id)

    documents = await document_store.list_documents(args.user_id)
    if not documents:
        raise RuntimeError(
            f"No CV stored for user {args.user_id!r}. Pass --cv-file or run `cv-voice-assistant ingest` first."
        )
    return documents[0].cv_data


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Answer spoken interview questions about a stored CV")
    p.add_argument(
        "--user-id",
        default=os.getenv("CV_VOICE_USER_ID"),
        required=os.getenv("CV_VOICE_USER_ID") is None,
        help="Owner of the CV (default: CV_VOICE_USER_ID)",
    )
    p.add_argument("--cv-file", help="Ingest this CV before the session starts")

    p.add_argument(
        "--artifacts-dir",
        default=os.getenv("CV_VOICE_ARTIFACTS_DIR", "data/sessions"),
        help="Where to store session artifacts (default: CV_VOICE_ARTIFACTS_DIR or data/sessions)",
    )
    p.add_argument(
        "--sample-rate",
        type=int,
        default=int(os.getenv("CV_VOICE_SAMPLE_RATE", "44100") or "44100"),
        help="Microphone sample rate (default: CV_VOICE_SAMPLE_RATE or 44100)",
    )
    p.add_argument(
        "--save-artifacts",
        default=os.getenv("CV_VOICE_SAVE_ARTIFACTS", "true"),
        help="Write question/reply audio and turns.jsonl (default: CV_VOICE_SAVE_ARTIFACTS or true)",
    )
    p.add_argument(
        "--playback-timeout",
        type=float,
        default=float(os.getenv("CV_VOICE_PLAYBACK_TIMEOUT_S", "120") or "120"),
        help="Max seconds to wait for reply playback (default: CV_VOICE_PLAYBACK_TIMEOUT_S or 120)",
    )
    return p


async def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)

    def _flag(v: str) -> bool:
        return (v or "").strip().lower() in {"1", "true", "yes", "y", "on"}

    settings = get_settings()
    # Speaker playback decodes WAV only.
    components = await build_components(settings, tts_format="wav")
    try:
        cv_data = await _load_cv(args, components.document_store)

        session = VoiceSession(
            orchestrator=components.orchestrator,
            audio=AudioIO(AudioIOConfig(sample_rate=args.sample_rate, playback_timeout_s=args.playback_timeout)),
            user_id=args.user_id,
            cv_data=cv_data,
            config=VoiceSessionConfig(
                artifacts_dir=args.artifacts_dir,
                playback_format="wav",
                save_artifacts=_flag(args.save_artifacts),
            ),
        )
        await session.run()
    finally:
        await components.close()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        raise SystemExit(0)
    except RuntimeError as e:
        print(str(e), file=sys.stderr)
        raise SystemExit(1)
