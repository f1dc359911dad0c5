"""
Main entry point for the CV voice assistant.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from dataclasses import dataclass, replace

from sqlalchemy.ext.asyncio import AsyncEngine

from cv_voice_assistant.config import Settings, get_settings
from cv_voice_assistant.db.document_store import DocumentStore
from cv_voice_assistant.db.session import create_engine, create_session_factory, init_db
from cv_voice_assistant.errors import AssistantError, InitializationFailedError
from cv_voice_assistant.models.llm_client import LLMClient, create_openai_client
from cv_voice_assistant.orchestrator.cv_ingestion import CVAnalyzer, UploadedFile
from cv_voice_assistant.orchestrator.query_orchestrator import QueryOrchestrator
from cv_voice_assistant.retrieval.vector_store import EmbeddingStore
from cv_voice_assistant.voice.stt import HostedSTT
from cv_voice_assistant.voice.tts import HostedTTS


def setup_logging() -> None:
    """Configure application logging."""
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


@dataclass
class Components:
    """Everything wired together for one process."""

    engine: AsyncEngine
    llm_client: LLMClient
    embedding_store: EmbeddingStore
    document_store: DocumentStore
    orchestrator: QueryOrchestrator
    tts: HostedTTS

    async def close(self) -> None:
        await self.llm_client.close()
        await self.engine.dispose()


async def build_components(settings: Settings | None = None, *, tts_format: str | None = None) -> Components:
    """
    Construct the adapter layer.

    Raises:
        InitializationFailedError: If the API credential is missing.
    """
    settings = settings or get_settings()
    client = create_openai_client(settings)

    engine = create_engine(settings.database_url, echo=settings.debug)
    await init_db(engine)
    session_factory = create_session_factory(engine)

    llm_client = LLMClient(client, model=settings.chat_model, embedding_model=settings.embedding_model)
    embedding_store = EmbeddingStore(
        llm_client,
        session_factory,
        max_interactions_per_user=settings.max_interactions_per_user,
    )
    document_store = DocumentStore(session_factory, embedding_store, CVAnalyzer(llm_client))

    tts = HostedTTS(client)
    if tts_format:
        tts = HostedTTS(client, replace(tts.config, response_format=tts_format))

    orchestrator = QueryOrchestrator(llm_client, embedding_store, HostedSTT(client), tts)
    return Components(
        engine=engine,
        llm_client=llm_client,
        embedding_store=embedding_store,
        document_store=document_store,
        orchestrator=orchestrator,
        tts=tts,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="cv-voice-assistant")
    sub = parser.add_subparsers(dest="command", required=True)

    ingest = sub.add_parser("ingest", help="Parse, analyze and store a CV")
    ingest.add_argument("file", help="Path to the CV (.pdf, .docx or text)")
    ingest.add_argument("--user-id", required=True)

    docs = sub.add_parser("documents", help="List a user's stored CVs, newest first")
    docs.add_argument("--user-id", required=True)

    interview = sub.add_parser("interview", help="Ask spoken questions about the user's latest CV")
    interview.add_argument("--user-id", required=True)
    interview.add_argument("--artifacts-dir", default=None, help="Where to store session audio and turns")
    return parser


async def _ingest(components: Components, args: argparse.Namespace) -> None:
    await components.document_store.initialize_user(args.user_id)
    cv_data = await components.document_store.store_document(UploadedFile.from_path(args.file), args.user_id)
    print(cv_data.model_dump_json(indent=2))


async def _documents(components: Components, args: argparse.Namespace) -> None:
    for doc in await components.document_store.list_documents(args.user_id):
        print(f"{doc.created_at.isoformat()}  {doc.id}  {doc.file_name}  ({len(doc.cv_data.experience)} roles)")


async def _interview(components: Components, args: argparse.Namespace, settings: Settings) -> None:
    from cv_voice_assistant.voice.audio_io import AudioIO, AudioIOConfig
    from cv_voice_assistant.voice.voice_session import VoiceSession, VoiceSessionConfig

    documents = await components.document_store.list_documents(args.user_id)
    if not documents:
        raise SystemExit(f"No CV stored for user {args.user_id}. Run `ingest` first.")

    session = VoiceSession(
        orchestrator=components.orchestrator,
        audio=AudioIO(AudioIOConfig(sample_rate=settings.sample_rate)),
        user_id=args.user_id,
        cv_data=documents[0].cv_data,
        config=VoiceSessionConfig(
            artifacts_dir=args.artifacts_dir or settings.artifacts_dir,
            playback_format=components.tts.config.response_format,
        ),
    )
    await session.run()


async def run(argv: list[str] | None = None) -> None:
    """Parse arguments, wire components and dispatch the command."""
    args = build_parser().parse_args(argv)
    settings = get_settings()
    logger = logging.getLogger(__name__)

    logger.info("Initializing CV voice assistant...")
    # Local playback can only decode WAV.
    components = await build_components(settings, tts_format="wav" if args.command == "interview" else None)
    try:
        if args.command == "ingest":
            await _ingest(components, args)
        elif args.command == "documents":
            await _documents(components, args)
        else:
            await _interview(components, args, settings)
    finally:
        await components.close()


def main() -> None:
    """Main entry point for the application."""
    setup_logging()

    try:
        asyncio.run(run(sys.argv[1:]))
    except KeyboardInterrupt:
        print("\nSession terminated by user.")
        sys.exit(0)
    except InitializationFailedError as e:
        logging.error(f"Startup failed: {e}")
        sys.exit(2)
    except AssistantError as e:
        logging.error(f"Application error: {e}", exc_info=True)
        sys.exit(1)
    except Exception as e:
        logging.error(f"Application error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
