"""
Query orchestrator.

Runs one recruiter question end to end:
transcribe -> embed -> retrieve prior context -> prompt -> complete ->
persist Q/A -> synthesize.

Every step is awaited in order; any failure propagates to the caller and
the whole turn must be redone.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Sequence

from cv_voice_assistant.config import get_settings
from cv_voice_assistant.errors import NoResponseGeneratedError
from cv_voice_assistant.models.llm_client import Message
from cv_voice_assistant.schemas import (
    CVData,
    EmbeddingMetadata,
    EmbeddingType,
    SimilarityMatch,
    TurnResult,
)

if TYPE_CHECKING:
    from cv_voice_assistant.models.llm_client import LLMClientBase
    from cv_voice_assistant.retrieval.vector_store import VectorStoreBase
    from cv_voice_assistant.voice.stt import AudioBlob, STTProvider
    from cv_voice_assistant.voice.tts import TTSProvider

logger = logging.getLogger(__name__)


SYSTEM_PROMPT = """You are an AI assistant helping a recruiter evaluate a candidate's CV and experience.
Use the provided CV data and previous conversation context to engage in a natural discussion about the candidate's experience.
Focus on:
- Understanding the depth of their experience
- Technical skills and achievements
- Problem-solving approaches
- Project impacts and outcomes

Keep responses concise and professional."""

CHAT_TEMPERATURE = 0.7
CHAT_MAX_TOKENS = 300


def build_context(cv_data: CVData, prior_context: Sequence[SimilarityMatch]) -> str:
    """Render the CV and retrieved snippets into the context message."""
    experience_blocks = []
    for exp in cv_data.experience:
        header = f"{exp.role} at {exp.company}"
        if exp.period:
            header += f" ({exp.period})"
        experience_blocks.append("\n".join([header, *exp.highlights]))

    sections = [
        f"CV Summary: {cv_data.personal_info.summary}",
        f"Skills: {', '.join(cv_data.skills)}",
        "Experience:\n" + "\n\n".join(experience_blocks),
        "Previous Discussion Context:\n" + "\n".join(item.content for item in prior_context),
    ]
    return "\n\n".join(sections)


def format_interaction(transcript: str, response: str) -> str:
    """Text stored for a completed Q/A pair."""
    return f"Q: {transcript}\nA: {response}"


class QueryOrchestrator:
    """
    Sequences the adapters for a single spoken question.

    Holds no per-turn state; the caller (an interaction session) owns the
    idle/processing flag.
    """

    def __init__(
        self,
        llm_client: "LLMClientBase",
        embedding_store: "VectorStoreBase",
        stt: "STTProvider",
        tts: "TTSProvider",
        *,
        similarity_threshold: float | None = None,
        top_k: int | None = None,
        retrieval_types: Sequence[EmbeddingType | str] | None = None,
    ) -> None:
        """
        Initialize the query orchestrator.

        Args:
            llm_client: Chat completion client.
            embedding_store: Embedding generation, storage and search.
            stt: Speech-to-text adapter.
            tts: Text-to-speech adapter.
            similarity_threshold: Minimum score for prior context (uses config if not provided).
            top_k: Prior-context snippets per tag (uses config if not provided).
            retrieval_types: Tags searched for prior context (uses config if not provided).
        """
        settings = get_settings()
        self._llm_client = llm_client
        self._embedding_store = embedding_store
        self._stt = stt
        self._tts = tts
        self._threshold = settings.similarity_threshold if similarity_threshold is None else similarity_threshold
        self._top_k = settings.similarity_top_k if top_k is None else top_k
        self._retrieval_types = [
            EmbeddingType(t) for t in (retrieval_types if retrieval_types is not None else settings.retrieval_types)
        ]

    async def process_audio_query(
        self,
        audio: "AudioBlob",
        user_id: str,
        cv_data: CVData,
    ) -> TurnResult:
        """
        Answer one spoken question about the candidate.

        Args:
            audio: Recorded question.
            user_id: User whose stored context is searched and extended.
            cv_data: The candidate's CV, used directly as context.

        Returns:
            Response text, synthesized audio and the transcript.

        Raises:
            AssistantError: Whichever adapter failed; nothing is retried.
        """
        logger.info(f"Processing audio query for user {user_id}")

        transcript = await self._stt.transcribe(audio)
        logger.debug(f"Audio transcribed: {transcript!r}")

        query_vector = await self._embedding_store.embed(transcript)

        prior_context: list[SimilarityMatch] = []
        for record_type in self._retrieval_types:
            prior_context.extend(
                await self._embedding_store.find_similar(
                    query_vector,
                    user_id,
                    record_type,
                    self._threshold,
                    self._top_k,
                )
            )
        # top_k bounds the whole turn, not each tag.
        prior_context.sort(key=lambda match: match.score, reverse=True)
        prior_context = prior_context[: self._top_k]
        logger.debug(f"Retrieved {len(prior_context)} prior context snippets")

        context = build_context(cv_data, prior_context)

        # Context goes in as its own user message, ahead of the question.
        completion = await self._llm_client.chat(
            [
                Message(role="system", content=SYSTEM_PROMPT),
                Message(role="user", content=context),
                Message(role="user", content=transcript),
            ],
            temperature=CHAT_TEMPERATURE,
            max_tokens=CHAT_MAX_TOKENS,
        )
        response = (completion.content or "").strip()
        if not response:
            raise NoResponseGeneratedError("No response generated")
        logger.debug(f"Generated response: {response[:200]!r}")

        interaction = format_interaction(transcript, response)
        interaction_vector = await self._embedding_store.embed(interaction)
        await self._embedding_store.store(
            interaction,
            interaction_vector,
            EmbeddingMetadata(type=EmbeddingType.INTERVIEW_RESPONSE, user_id=user_id),
        )

        audio_bytes = await self._tts.synthesize(response)

        logger.info(f"Turn complete: response_len={len(response)} audio_bytes={len(audio_bytes)}")
        return TurnResult(response=response, audio=audio_bytes, transcript=transcript)
