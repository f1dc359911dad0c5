"""
Embedding store.

Generates embeddings through the hosted model, persists
(text, vector, metadata) records, and answers similarity queries scoped to
a single user and category tag.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING
from uuid import UUID

import numpy as np
from sqlalchemy.exc import SQLAlchemyError

from cv_voice_assistant.config import get_settings
from cv_voice_assistant.db.repository import EmbeddingRepository
from cv_voice_assistant.errors import StorageFailedError
from cv_voice_assistant.schemas import EmbeddingMetadata, EmbeddingType, SimilarityMatch

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from cv_voice_assistant.models.llm_client import LLMClientBase

logger = logging.getLogger(__name__)


def cosine_similarity(query: np.ndarray, matrix: np.ndarray) -> np.ndarray:
    """Cosine similarity between one vector and each row of ``matrix``. Zero-norm rows score 0."""
    query_norm = np.linalg.norm(query)
    row_norms = np.linalg.norm(matrix, axis=1)
    denom = row_norms * query_norm
    scores = np.zeros(matrix.shape[0], dtype=np.float64)
    nonzero = denom > 0
    scores[nonzero] = (matrix[nonzero] @ query) / denom[nonzero]
    return scores


class VectorStoreBase(ABC):
    """Abstract base class for embedding stores."""

    @abstractmethod
    async def embed(self, text: str) -> list[float]:
        """
        Embed text with the hosted model.

        Args:
            text: Text to embed.

        Returns:
            Embedding vector.
        """
        ...

    @abstractmethod
    async def store(self, text: str, vector: list[float], metadata: EmbeddingMetadata) -> UUID:
        """
        Persist one embedding record.

        Args:
            text: Embedded text.
            vector: Embedding vector.
            metadata: Ownership and category tags.

        Returns:
            ID of the new record.
        """
        ...

    @abstractmethod
    async def find_similar(
        self,
        vector: list[float],
        user_id: str,
        record_type: EmbeddingType | str,
        threshold: float,
        top_k: int,
    ) -> list[SimilarityMatch]:
        """
        Find stored records similar to ``vector``.

        Args:
            vector: Query vector.
            user_id: Only this user's records are considered.
            record_type: Only records with this tag are considered.
            threshold: Minimum similarity score.
            top_k: Maximum number of results.

        Returns:
            Matches ordered by descending score.
        """
        ...


class EmbeddingStore(VectorStoreBase):
    """
    SQL-backed embedding store.

    Records live in one flat table filtered by ``user_id`` and ``type``;
    similarity is cosine, computed over the scoped rows.
    """

    def __init__(
        self,
        llm_client: "LLMClientBase",
        session_factory: "async_sessionmaker[AsyncSession]",
        max_interactions_per_user: int | None = None,
    ) -> None:
        """
        Initialize the embedding store.

        Args:
            llm_client: Client used to generate embeddings.
            session_factory: Factory for database sessions.
            max_interactions_per_user: Keep only this many newest
                ``interview_response`` records per user (uses config if not
                provided; None means unbounded).
        """
        self._llm_client = llm_client
        self._session_factory = session_factory
        if max_interactions_per_user is None:
            max_interactions_per_user = get_settings().max_interactions_per_user
        self._max_interactions = max_interactions_per_user

    async def embed(self, text: str) -> list[float]:
        return await self._llm_client.embed(text)

    async def store(self, text: str, vector: list[float], metadata: EmbeddingMetadata) -> UUID:
        try:
            async with self._session_factory() as session, session.begin():
                repo = EmbeddingRepository(session)
                record = await repo.add(text, vector, metadata)
                record_id = record.id

                if (
                    self._max_interactions is not None
                    and metadata.type == EmbeddingType.INTERVIEW_RESPONSE
                ):
                    pruned = await repo.prune_oldest(
                        metadata.user_id,
                        metadata.type.value,
                        keep=self._max_interactions,
                    )
                    if pruned:
                        logger.debug(f"Pruned {pruned} old interview responses for user {metadata.user_id}")
        except SQLAlchemyError as e:
            logger.error(f"Error storing embedding: {e}")
            raise StorageFailedError("Failed to store embedding") from e

        logger.debug(f"Stored embedding {record_id} type={metadata.type.value} user={metadata.user_id}")
        return record_id

    async def find_similar(
        self,
        vector: list[float],
        user_id: str,
        record_type: EmbeddingType | str,
        threshold: float,
        top_k: int,
    ) -> list[SimilarityMatch]:
        if not user_id:
            raise ValueError("user_id is required for similarity search")
        if top_k <= 0:
            return []

        type_value = record_type.value if isinstance(record_type, EmbeddingType) else EmbeddingType(record_type).value

        try:
            async with self._session_factory() as session:
                records = await EmbeddingRepository(session).list_scoped(user_id, type_value)
        except SQLAlchemyError as e:
            logger.error(f"Error querying embeddings: {e}")
            raise StorageFailedError("Failed to query embeddings") from e

        query = np.asarray(vector, dtype=np.float64)
        candidates = [r for r in records if len(r.vector) == query.shape[0]]
        if len(candidates) != len(records):
            logger.warning(
                f"Skipped {len(records) - len(candidates)} records with mismatched dimensions "
                f"(user={user_id}, type={type_value})"
            )
        if not candidates:
            return []

        matrix = np.asarray([r.vector for r in candidates], dtype=np.float64)
        scores = cosine_similarity(query, matrix)

        order = np.argsort(-scores, kind="stable")
        matches: list[SimilarityMatch] = []
        for idx in order:
            score = float(scores[idx])
            if score < threshold:
                break
            matches.append(SimilarityMatch(content=candidates[idx].content, score=score))
            if len(matches) >= top_k:
                break

        logger.debug(f"Similarity search user={user_id} type={type_value} hits={len(matches)}")
        return matches

    async def count(self, user_id: str, record_type: EmbeddingType | str) -> int:
        """Number of stored records for a user and tag."""
        type_value = record_type.value if isinstance(record_type, EmbeddingType) else EmbeddingType(record_type).value
        try:
            async with self._session_factory() as session:
                return await EmbeddingRepository(session).count_scoped(user_id, type_value)
        except SQLAlchemyError as e:
            logger.error(f"Error counting embeddings: {e}")
            raise StorageFailedError("Failed to count embeddings") from e
