"""
Tests for the SQL-backed embedding store.
"""

import numpy as np
import pytest

from cv_voice_assistant.models.llm_client import LLMClient
from cv_voice_assistant.retrieval.vector_store import EmbeddingStore, cosine_similarity
from cv_voice_assistant.schemas import EmbeddingMetadata, EmbeddingType

from tests.fakes import FakeOpenAI


def _meta(user_id: str = "u1", record_type: EmbeddingType = EmbeddingType.INTERVIEW_RESPONSE, ts: int | None = None):
    if ts is None:
        return EmbeddingMetadata(type=record_type, user_id=user_id)
    return EmbeddingMetadata(type=record_type, user_id=user_id, timestamp=ts)


@pytest.fixture
def store(session_factory) -> EmbeddingStore:
    return EmbeddingStore(LLMClient(FakeOpenAI()), session_factory)


def test_cosine_similarity_handles_zero_vectors() -> None:
    scores = cosine_similarity(np.array([1.0, 0.0]), np.array([[1.0, 0.0], [0.0, 0.0], [0.0, 1.0]]))
    assert scores.tolist() == pytest.approx([1.0, 0.0, 0.0])


@pytest.mark.asyncio
async def test_find_similar_applies_threshold_sort_and_top_k(store: EmbeddingStore) -> None:
    # Scores against [1, 0]: 1.0, ~0.995, ~0.894, ~0.707, 0.0
    for text, vec in [
        ("exact", [1.0, 0.0]),
        ("close", [1.0, 0.1]),
        ("medium", [1.0, 0.5]),
        ("far", [1.0, 1.0]),
        ("orthogonal", [0.0, 1.0]),
    ]:
        await store.store(text, vec, _meta())

    matches = await store.find_similar([1.0, 0.0], "u1", EmbeddingType.INTERVIEW_RESPONSE, 0.7, 3)

    assert [m.content for m in matches] == ["exact", "close", "medium"]
    scores = [m.score for m in matches]
    assert scores == sorted(scores, reverse=True)
    assert all(s >= 0.7 for s in scores)


@pytest.mark.asyncio
async def test_find_similar_drops_everything_below_threshold(store: EmbeddingStore) -> None:
    await store.store("orthogonal", [0.0, 1.0], _meta())

    assert await store.find_similar([1.0, 0.0], "u1", EmbeddingType.INTERVIEW_RESPONSE, 0.7, 3) == []


@pytest.mark.asyncio
async def test_find_similar_is_scoped_by_user_and_type(store: EmbeddingStore) -> None:
    await store.store("mine", [1.0, 0.0], _meta("u1"))
    await store.store("someone else", [1.0, 0.0], _meta("u2"))
    await store.store("my cv", [1.0, 0.0], _meta("u1", EmbeddingType.CV_DOCUMENT))

    responses = await store.find_similar([1.0, 0.0], "u1", EmbeddingType.INTERVIEW_RESPONSE, 0.7, 10)
    documents = await store.find_similar([1.0, 0.0], "u1", "cv_document", 0.7, 10)

    assert [m.content for m in responses] == ["mine"]
    assert [m.content for m in documents] == ["my cv"]


@pytest.mark.asyncio
async def test_find_similar_requires_user_id(store: EmbeddingStore) -> None:
    with pytest.raises(ValueError):
        await store.find_similar([1.0, 0.0], "", EmbeddingType.INTERVIEW_RESPONSE, 0.7, 3)


@pytest.mark.asyncio
async def test_find_similar_skips_mismatched_dimensions(store: EmbeddingStore) -> None:
    await store.store("old model", [1.0, 0.0, 0.0], _meta())
    await store.store("current", [1.0, 0.0], _meta())

    matches = await store.find_similar([1.0, 0.0], "u1", EmbeddingType.INTERVIEW_RESPONSE, 0.7, 3)
    assert [m.content for m in matches] == ["current"]


@pytest.mark.asyncio
async def test_repeated_store_creates_distinct_records(store: EmbeddingStore) -> None:
    first = await store.store("Q: same\nA: same", [1.0, 0.0], _meta())
    second = await store.store("Q: same\nA: same", [1.0, 0.0], _meta())

    assert first != second
    assert await store.count("u1", EmbeddingType.INTERVIEW_RESPONSE) == 2


@pytest.mark.asyncio
async def test_embed_delegates_to_llm_client(session_factory) -> None:
    fake = FakeOpenAI(embed_fn=lambda text: [float(len(text)), 1.0])
    store = EmbeddingStore(LLMClient(fake), session_factory)

    assert await store.embed("abc") == [3.0, 1.0]


@pytest.mark.asyncio
async def test_interaction_cap_prunes_oldest(session_factory) -> None:
    store = EmbeddingStore(LLMClient(FakeOpenAI()), session_factory, max_interactions_per_user=2)

    for i in range(4):
        await store.store(f"turn {i}", [1.0, 0.0], _meta(ts=1_000 + i))
    await store.store("cv", [1.0, 0.0], _meta(record_type=EmbeddingType.CV_DOCUMENT, ts=1))

    assert await store.count("u1", EmbeddingType.INTERVIEW_RESPONSE) == 2
    assert await store.count("u1", EmbeddingType.CV_DOCUMENT) == 1
    matches = await store.find_similar([1.0, 0.0], "u1", EmbeddingType.INTERVIEW_RESPONSE, 0.0, 10)
    assert sorted(m.content for m in matches) == ["turn 2", "turn 3"]


@pytest.mark.asyncio
async def test_database_errors_become_storage_failed(tmp_path) -> None:
    from cv_voice_assistant.db.session import create_engine, create_session_factory
    from cv_voice_assistant.errors import StorageFailedError

    # Schema never created, so every query fails.
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'empty.db'}")
    store = EmbeddingStore(LLMClient(FakeOpenAI()), create_session_factory(engine))
    try:
        with pytest.raises(StorageFailedError) as exc_info:
            await store.count("u1", EmbeddingType.INTERVIEW_RESPONSE)
        assert exc_info.value.__cause__ is not None

        with pytest.raises(StorageFailedError):
            await store.find_similar([1.0, 0.0], "u1", EmbeddingType.INTERVIEW_RESPONSE, 0.7, 3)
    finally:
        await engine.dispose()
