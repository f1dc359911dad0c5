"""Shared fixtures."""

import pytest
import pytest_asyncio

from cv_voice_assistant.config import get_settings
from cv_voice_assistant.db.session import create_engine, create_session_factory, init_db

from tests.fakes import FakeOpenAI


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch, tmp_path):
    """Keep tests independent of the developer's environment and .env file."""
    monkeypatch.chdir(tmp_path)
    for name in ("OPENAI_API_KEY", "MAX_INTERACTIONS_PER_USER", "RETRIEVAL_TYPES", "SIMILARITY_THRESHOLD"):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def fake_openai() -> FakeOpenAI:
    return FakeOpenAI()


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await init_db(engine)
    yield create_session_factory(engine)
    await engine.dispose()
