import pytest

from cv_voice_assistant.config import Settings
from cv_voice_assistant.errors import InitializationFailedError
from cv_voice_assistant.main import build_components, build_parser as build_cli_parser


def test_voice_runner_env_defaults_are_used(monkeypatch):
    # Lightweight check that the runner's defaults are wired to environment variables.
    monkeypatch.setenv("CV_VOICE_USER_ID", "ted")
    monkeypatch.setenv("CV_VOICE_ARTIFACTS_DIR", "/tmp/sessions")
    monkeypatch.setenv("CV_VOICE_SAMPLE_RATE", "16000")
    monkeypatch.setenv("CV_VOICE_SAVE_ARTIFACTS", "false")

    from scripts.voice_interview import build_parser

    args = build_parser().parse_args([])
    assert args.user_id == "ted"
    assert args.artifacts_dir == "/tmp/sessions"
    assert args.sample_rate == 16000
    assert args.save_artifacts == "false"
    assert args.cv_file is None


def test_voice_runner_requires_user_without_env(monkeypatch):
    monkeypatch.delenv("CV_VOICE_USER_ID", raising=False)

    from scripts.voice_interview import build_parser

    with pytest.raises(SystemExit):
        build_parser().parse_args([])


@pytest.mark.asyncio
async def test_voice_runner_without_stored_cv_fails_fast():
    from scripts import voice_interview

    class _Args:
        user_id = "nobody"
        cv_file = None

    class _EmptyStore:
        async def list_documents(self, user_id):
            return []

        async def store_document(self, file, user_id):
            raise AssertionError("store_document should not be called without --cv-file")

    with pytest.raises(RuntimeError, match="No CV stored"):
        await voice_interview._load_cv(_Args(), _EmptyStore())


def test_cli_subcommands():
    parser = build_cli_parser()

    ingest = parser.parse_args(["ingest", "cv.pdf", "--user-id", "u1"])
    assert (ingest.command, ingest.file, ingest.user_id) == ("ingest", "cv.pdf", "u1")

    interview = parser.parse_args(["interview", "--user-id", "u1"])
    assert interview.command == "interview"
    assert interview.artifacts_dir is None

    with pytest.raises(SystemExit):
        parser.parse_args(["documents"])


@pytest.mark.asyncio
async def test_startup_without_api_key_fails(tmp_path):
    settings = Settings(
        openai_api_key=None,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'never.db'}",
        _env_file=None,
    )

    with pytest.raises(InitializationFailedError):
        await build_components(settings)
    assert not (tmp_path / "never.db").exists()


def test_cli_ingest_of_empty_cv_exits_with_error(monkeypatch, tmp_path):
    import sys

    from cv_voice_assistant.main import main

    cv = tmp_path / "cv.txt"
    cv.write_text("   \n", encoding="utf-8")
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}")
    monkeypatch.setattr(sys, "argv", ["cv-voice-assistant", "ingest", str(cv), "--user-id", "u1"])

    with pytest.raises(SystemExit) as exc_info:
        main()
    assert exc_info.value.code == 1


def test_cli_ingest_of_missing_file_exits_with_error(monkeypatch, tmp_path):
    import sys

    from cv_voice_assistant.main import main

    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}")
    monkeypatch.setattr(sys, "argv", ["cv-voice-assistant", "ingest", str(tmp_path / "nope.pdf"), "--user-id", "u1"])

    with pytest.raises(SystemExit) as exc_info:
        main()
    assert exc_info.value.code == 1
