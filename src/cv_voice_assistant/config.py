"""
Application configuration using pydantic-settings.

Loads configuration from environment variables and .env files.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Hosted API (OpenAI)
    openai_api_key: SecretStr | None = Field(
        default=None,
        description="API key for the hosted speech, chat and embedding models",
    )
    openai_max_retries: int = Field(
        default=3,
        description="Retries performed by the API client itself (applies to every call)",
    )
    openai_timeout: float = Field(
        default=30.0,
        description="Timeout in seconds for hosted API requests",
    )

    # Models
    chat_model: str = Field(default="gpt-4o-mini", description="Chat completion model")
    embedding_model: str = Field(
        default="text-embedding-3-small",
        description="Embedding model for CV documents and interview responses",
    )
    transcription_model: str = Field(default="whisper-1", description="Speech-to-text model")
    tts_model: str = Field(default="tts-1", description="Text-to-speech model")
    tts_voice: str = Field(default="alloy", description="Text-to-speech voice")
    tts_speed: float = Field(default=1.0, description="Text-to-speech playback speed")
    tts_response_format: Literal["mp3", "wav", "opus", "aac", "flac", "pcm"] = Field(
        default="mp3",
        description="Audio container returned by text-to-speech",
    )

    # Retrieval
    similarity_threshold: float = Field(
        default=0.7,
        description="Minimum cosine similarity for prior-context retrieval",
    )
    similarity_top_k: int = Field(
        default=3,
        description="Maximum number of prior-context snippets per turn",
    )
    retrieval_types: list[Literal["cv_document", "interview_response"]] = Field(
        default_factory=lambda: ["interview_response"],
        description="Embedding tags searched for prior context",
    )
    max_interactions_per_user: int | None = Field(
        default=None,
        description="Cap on stored interview responses per user (None = unbounded)",
    )

    # Database
    database_url: str = Field(
        default="sqlite+aiosqlite:///./data/cv_voice_assistant.db",
        description="SQLAlchemy async connection string",
    )

    # Voice session
    artifacts_dir: str = Field(
        default="data/sessions",
        description="Where the voice session writes audio artifacts",
    )
    sample_rate: int = Field(default=44100, description="Microphone sample rate")

    # Application
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns:
        Settings: Application settings instance.
    """
    return Settings()
