"""
Pydantic schemas shared by the adapters and the query orchestrator.

Defines the CV structure, embedding metadata, conversation turns and
per-turn results.
"""

from __future__ import annotations

import time
from datetime import datetime, timezone
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


def _now_utc() -> datetime:
    """Get current UTC datetime (timezone-aware)."""
    return datetime.now(timezone.utc)


def _now_ms() -> int:
    return int(time.time() * 1000)


class EmbeddingType(str, Enum):
    """Category tag carried by every stored embedding."""

    CV_DOCUMENT = "cv_document"
    INTERVIEW_RESPONSE = "interview_response"


class Speaker(str, Enum):
    """Who produced a conversation turn."""

    USER = "user"
    ASSISTANT = "assistant"


class TurnState(str, Enum):
    """Per-session turn state. Only one turn may be processing at a time."""

    IDLE = "idle"
    PROCESSING = "processing"


class PersonalInfo(BaseModel):
    """Candidate's personal section of a CV."""

    name: str = Field(default="", description="Candidate name")
    email: str = Field(default="", description="Contact email")
    summary: str = Field(default="", description="Personal/professional summary")


class ExperienceEntry(BaseModel):
    """A single role held by the candidate."""

    role: str = Field(..., description="Job title held")
    company: str = Field(..., description="Employer name")
    period: str = Field(default="", description="Employment period, free text (e.g. '2019 - 2022')")
    highlights: list[str] = Field(
        default_factory=list,
        description="Notable achievements or responsibilities",
    )


class CVData(BaseModel):
    """Structured representation of a parsed CV."""

    personal_info: PersonalInfo = Field(default_factory=PersonalInfo)
    skills: list[str] = Field(default_factory=list, description="Skill keywords")
    experience: list[ExperienceEntry] = Field(
        default_factory=list,
        description="Work history, most recent first",
    )


class EmbeddingMetadata(BaseModel):
    """Ownership and category tags for one stored embedding."""

    type: EmbeddingType = Field(..., description="Category tag")
    user_id: str = Field(..., min_length=1, description="Owning user")
    timestamp: int = Field(default_factory=_now_ms, description="Creation time (epoch milliseconds)")


class SimilarityMatch(BaseModel):
    """One result of a similarity search."""

    content: str = Field(..., description="Stored text")
    score: float = Field(..., description="Cosine similarity with the query vector")


class UserDocument(BaseModel):
    """A stored CV upload belonging to a user."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(..., description="Document identifier")
    file_name: str = Field(default="", description="Original file name")
    file_type: str = Field(default="", description="MIME type of the upload")
    cv_data: CVData = Field(..., description="Analyzed CV structure")
    created_at: datetime = Field(default_factory=_now_utc)
    updated_at: datetime | None = Field(default=None)


class ConversationTurn(BaseModel):
    """One rendered message in an interaction session."""

    speaker: Speaker = Field(..., description="Who said it")
    content: str = Field(..., description="Text of the turn")
    timestamp: datetime = Field(default_factory=_now_utc)


class TurnResult(BaseModel):
    """Output of one orchestrated query turn."""

    response: str = Field(..., description="Assistant answer text")
    audio: bytes = Field(..., description="Synthesized speech for the answer")
    transcript: str = Field(default="", description="What the recruiter said")
