"""
Database module for persistence.

Provides SQLAlchemy models, the repository pattern, and the document store
for users and their CV uploads.
"""

from cv_voice_assistant.db.models import (
    Base,
    EmbeddingRecordModel,
    UserDocumentModel,
    UserModel,
)
from cv_voice_assistant.db.repository import (
    EmbeddingRepository,
    UserDocumentRepository,
    UserRepository,
)
from cv_voice_assistant.db.session import create_engine, create_session_factory, init_db
from cv_voice_assistant.db.document_store import DocumentStore

__all__ = [
    "Base",
    "EmbeddingRecordModel",
    "UserDocumentModel",
    "UserModel",
    "EmbeddingRepository",
    "UserDocumentRepository",
    "UserRepository",
    "create_engine",
    "create_session_factory",
    "init_db",
    "DocumentStore",
]
