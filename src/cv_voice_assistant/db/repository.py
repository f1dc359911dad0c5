"""
Repository pattern for database operations.

Provides a clean abstraction over SQLAlchemy for CRUD operations.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Generic, TypeVar
from uuid import UUID

from sqlalchemy import delete, func, insert, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from cv_voice_assistant.db.models import (
    Base,
    EmbeddingRecordModel,
    UserDocumentModel,
    UserModel,
)
from cv_voice_assistant.schemas import CVData, EmbeddingMetadata

T = TypeVar("T", bound=Base)


class BaseRepository(ABC, Generic[T]):
    """Abstract base repository with common CRUD operations."""

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize the repository.

        Args:
            session: SQLAlchemy async session.
        """
        self._session = session

    @property
    @abstractmethod
    def _model_class(self) -> type[T]:
        """Get the model class for this repository."""
        ...

    async def get_by_id(self, entity_id: UUID | str) -> T | None:
        """
        Get an entity by its ID.

        Args:
            entity_id: The entity's primary key.

        Returns:
            The entity if found, None otherwise.
        """
        return await self._session.get(self._model_class, entity_id)

    async def create(self, entity: T) -> T:
        """
        Create a new entity.

        Args:
            entity: The entity to create.

        Returns:
            The created entity.
        """
        self._session.add(entity)
        await self._session.flush()
        await self._session.refresh(entity)
        return entity

    async def update(self, entity: T) -> T:
        """
        Update an existing entity.

        Args:
            entity: The entity to update.

        Returns:
            The updated entity.
        """
        await self._session.flush()
        await self._session.refresh(entity)
        return entity


class UserRepository(BaseRepository[UserModel]):
    """Repository for user records."""

    @property
    def _model_class(self) -> type[UserModel]:
        """Get the model class."""
        return UserModel

    async def create_if_absent(self, user_id: str) -> bool:
        """
        Insert a user row unless one already exists.

        Uses ``INSERT ... ON CONFLICT DO NOTHING`` where the dialect has it,
        otherwise a savepointed insert that tolerates the duplicate key.

        Returns:
            True if a row was inserted, False if it already existed.
        """
        now = datetime.now(timezone.utc)
        values = {"id": user_id, "created_at": now, "updated_at": now}
        dialect = self._session.get_bind().dialect.name

        if dialect in ("postgresql", "sqlite"):
            insert_fn = pg_insert if dialect == "postgresql" else sqlite_insert
            stmt = insert_fn(UserModel).values(**values).on_conflict_do_nothing(index_elements=["id"])
            result = await self._session.execute(stmt)
            return bool(result.rowcount)

        try:
            async with self._session.begin_nested():
                await self._session.execute(insert(UserModel).values(**values))
        except IntegrityError:
            return False
        return True


class UserDocumentRepository(BaseRepository[UserDocumentModel]):
    """Repository for per-user CV documents."""

    @property
    def _model_class(self) -> type[UserDocumentModel]:
        """Get the model class."""
        return UserDocumentModel

    async def create_for_user(
        self,
        user_id: str,
        cv_data: CVData,
        file_name: str,
        file_type: str,
    ) -> UserDocumentModel:
        """
        Create a new document record for a user.

        Args:
            user_id: Owning user.
            cv_data: Analyzed CV.
            file_name: Original file name.
            file_type: MIME type of the upload.

        Returns:
            The created document model.
        """
        document = UserDocumentModel(
            user_id=user_id,
            file_name=file_name,
            file_type=file_type,
            cv_data=cv_data.model_dump(mode="json"),
        )
        return await self.create(document)

    async def list_for_user(self, user_id: str, limit: int = 100) -> list[UserDocumentModel]:
        """
        List a user's documents, newest first.

        Args:
            user_id: Owning user.
            limit: Maximum number to return.

        Returns:
            List of documents.
        """
        stmt = (
            select(UserDocumentModel)
            .where(UserDocumentModel.user_id == user_id)
            .order_by(UserDocumentModel.created_at.desc())
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def get_latest(self, user_id: str) -> UserDocumentModel | None:
        """Get the user's most recently created document."""
        documents = await self.list_for_user(user_id, limit=1)
        return documents[0] if documents else None

    async def replace_cv_data(self, document: UserDocumentModel, cv_data: CVData) -> UserDocumentModel:
        """
        Overwrite the CV data on an existing document.

        Args:
            document: Document to update.
            cv_data: Replacement CV data.

        Returns:
            The updated document model.
        """
        document.cv_data = cv_data.model_dump(mode="json")
        document.updated_at = datetime.now(timezone.utc)
        return await self.update(document)


class EmbeddingRepository(BaseRepository[EmbeddingRecordModel]):
    """Repository for embedding records."""

    @property
    def _model_class(self) -> type[EmbeddingRecordModel]:
        """Get the model class."""
        return EmbeddingRecordModel

    async def add(self, text: str, vector: list[float], metadata: EmbeddingMetadata) -> EmbeddingRecordModel:
        """
        Insert one embedding record. Never deduplicates.

        Args:
            text: Embedded text.
            vector: Embedding vector.
            metadata: Ownership and category tags.

        Returns:
            The created record.
        """
        record = EmbeddingRecordModel(
            user_id=metadata.user_id,
            type=metadata.type.value,
            content=text,
            vector=[float(v) for v in vector],
            timestamp=metadata.timestamp,
        )
        return await self.create(record)

    async def list_scoped(self, user_id: str, record_type: str) -> list[EmbeddingRecordModel]:
        """
        Get every record for a user and category tag.

        Args:
            user_id: Owning user.
            record_type: Category tag.

        Returns:
            List of records.
        """
        stmt = select(EmbeddingRecordModel).where(
            EmbeddingRecordModel.user_id == user_id,
            EmbeddingRecordModel.type == record_type,
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def count_scoped(self, user_id: str, record_type: str) -> int:
        """Count records for a user and category tag."""
        stmt = select(func.count()).select_from(EmbeddingRecordModel).where(
            EmbeddingRecordModel.user_id == user_id,
            EmbeddingRecordModel.type == record_type,
        )
        result = await self._session.execute(stmt)
        return int(result.scalar_one())

    async def prune_oldest(self, user_id: str, record_type: str, keep: int) -> int:
        """
        Delete all but the newest ``keep`` records for a user and tag.

        Returns:
            Number of records deleted.
        """
        keep_ids = (
            select(EmbeddingRecordModel.id)
            .where(
                EmbeddingRecordModel.user_id == user_id,
                EmbeddingRecordModel.type == record_type,
            )
            .order_by(EmbeddingRecordModel.timestamp.desc(), EmbeddingRecordModel.created_at.desc())
            .limit(keep)
        )
        stmt = delete(EmbeddingRecordModel).where(
            EmbeddingRecordModel.user_id == user_id,
            EmbeddingRecordModel.type == record_type,
            EmbeddingRecordModel.id.not_in(keep_ids.scalar_subquery()),
        )
        result = await self._session.execute(stmt)
        return int(result.rowcount or 0)
