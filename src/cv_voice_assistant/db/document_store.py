"""
Document store.

Persists users and their analyzed CV uploads, and records each CV's
embedding tagged ``cv_document``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from cv_voice_assistant.db.repository import UserDocumentRepository, UserRepository
from cv_voice_assistant.errors import DocumentNotFoundError, StorageFailedError
from cv_voice_assistant.orchestrator.cv_ingestion import CVAnalyzer, UploadedFile, parse_document
from cv_voice_assistant.schemas import CVData, EmbeddingMetadata, EmbeddingType, UserDocument

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from cv_voice_assistant.retrieval.vector_store import VectorStoreBase

logger = logging.getLogger(__name__)


class DocumentStore:
    """
    Per-user CV document storage.

    Each operation runs in its own unit of work. ``store_document`` is a
    sequence of independent writes: an embedding written before a later
    failure is not rolled back.
    """

    def __init__(
        self,
        session_factory: "async_sessionmaker[AsyncSession]",
        embedding_store: "VectorStoreBase",
        analyzer: CVAnalyzer,
    ) -> None:
        """
        Initialize the document store.

        Args:
            session_factory: Factory for database sessions.
            embedding_store: Store receiving the CV's embedding.
            analyzer: Turns extracted CV text into CVData.
        """
        self._session_factory = session_factory
        self._embedding_store = embedding_store
        self._analyzer = analyzer

    async def initialize_user(self, user_id: str) -> bool:
        """
        Create the user record if it does not exist yet. Safe to call concurrently.

        Returns:
            True if the user was created by this call.

        Raises:
            StorageFailedError: On database failure.
        """
        logger.debug(f"Initializing user document: {user_id}")
        try:
            async with self._session_factory() as session, session.begin():
                created = await UserRepository(session).create_if_absent(user_id)
        except SQLAlchemyError as e:
            logger.error(f"Error initializing user document: {e}")
            raise StorageFailedError(f"Failed to initialize user {user_id}") from e

        if created:
            logger.info(f"Created user record: {user_id}")
        return created

    async def store_document(self, file: UploadedFile, user_id: str) -> CVData:
        """
        Parse, analyze, embed and store an uploaded CV.

        Args:
            file: The uploaded document.
            user_id: Owning user.

        Returns:
            The analyzed CV data.

        Raises:
            ValueError: If the file yields no text.
            CompletionFailedError: If analysis or embedding fails.
            StorageFailedError: On database failure.
        """
        logger.info(f"Processing document: {file.name} for user {user_id}")

        text = parse_document(file)
        cv_data = await self._analyzer.analyze(text)

        vector = await self._embedding_store.embed(text)
        await self._embedding_store.store(
            text,
            vector,
            EmbeddingMetadata(type=EmbeddingType.CV_DOCUMENT, user_id=user_id),
        )
        logger.debug("CV embeddings stored")

        try:
            async with self._session_factory() as session, session.begin():
                await UserRepository(session).create_if_absent(user_id)
                document = await UserDocumentRepository(session).create_for_user(
                    user_id=user_id,
                    cv_data=cv_data,
                    file_name=file.name,
                    file_type=file.mime_type,
                )
                document_id = document.id
        except SQLAlchemyError as e:
            logger.error(f"Error storing document: {e}")
            raise StorageFailedError(f"Failed to store document {file.name}") from e

        logger.info(f"CV data stored successfully: {document_id}")
        return cv_data

    async def list_documents(self, user_id: str) -> list[UserDocument]:
        """
        List a user's documents, newest first.

        Raises:
            StorageFailedError: On database failure.
        """
        try:
            async with self._session_factory() as session:
                models = await UserDocumentRepository(session).list_for_user(user_id)
                documents = [UserDocument.model_validate(m) for m in models]
        except SQLAlchemyError as e:
            logger.error(f"Error fetching user documents: {e}")
            raise StorageFailedError(f"Failed to list documents for {user_id}") from e

        logger.debug(f"Documents fetched: {len(documents)}")
        return documents

    async def update_document(
        self,
        cv_data: CVData,
        user_id: str,
        document_id: UUID | None = None,
    ) -> UserDocument:
        """
        Replace the CV data of an existing document in place.

        Args:
            cv_data: Replacement CV data.
            user_id: Owning user.
            document_id: Document to update; defaults to the user's newest.

        Returns:
            The updated document.

        Raises:
            DocumentNotFoundError: If there is nothing to update.
            StorageFailedError: On database failure.
        """
        logger.debug(f"Updating user document: {user_id} ({document_id or 'latest'})")
        try:
            async with self._session_factory() as session, session.begin():
                repo = UserDocumentRepository(session)
                if document_id is not None:
                    document = await repo.get_by_id(document_id)
                    if document is not None and document.user_id != user_id:
                        document = None
                else:
                    document = await repo.get_latest(user_id)

                if document is None:
                    raise DocumentNotFoundError(f"No document to update for user {user_id}")

                document = await repo.replace_cv_data(document, cv_data)
                updated = UserDocument.model_validate(document)
        except SQLAlchemyError as e:
            logger.error(f"Error updating document: {e}")
            raise StorageFailedError(f"Failed to update document for {user_id}") from e

        logger.info(f"Document updated successfully: {updated.id}")
        return updated
