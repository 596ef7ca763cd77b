"""Document service - uploads, deletions and global document administration.

Composes the ingestion pipeline, the vector index, the session store and the
global catalog. Every upload owns its staged files and releases them on exit.
"""

import asyncio
import logging

from docscope.config import Settings
from docscope.docs.catalog import GlobalDocumentCatalog
from docscope.docs.ingest import IngestionPipeline
from docscope.errors import CategoryLimitError, IngestionFailedError, VectorIndexError
from docscope.models.common import GLOBAL_PARTITION, Sender
from docscope.models.docs import DocumentRecord, UploadedFile, VectorFilter
from docscope.models.results import IngestionResult
from docscope.providers.policy import CallPolicy
from docscope.providers.vector_index import VectorIndexService
from docscope.sessions.store import SessionStore
from docscope.uploads import staged_uploads

logger = logging.getLogger(__name__)


class DocumentService:
    """Session and global document operations."""

    def __init__(
        self,
        settings: Settings,
        store: SessionStore,
        pipeline: IngestionPipeline,
        index: VectorIndexService,
        global_catalog: GlobalDocumentCatalog,
        index_policy: CallPolicy | None = None,
    ) -> None:
        self._settings = settings
        self._store = store
        self._pipeline = pipeline
        self._index = index
        self._global_catalog = global_catalog
        self._index_policy = index_policy or CallPolicy()
        self._upload_locks: dict[str, asyncio.Lock] = {}

    async def upload(
        self, session_id: str, files: list[UploadedFile], *, uploaded_by: str | None = None
    ) -> IngestionResult:
        """Ingest files into the session's active category.

        Sessions with the global-write flag write to the global partition instead.
        The outcome summary (or the failure) is appended to the session as a bot
        message.

        Raises:
            SessionNotFoundError: Unknown session
            CategoryLimitError: The batch would exceed the category's document limit
            IngestionFailedError: No file could be ingested
        """
        async with staged_uploads(files) as staged:
            session = await self._store.get(session_id)

            if session.global_write:
                try:
                    result = await self._ingest_global(staged, uploaded_by or session.user_id)
                except IngestionFailedError as e:
                    await self._store.append_message(
                        session_id, Sender.bot, f"[global] {e}", error=True
                    )
                    raise
                await self._store.append_message(
                    session_id, Sender.bot, f"[global] {result.summary()}", error=bool(result.failed)
                )
                return result

            # Limit check, ingestion and catalog update are serialized per session
            async with self._session_lock(session_id):
                return await self._upload_to_category(session_id, staged, uploaded_by)

    def _session_lock(self, session_id: str) -> asyncio.Lock:
        return self._upload_locks.setdefault(session_id, asyncio.Lock())

    async def _upload_to_category(
        self, session_id: str, files: list[UploadedFile], uploaded_by: str | None
    ) -> IngestionResult:
        session = await self._store.get(session_id)
        category = session.active_category
        limit = self._settings.limit_for(category)
        current = len(session.documents_for(category))
        if current + len(files) > limit:
            error = CategoryLimitError(category.value, limit, current, len(files))
            await self._store.append_message(session_id, Sender.bot, str(error), error=True)
            raise error

        try:
            result = await self._pipeline.ingest(files, category, uploaded_by=uploaded_by)
        except IngestionFailedError as e:
            await self._store.append_message(session_id, Sender.bot, str(e), error=True)
            raise

        await self._store.append_documents(session_id, category, result.documents)
        await self._store.append_message(
            session_id, Sender.bot, result.summary(), error=bool(result.failed)
        )
        return result

    async def upload_global(
        self, files: list[UploadedFile], *, uploaded_by: str | None = None
    ) -> IngestionResult:
        """Ingest files straight into the global partition (administration)."""
        async with staged_uploads(files) as staged:
            return await self._ingest_global(staged, uploaded_by)

    async def _ingest_global(
        self, files: list[UploadedFile], uploaded_by: str | None
    ) -> IngestionResult:
        result = await self._pipeline.ingest(files, GLOBAL_PARTITION, uploaded_by=uploaded_by)
        await self._global_catalog.add(result.documents)
        return result

    async def delete_document(self, session_id: str, document_id: str) -> DocumentRecord:
        """Delete a session document: its chunks in the index, then its catalog entry.

        Raises:
            SessionNotFoundError: Unknown session
            DocumentNotFoundError: The session does not list the document
        """
        session = await self._store.get(session_id)
        listed = any(
            doc.document_id == document_id for docs in session.documents.values() for doc in docs
        )
        if listed:
            await self._delete_vectors(document_id)
        # Raises DocumentNotFoundError when not listed
        record = await self._store.remove_document(session_id, document_id)

        await self._store.append_message(
            session_id, Sender.bot, f"Document {record.original_name} deleted."
        )
        return record

    async def list_global_documents(self) -> list[DocumentRecord]:
        return await self._global_catalog.list_documents()

    async def global_document_ids(self) -> list[str]:
        return await self._global_catalog.document_ids()

    async def delete_global_document(self, document_id: str) -> DocumentRecord:
        """Delete a global document's chunks and catalog entry.

        Raises:
            DocumentNotFoundError: Unknown global document
        """
        if document_id in await self._global_catalog.document_ids():
            await self._delete_vectors(document_id)
        return await self._global_catalog.remove(document_id)

    async def _delete_vectors(self, document_id: str) -> None:
        deleted = await self._index_policy.execute(
            "vector_index",
            lambda: self._index.delete_by_filter(VectorFilter(document_ids=[document_id])),
            error_cls=VectorIndexError,
        )
        logger.info(
            f"Deleted document {document_id}",
            extra={"structured": {"document_id": document_id, "chunks_deleted": deleted}},
        )
