"""SQL implementation of the global document catalog."""

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from docscope.db.models import GlobalDocument
from docscope.errors import DocumentNotFoundError
from docscope.models.common import GLOBAL_PARTITION
from docscope.models.docs import DocumentRecord


def _to_record(row: GlobalDocument) -> DocumentRecord:
    return DocumentRecord(
        document_id=row.document_id,
        original_name=row.original_name,
        chunk_count=row.chunk_count,
        category=GLOBAL_PARTITION,
        uploaded_by=row.uploaded_by,
        uploaded_at=row.uploaded_at,
    )


class SqlGlobalDocumentCatalog:
    """SQL implementation of GlobalDocumentCatalog.

    Opens one short-lived session per operation.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def add(self, records: list[DocumentRecord]) -> None:
        """Insert catalog rows in a single transaction."""
        async with self._session_factory() as session:
            for record in records:
                session.add(
                    GlobalDocument(
                        document_id=record.document_id,
                        original_name=record.original_name,
                        chunk_count=record.chunk_count,
                        uploaded_by=record.uploaded_by,
                        uploaded_at=record.uploaded_at,
                    )
                )
            await session.commit()

    async def list_documents(self) -> list[DocumentRecord]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(GlobalDocument).order_by(GlobalDocument.uploaded_at)
            )
            return [_to_record(row) for row in result.scalars().all()]

    async def document_ids(self) -> list[str]:
        async with self._session_factory() as session:
            result = await session.execute(select(GlobalDocument.document_id))
            return list(result.scalars().all())

    async def remove(self, document_id: str) -> DocumentRecord:
        """Delete a catalog row and return what it held."""
        async with self._session_factory() as session:
            row = await session.get(GlobalDocument, document_id)
            if row is None:
                raise DocumentNotFoundError(f"Global document {document_id} not found")

            record = _to_record(row)
            await session.execute(
                delete(GlobalDocument).where(GlobalDocument.document_id == document_id)
            )
            await session.commit()
            return record
