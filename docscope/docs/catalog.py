"""Global document catalog - the session-independent partition."""

from typing import Protocol

from docscope.errors import DocumentNotFoundError
from docscope.models.docs import DocumentRecord


class GlobalDocumentCatalog(Protocol):
    """Repository for documents in the global partition."""

    async def add(self, records: list[DocumentRecord]) -> None:
        """Add catalog entries for newly ingested global documents."""
        ...

    async def list_documents(self) -> list[DocumentRecord]:
        """All global documents, oldest first."""
        ...

    async def document_ids(self) -> list[str]:
        ...

    async def remove(self, document_id: str) -> DocumentRecord:
        """Remove a catalog entry.

        Raises:
            DocumentNotFoundError: Unknown document id
        """
        ...


class InMemoryGlobalDocumentCatalog:
    """In-memory implementation of GlobalDocumentCatalog."""

    def __init__(self) -> None:
        self._documents: dict[str, DocumentRecord] = {}

    async def add(self, records: list[DocumentRecord]) -> None:
        for record in records:
            self._documents[record.document_id] = record

    async def list_documents(self) -> list[DocumentRecord]:
        return sorted(self._documents.values(), key=lambda d: d.uploaded_at)

    async def document_ids(self) -> list[str]:
        return list(self._documents)

    async def remove(self, document_id: str) -> DocumentRecord:
        record = self._documents.pop(document_id, None)
        if record is None:
            raise DocumentNotFoundError(f"Global document {document_id} not found")
        return record
