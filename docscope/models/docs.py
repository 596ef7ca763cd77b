"""Document domain models."""

from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from docscope.models.common import GLOBAL_PARTITION, Partition


class UploadedFile(BaseModel):
    """A file received from a client, staged on local disk."""

    path: Path
    original_name: str
    declared_mime_type: str = "application/octet-stream"

    @property
    def extension(self) -> str:
        """Lower-cased extension of the client-side file name (".pdf", ...)."""
        return Path(self.original_name).suffix.lower()


class DocumentRecord(BaseModel):
    """Catalog entry for one ingested document. Never mutated after creation."""

    document_id: str
    original_name: str
    chunk_count: int = Field(..., ge=1)
    category: Partition
    uploaded_by: str | None = None
    uploaded_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def is_global(self) -> bool:
        return self.category == GLOBAL_PARTITION


class VectorRecord(BaseModel):
    """(id, vector, metadata) triple stored in the vector index."""

    id: str
    vector: list[float]
    metadata: dict[str, Any]


class VectorMatch(BaseModel):
    """Single nearest-neighbour result returned by the vector index."""

    id: str
    metadata: dict[str, Any]
    score: float


class VectorFilter(BaseModel):
    """Metadata filter restricting a query or delete to a set of documents."""

    document_ids: list[str]
