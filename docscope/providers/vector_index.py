"""Vector index service interface and in-memory implementation.

The in-memory index stands behind the same interface as a hosted index and is
used for tests and offline mode. Each instance owns its records; there is no
module-level store.
"""

import logging
import math
from typing import Protocol

from docscope.models.docs import VectorFilter, VectorMatch, VectorRecord

logger = logging.getLogger(__name__)

DOCUMENT_ID_KEY = "documentId"


class VectorIndexService(Protocol):
    """Protocol for vector index providers."""

    async def upsert(self, records: list[VectorRecord]) -> None:
        """Insert or replace records by id.

        Raises:
            VectorIndexError: On provider or transport failure
        """
        ...

    async def query(
        self, vector: list[float], top_k: int, filter: VectorFilter
    ) -> list[VectorMatch]:
        """Nearest neighbours restricted to the filter's document ids.

        Returns:
            Matches in descending score order, at most top_k
        """
        ...

    async def delete_by_filter(self, filter: VectorFilter) -> int:
        """Delete every record whose document id is in the filter.

        Returns:
            Number of records deleted
        """
        ...


def _cosine(a: list[float], b: list[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return dot / (norm_a * norm_b)


class InMemoryVectorIndex:
    """In-memory implementation of VectorIndexService (brute-force cosine)."""

    def __init__(self) -> None:
        self._records: dict[str, VectorRecord] = {}

    def __len__(self) -> int:
        return len(self._records)

    def get(self, record_id: str) -> VectorRecord | None:
        return self._records.get(record_id)

    async def upsert(self, records: list[VectorRecord]) -> None:
        """Insert or replace records by id."""
        for record in records:
            self._records[record.id] = record

    async def query(
        self, vector: list[float], top_k: int, filter: VectorFilter
    ) -> list[VectorMatch]:
        """Score every record in scope and return the top_k best."""
        allowed = set(filter.document_ids)
        if not allowed or top_k <= 0:
            return []

        matches = [
            VectorMatch(id=record.id, metadata=record.metadata, score=_cosine(vector, record.vector))
            for record in self._records.values()
            if record.metadata.get(DOCUMENT_ID_KEY) in allowed
        ]
        # sorted() is stable: equal scores keep insertion order
        matches = sorted(matches, key=lambda m: m.score, reverse=True)
        return matches[:top_k]

    async def delete_by_filter(self, filter: VectorFilter) -> int:
        """Delete every record belonging to the filter's documents."""
        doomed = set(filter.document_ids)
        to_delete = [
            record_id
            for record_id, record in self._records.items()
            if record.metadata.get(DOCUMENT_ID_KEY) in doomed
        ]
        for record_id in to_delete:
            del self._records[record_id]

        logger.info(f"Deleted {len(to_delete)} vectors for {len(doomed)} document(s)")
        return len(to_delete)
