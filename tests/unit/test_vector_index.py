"""Tests for the in-memory vector index."""

import pytest

from docscope.models.docs import VectorFilter, VectorRecord
from docscope.providers.vector_index import InMemoryVectorIndex


def rec(record_id: str, document_id: str, vector: list[float]) -> VectorRecord:
    return VectorRecord(
        id=record_id, vector=vector, metadata={"documentId": document_id, "text": record_id}
    )


@pytest.mark.asyncio
async def test_query_is_filtered_and_ranked() -> None:
    """Test that only allowed documents are scored, best first."""
    index = InMemoryVectorIndex()
    await index.upsert(
        [
            rec("a_chunk_0", "a", [1.0, 0.0]),
            rec("a_chunk_1", "a", [0.6, 0.8]),
            rec("b_chunk_0", "b", [0.9, 0.1]),
            rec("c_chunk_0", "c", [1.0, 0.0]),
        ]
    )

    matches = await index.query([1.0, 0.0], top_k=5, filter=VectorFilter(document_ids=["a", "b"]))

    assert [m.id for m in matches] == ["a_chunk_0", "b_chunk_0", "a_chunk_1"]
    assert matches[0].score >= matches[1].score >= matches[2].score


@pytest.mark.asyncio
async def test_query_truncates_to_top_k() -> None:
    """Test that at most top_k matches are returned."""
    index = InMemoryVectorIndex()
    await index.upsert([rec(f"a_chunk_{i}", "a", [1.0, float(i)]) for i in range(5)])

    matches = await index.query([1.0, 0.0], top_k=2, filter=VectorFilter(document_ids=["a"]))

    assert [m.id for m in matches] == ["a_chunk_0", "a_chunk_1"]


@pytest.mark.asyncio
async def test_empty_filter_returns_nothing() -> None:
    """Test that an empty allowed set never matches."""
    index = InMemoryVectorIndex()
    await index.upsert([rec("a_chunk_0", "a", [1.0])])

    assert await index.query([1.0], top_k=3, filter=VectorFilter(document_ids=[])) == []


@pytest.mark.asyncio
async def test_upsert_replaces_by_id() -> None:
    """Test that upserting an existing id replaces the record."""
    index = InMemoryVectorIndex()
    await index.upsert([rec("a_chunk_0", "a", [1.0, 0.0])])
    await index.upsert([rec("a_chunk_0", "a", [0.0, 1.0])])

    assert len(index) == 1
    assert index.get("a_chunk_0").vector == [0.0, 1.0]


@pytest.mark.asyncio
async def test_delete_by_filter_removes_only_that_document() -> None:
    """Test that deleting a document removes all of its chunks and nothing else."""
    index = InMemoryVectorIndex()
    await index.upsert(
        [rec("a_chunk_0", "a", [1.0]), rec("a_chunk_1", "a", [1.0]), rec("b_chunk_0", "b", [1.0])]
    )

    deleted = await index.delete_by_filter(VectorFilter(document_ids=["a"]))

    assert deleted == 2
    assert len(index) == 1
    assert index.get("b_chunk_0") is not None


@pytest.mark.asyncio
async def test_instances_do_not_share_state() -> None:
    """Test that each index owns its records."""
    first, second = InMemoryVectorIndex(), InMemoryVectorIndex()
    await first.upsert([rec("a_chunk_0", "a", [1.0])])

    assert len(second) == 0
