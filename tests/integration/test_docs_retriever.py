"""Integration tests for category-scoped retrieval."""

import pytest

from docscope.docs.retriever import FRAGMENT_DELIMITER, RetrievalOrchestrator, build_grounding_block
from docscope.docs.scope import resolve_searchable_ids
from docscope.models.common import Category


class CountingEmbedder:
    """Wraps an embedder and counts calls."""

    def __init__(self, inner) -> None:
        self.inner = inner
        self.calls = 0

    async def embed(self, text: str) -> list[float]:
        self.calls += 1
        return await self.inner.embed(text)


@pytest.mark.asyncio
async def test_retrieval_only_sees_active_category(wired, index, embedder, make_file) -> None:
    """Test that documents of other categories never reach the fragments."""
    session = await wired.chat.start_session("user-1")
    await wired.documents.upload(
        session.session_id, [make_file("budget.txt", "The library renovation budget is 40000 euros.")]
    )
    await wired.chat.set_active_category(session.session_id, Category.faculty_compatibility)
    await wired.documents.upload(
        session.session_id, [make_file("posts.txt", "The library committee chair is Professor Ruiz.")]
    )

    session = await wired.store.get(session.session_id)
    retriever = RetrievalOrchestrator(embedder, index)
    fragments = await retriever.retrieve(
        "library budget", resolve_searchable_ids(session, include_global=False), top_k=5
    )

    assert fragments == ["The library committee chair is Professor Ruiz."]


@pytest.mark.asyncio
async def test_nothing_in_scope_skips_providers(index, embedder) -> None:
    """Test that an empty scope returns no fragments without embedding or querying."""
    counting = CountingEmbedder(embedder)

    fragments = await RetrievalOrchestrator(counting, index).retrieve("anything", set(), top_k=5)

    assert fragments == []
    assert counting.calls == 0


@pytest.mark.asyncio
async def test_precomputed_query_vector_is_reused(wired, index, embedder, make_file) -> None:
    """Test that passing the turn's vector avoids a second embedding call."""
    session = await wired.chat.start_session()
    result = await wired.documents.upload(
        session.session_id, [make_file("notes.txt", "Exams are held in June.")]
    )
    counting = CountingEmbedder(embedder)
    vector = await embedder.embed("When are exams?")

    fragments = await RetrievalOrchestrator(counting, index).retrieve(
        "When are exams?", {result.documents[0].document_id}, top_k=3, query_vector=vector
    )

    assert fragments == ["Exams are held in June."]
    assert counting.calls == 0


def test_grounding_block() -> None:
    """Test that fragments are joined in rank order under the grounding instruction."""
    block = build_grounding_block(["first", "second"])

    assert block.index("first") < block.index("second")
    assert f"first{FRAGMENT_DELIMITER}second" in block
    assert build_grounding_block([]) is None
