"""Tests for scope resolution."""

import pytest

from docscope.docs.scope import parse_category, resolve_searchable_ids
from docscope.errors import ScopeConfigurationError
from docscope.models.common import GLOBAL_PARTITION, Category
from docscope.models.docs import DocumentRecord
from docscope.models.session import SessionState

A = Category.faculty_compatibility
B = Category.administrative_compatibility


def record(document_id: str, category) -> DocumentRecord:
    return DocumentRecord(
        document_id=document_id, original_name=f"{document_id}.pdf", chunk_count=1, category=category
    )


@pytest.fixture
def session() -> SessionState:
    state = SessionState(session_id="s1", active_category=A)
    state.documents[A] = [record("d1", A)]
    state.documents[B] = [record("d2", B)]
    return state


def test_scope_without_global_is_active_category_only(session: SessionState) -> None:
    """Test that only the active category's documents are searchable."""
    assert resolve_searchable_ids(session, include_global=False, global_document_ids=["d3"]) == {
        "d1"
    }


def test_scope_with_global_adds_global_partition(session: SessionState) -> None:
    """Test that the global flag unions in the global documents."""
    assert resolve_searchable_ids(session, include_global=True, global_document_ids=["d3"]) == {
        "d1",
        "d3",
    }


@pytest.mark.parametrize("include_global", [True, False])
def test_other_category_never_leaks(session: SessionState, include_global: bool) -> None:
    """Test that another category's document is never searchable."""
    ids = resolve_searchable_ids(session, include_global, ["d3"])

    assert "d2" not in ids


def test_switching_category_changes_visibility(session: SessionState) -> None:
    """Test that visibility follows the active category."""
    session.active_category = B

    assert resolve_searchable_ids(session, False, ["d3"]) == {"d2"}


def test_empty_category_yields_empty_set() -> None:
    """Test that a category with no documents resolves to an empty set."""
    state = SessionState(session_id="s2")

    assert resolve_searchable_ids(state, include_global=False) == set()


def test_scope_deduplicates_ids(session: SessionState) -> None:
    """Test that an id present in both lists appears once."""
    assert resolve_searchable_ids(session, True, ["d1", "d3", "d3"]) == {"d1", "d3"}


def test_default_session_has_every_category_list() -> None:
    """Test that every category maps to its own (empty) document list."""
    state = SessionState(session_id="s3")

    assert set(state.documents) == set(Category)
    assert state.active_category == Category.miscellaneous
    assert state.include_global is False


def test_parse_category_accepts_known_names() -> None:
    """Test that category names and enum members are accepted."""
    assert parse_category("faculty_consolidation") == Category.faculty_consolidation
    assert parse_category(Category.miscellaneous) == Category.miscellaneous


@pytest.mark.parametrize("name", ["global", "unknown", ""])
def test_parse_category_rejects_unknown_names(name: str) -> None:
    """Test that names outside the closed set raise ScopeConfigurationError."""
    with pytest.raises(ScopeConfigurationError):
        parse_category(name)


def test_global_record_flag() -> None:
    """Test that records in the global partition report is_global."""
    assert record("g1", GLOBAL_PARTITION).is_global
    assert not record("d1", A).is_global
