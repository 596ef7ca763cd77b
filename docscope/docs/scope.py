"""Scope resolution - which documents a session may retrieve from."""

from collections.abc import Iterable

from docscope.errors import ScopeConfigurationError
from docscope.models.common import Category
from docscope.models.session import SessionState


def parse_category(name: str | Category) -> Category:
    """Validate a category name against the closed category set.

    Raises:
        ScopeConfigurationError: Unknown category name
    """
    if isinstance(name, Category):
        return name
    try:
        return Category(name)
    except ValueError as e:
        valid = ", ".join(c.value for c in Category)
        raise ScopeConfigurationError(f"Unknown category '{name}' (expected one of: {valid})") from e


def resolve_searchable_ids(
    session: SessionState,
    include_global: bool,
    global_document_ids: Iterable[str] = (),
) -> set[str]:
    """Document ids eligible for retrieval in the session's current turn.

    Only the active category's documents are visible, plus every global document
    when `include_global` is set. Documents of other categories are never
    included. An empty result means "no grounding available".
    """
    searchable = set(session.document_ids_for(session.active_category))
    if include_global:
        searchable.update(global_document_ids)
    return searchable
