"""Session view models.

Sessions are owned by an external persistence layer; this package only reads and
writes the fields below through the SessionStore contract.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from docscope.models.common import DEFAULT_CATEGORY, Category, Sender
from docscope.models.docs import DocumentRecord

UNTITLED = "New chat"


def _empty_document_lists() -> dict[Category, list[DocumentRecord]]:
    return {category: [] for category in Category}


class ChatMessage(BaseModel):
    """Single message in a session transcript."""

    sender: Sender
    text: str
    error: bool = False
    timestamp: datetime = Field(default_factory=datetime.utcnow)


class SessionState(BaseModel):
    """Snapshot of the session fields the retrieval core depends on."""

    session_id: str
    user_id: str | None = None
    title: str = UNTITLED
    active_category: Category = DEFAULT_CATEGORY
    # Explicit category -> document list table
    documents: dict[Category, list[DocumentRecord]] = Field(default_factory=_empty_document_lists)
    include_global: bool = False
    global_write: bool = False
    debug_mode: bool = False
    messages: list[ChatMessage] = Field(default_factory=list)
    form_data: dict[str, Any] = Field(default_factory=dict)
    final_report: str | None = None

    def documents_for(self, category: Category) -> list[DocumentRecord]:
        """Documents listed under a category (empty list if none)."""
        return self.documents.get(category, [])

    def document_ids_for(self, category: Category) -> list[str]:
        return [doc.document_id for doc in self.documents_for(category)]
