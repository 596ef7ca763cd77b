"""Session store contract and in-memory implementation.

Session persistence is owned by an external collaborator; this is the narrow
accessor contract the retrieval core reads and writes through.
"""

import uuid
from typing import Any, Protocol

from docscope.errors import DocumentNotFoundError, SessionNotFoundError
from docscope.models.common import Category, Sender
from docscope.models.docs import DocumentRecord
from docscope.models.session import ChatMessage, SessionState


class SessionStore(Protocol):
    """Repository for the session fields the core depends on."""

    async def create(
        self,
        user_id: str | None = None,
        *,
        include_global: bool = False,
        global_write: bool = False,
        debug_mode: bool = False,
    ) -> SessionState:
        """Create a new session in the default category."""
        ...

    async def get(self, session_id: str) -> SessionState:
        """Load a session snapshot.

        Raises:
            SessionNotFoundError: Unknown session id
        """
        ...

    async def set_active_category(self, session_id: str, category: Category) -> SessionState:
        ...

    async def append_documents(
        self, session_id: str, category: Category, documents: list[DocumentRecord]
    ) -> SessionState:
        """Append catalog entries to one category's document list."""
        ...

    async def remove_document(self, session_id: str, document_id: str) -> DocumentRecord:
        """Remove a document from whichever category lists it.

        Raises:
            DocumentNotFoundError: No category of the session lists the document
        """
        ...

    async def append_message(
        self, session_id: str, sender: Sender, text: str, *, error: bool = False
    ) -> ChatMessage:
        ...

    async def set_title(self, session_id: str, title: str) -> None:
        ...

    async def set_form_results(
        self, session_id: str, form_data: dict[str, Any], final_report: str | None
    ) -> None:
        ...


class InMemorySessionStore:
    """In-memory implementation of SessionStore.

    Returns copies so callers never mutate stored state directly.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, SessionState] = {}

    def _require(self, session_id: str) -> SessionState:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(f"Session {session_id} not found")
        return session

    async def create(
        self,
        user_id: str | None = None,
        *,
        include_global: bool = False,
        global_write: bool = False,
        debug_mode: bool = False,
    ) -> SessionState:
        session = SessionState(
            session_id=str(uuid.uuid4()),
            user_id=user_id,
            include_global=include_global,
            global_write=global_write,
            debug_mode=debug_mode,
        )
        self._sessions[session.session_id] = session
        return session.model_copy(deep=True)

    async def get(self, session_id: str) -> SessionState:
        return self._require(session_id).model_copy(deep=True)

    async def set_active_category(self, session_id: str, category: Category) -> SessionState:
        session = self._require(session_id)
        session.active_category = category
        return session.model_copy(deep=True)

    async def append_documents(
        self, session_id: str, category: Category, documents: list[DocumentRecord]
    ) -> SessionState:
        session = self._require(session_id)
        session.documents.setdefault(category, []).extend(documents)
        return session.model_copy(deep=True)

    async def remove_document(self, session_id: str, document_id: str) -> DocumentRecord:
        session = self._require(session_id)
        for documents in session.documents.values():
            for i, document in enumerate(documents):
                if document.document_id == document_id:
                    return documents.pop(i)
        raise DocumentNotFoundError(f"Document {document_id} not found in session {session_id}")

    async def append_message(
        self, session_id: str, sender: Sender, text: str, *, error: bool = False
    ) -> ChatMessage:
        session = self._require(session_id)
        message = ChatMessage(sender=sender, text=text, error=error)
        session.messages.append(message)
        return message

    async def set_title(self, session_id: str, title: str) -> None:
        self._require(session_id).title = title

    async def set_form_results(
        self, session_id: str, form_data: dict[str, Any], final_report: str | None
    ) -> None:
        session = self._require(session_id)
        session.form_data = form_data
        session.final_report = final_report
