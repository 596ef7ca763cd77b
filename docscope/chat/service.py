"""Chat service - one conversational turn, explicit context changes and reports.

Turn flow:
    1. embed the utterance once
    2. context switch detection; a switch short-circuits the turn with the
       trigger's canned confirmation
    3. scope resolution -> scoped retrieval -> grounded completion
"""

import json
import logging
from collections.abc import Mapping

from docscope.config import Settings
from docscope.context.switch import detect
from docscope.docs.catalog import GlobalDocumentCatalog
from docscope.docs.retriever import RetrievalOrchestrator, build_grounding_block
from docscope.docs.scope import parse_category, resolve_searchable_ids
from docscope.errors import CompletionError, EmbeddingError, ReportGenerationError, VectorIndexError
from docscope.forms.reports import ReportGenerator, get_report_config
from docscope.models.common import Category, Sender
from docscope.models.docs import UploadedFile
from docscope.models.results import ReportResult
from docscope.models.session import UNTITLED, ChatMessage, SessionState
from docscope.models.triggers import TriggerTable
from docscope.providers.completion import ChatHistory, CompletionService
from docscope.providers.embeddings import EmbeddingService
from docscope.sessions.store import SessionStore
from docscope.uploads import staged_uploads
from docscope.utils.metrics import context_switches_total

logger = logging.getLogger(__name__)

TITLE_LENGTH = 35
HISTORY_LIMIT = 10

SYSTEM_PROMPT = (
    "You are an assistant that answers questions about the user's uploaded documents. "
    "Be concise and cite the document names when you can."
)

NO_CONTEXT_NOTE = (
    "No documents are available in the current context. Say so if the question "
    "depends on document content."
)

_ROLES = {Sender.user: "user", Sender.ai: "assistant"}


def title_from(utterance: str) -> str:
    """Session title from the first user message."""
    text = utterance.strip()
    if len(text) <= TITLE_LENGTH:
        return text
    return text[:TITLE_LENGTH] + "..."


def build_history(
    session: SessionState, utterance: str, grounding: str | None, limit: int = HISTORY_LIMIT
) -> ChatHistory:
    """System prompt + grounding, recent user/ai turns, then the new utterance.

    Bot status messages (switch confirmations, ingestion summaries) are not part
    of the model's history.
    """
    system = f"{SYSTEM_PROMPT}\n\n{grounding if grounding else NO_CONTEXT_NOTE}"
    history: ChatHistory = [{"role": "system", "content": system}]

    turns = [m for m in session.messages if m.sender in _ROLES and not m.error]
    for message in turns[-limit:]:
        history.append({"role": _ROLES[message.sender], "content": message.text})

    history.append({"role": "user", "content": utterance})
    return history


class ChatService:
    """Session-facing chat operations."""

    def __init__(
        self,
        settings: Settings,
        store: SessionStore,
        embedder: EmbeddingService,
        retriever: RetrievalOrchestrator,
        completion: CompletionService,
        triggers: TriggerTable,
        global_catalog: GlobalDocumentCatalog,
        reports: ReportGenerator | None = None,
    ) -> None:
        """Initialize chat service.

        Args:
            settings: Threshold, top-k and session defaults
            store: Session store
            embedder: Embeds utterances (shared with retrieval)
            retriever: Scoped retrieval
            completion: Answer generation
            triggers: Precomputed trigger table (read-only)
            global_catalog: Global partition catalog
            reports: Report generator (optional)
        """
        self._settings = settings
        self._store = store
        self._embedder = embedder
        self._retriever = retriever
        self._completion = completion
        self._triggers = triggers
        self._global_catalog = global_catalog
        self._reports = reports

    async def start_session(
        self, user_id: str | None = None, *, global_write: bool = False
    ) -> SessionState:
        """Create a session using the configured global-scope default."""
        return await self._store.create(
            user_id,
            include_global=self._settings.include_global_by_default,
            global_write=global_write,
        )

    async def handle_turn(self, session_id: str, utterance: str) -> ChatMessage:
        """Answer one user utterance.

        Returns:
            The reply appended to the session (canned confirmation on a switch,
            generated answer otherwise)

        Raises:
            SessionNotFoundError: Unknown session
            EmbeddingError / VectorIndexError / CompletionError: Provider failure
                (an error message is appended to the session first)
        """
        session = await self._store.get(session_id)
        await self._store.append_message(session_id, Sender.user, utterance)
        if session.title == UNTITLED:
            await self._store.set_title(session_id, title_from(utterance))

        try:
            vector = await self._embedder.embed(utterance)
            new_category = detect(
                vector,
                self._triggers,
                session.active_category,
                self._settings.similarity_threshold,
            )
            if new_category is None:
                answer = await self._answer(session, utterance, vector)
        except (EmbeddingError, VectorIndexError, CompletionError) as e:
            await self._store.append_message(
                session_id, Sender.bot, f"Could not generate an answer: {e}", error=True
            )
            raise

        if new_category is not None:
            await self._store.set_active_category(session_id, new_category)
            context_switches_total.labels(category=new_category.value).inc()
            return await self._store.append_message(
                session_id, Sender.bot, self._triggers.confirmation_for(new_category)
            )

        return await self._store.append_message(session_id, Sender.ai, answer)

    async def _answer(self, session: SessionState, utterance: str, vector: list[float]) -> str:
        global_ids = await self._global_catalog.document_ids() if session.include_global else []
        searchable = resolve_searchable_ids(session, session.include_global, global_ids)

        fragments = await self._retriever.retrieve(
            utterance, searchable, self._settings.retrieval_top_k, query_vector=vector
        )
        history = build_history(session, utterance, build_grounding_block(fragments))
        return await self._completion.complete(history)

    async def set_active_category(self, session_id: str, name: str | Category) -> SessionState:
        """Explicitly change the session's active category.

        Like a trigger-phrase switch, a real change appends the category's canned
        confirmation as a bot message; re-selecting the active category appends
        nothing.

        Raises:
            ScopeConfigurationError: Unknown category name
            SessionNotFoundError: Unknown session
        """
        category = parse_category(name)
        session = await self._store.get(session_id)
        if session.active_category == category:
            return session

        session = await self._store.set_active_category(session_id, category)
        context_switches_total.labels(category=category.value).inc()
        await self._store.append_message(
            session_id, Sender.bot, self._triggers.confirmation_for(category)
        )
        logger.info(f"Session {session_id} switched to {category.value}")
        return session

    async def generate_report(
        self, session_id: str, report_key: str, files_by_field: Mapping[str, list[UploadedFile]]
    ) -> ReportResult:
        """Fill the report's forms, synthesize the report and store both on the session.

        Raises:
            FormConfigurationError: Unknown report key
            ReportGenerationError: The report could not be produced
        """
        staged_files = [file for files in files_by_field.values() for file in files]
        async with staged_uploads(staged_files):
            if self._reports is None:
                raise ReportGenerationError("Report generation is not configured")

            config = get_report_config(report_key)
            session = await self._store.get(session_id)
            await self._store.append_message(
                session_id, Sender.user, f"Generate report: {config.report_type}"
            )

            try:
                result = await self._reports.generate(config, files_by_field)
            except ReportGenerationError as e:
                await self._store.append_message(
                    session_id, Sender.bot, f"Could not generate the report: {e}", error=True
                )
                raise

            await self._store.set_form_results(session_id, result.forms.data, result.report_text)
            await self._store.append_message(session_id, Sender.ai, result.report_text)

            if session.debug_mode:
                debug_payload = {slot: o.model_dump() for slot, o in result.forms.slots.items()}
                await self._store.append_message(
                    session_id,
                    Sender.bot,
                    "--- DEBUG: extracted forms ---\n```json\n"
                    + json.dumps(debug_payload, indent=2, ensure_ascii=False, default=str)
                    + "\n```",
                )
            return result
