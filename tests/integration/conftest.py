"""Wired services for integration tests (in-memory stores, fake providers)."""

from dataclasses import dataclass

import pytest_asyncio

from docscope.chat.service import ChatService
from docscope.context.switch import build_trigger_table
from docscope.context.triggers import DEFAULT_TRIGGERS
from docscope.docs.catalog import InMemoryGlobalDocumentCatalog
from docscope.docs.ingest import IngestionPipeline
from docscope.docs.retriever import RetrievalOrchestrator
from docscope.docs.service import DocumentService
from docscope.forms.orchestrator import FormExtractionOrchestrator
from docscope.forms.reports import ReportGenerator
from docscope.sessions.store import InMemorySessionStore


@dataclass
class Wired:
    store: InMemorySessionStore
    global_catalog: InMemoryGlobalDocumentCatalog
    documents: DocumentService
    chat: ChatService


@pytest_asyncio.fixture
async def wired(settings, extractor, embedder, index, completion) -> Wired:
    """Document and chat services sharing one store, index and catalog."""
    store = InMemorySessionStore()
    global_catalog = InMemoryGlobalDocumentCatalog()
    pipeline = IngestionPipeline.from_settings(
        settings, extractor=extractor, embedder=embedder, index=index
    )
    triggers = await build_trigger_table(DEFAULT_TRIGGERS, embedder)
    reports = ReportGenerator(FormExtractionOrchestrator(extractor, completion), completion)

    return Wired(
        store=store,
        global_catalog=global_catalog,
        documents=DocumentService(settings, store, pipeline, index, global_catalog),
        chat=ChatService(
            settings,
            store,
            embedder,
            RetrievalOrchestrator(embedder, index),
            completion,
            triggers,
            global_catalog,
            reports=reports,
        ),
    )
