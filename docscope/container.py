"""Service wiring - builds every component once at startup.

Provider clients and the trigger table are created here and treated as
read-only afterwards. The trigger table is embedded before the container is
returned, so no request can observe a partially built table.
"""

import logging
from dataclasses import dataclass

from docscope.chat.service import ChatService
from docscope.config import Settings, get_settings
from docscope.context.switch import build_trigger_table
from docscope.context.triggers import load_triggers
from docscope.db.catalog import SqlGlobalDocumentCatalog
from docscope.db.engine import create_async_engine_from_settings, create_schema, create_session_factory
from docscope.docs.catalog import GlobalDocumentCatalog
from docscope.docs.extractor import Extractor
from docscope.docs.ingest import IngestionPipeline
from docscope.docs.retriever import RetrievalOrchestrator
from docscope.docs.service import DocumentService
from docscope.forms.orchestrator import FormExtractionOrchestrator, load_slot_templates
from docscope.forms.reports import REPORT_CONFIGS, ReportGenerator
from docscope.providers.completion import get_completion_service
from docscope.providers.conversion import get_conversion_service
from docscope.providers.embeddings import EmbeddingService, get_embedding_service
from docscope.providers.ocr import get_ocr_service
from docscope.providers.policy import CallPolicy, PolicyConfig
from docscope.providers.vector_index import InMemoryVectorIndex, VectorIndexService
from docscope.sessions.store import InMemorySessionStore, SessionStore
from docscope.utils.logging import StructuredCallLogger
from docscope.utils.metrics import PrometheusCallMetrics

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Wired application services."""

    settings: Settings
    store: SessionStore
    index: VectorIndexService
    global_catalog: GlobalDocumentCatalog
    documents: DocumentService
    chat: ChatService


def build_policy(settings: Settings, *, retries: bool = True, timeout_ms: int | None = None) -> CallPolicy:
    config = PolicyConfig.from_settings(settings, retries=retries)
    if timeout_ms is not None:
        config = PolicyConfig(
            delay_ms=config.delay_ms,
            timeout_ms=timeout_ms,
            retry_count=config.retry_count,
            retry_jitter_min_ms=config.retry_jitter_min_ms,
            retry_jitter_max_ms=config.retry_jitter_max_ms,
        )
    return CallPolicy(config=config, metrics=PrometheusCallMetrics(), logger=StructuredCallLogger())


async def build_sql_catalog(settings: Settings) -> SqlGlobalDocumentCatalog:
    """SQL-backed global catalog; creates the schema if needed."""
    engine = create_async_engine_from_settings(settings)
    await create_schema(engine)
    return SqlGlobalDocumentCatalog(create_session_factory(engine))


async def build_services(
    settings: Settings | None = None,
    *,
    store: SessionStore | None = None,
    index: VectorIndexService | None = None,
    global_catalog: GlobalDocumentCatalog | None = None,
    embedder: EmbeddingService | None = None,
) -> Services:
    """Build all services from settings.

    Args:
        settings: Settings (default: get_settings())
        store: Session store (default: in-memory)
        index: Vector index (default: in-memory)
        global_catalog: Global catalog (default: SQL catalog at settings.database_url)
        embedder: Embedding service (default: chosen from settings)
    """
    settings = settings or get_settings()
    store = store or InMemorySessionStore()
    index = index or InMemoryVectorIndex()
    global_catalog = global_catalog or await build_sql_catalog(settings)

    provider_policy = build_policy(settings)
    # Single attempt, bounded by the conversion timeout
    conversion_policy = build_policy(
        settings,
        retries=False,
        timeout_ms=int(settings.conversion_timeout_seconds * 1000) + 1000,
    )

    embedder = embedder or get_embedding_service(settings, provider_policy)
    completion = get_completion_service(settings, provider_policy)
    extractor = Extractor(
        ocr=get_ocr_service(settings, provider_policy),
        conversion=get_conversion_service(settings, conversion_policy),
    )

    triggers = await build_trigger_table(load_triggers(settings.triggers_file), embedder)

    pipeline = IngestionPipeline.from_settings(
        settings, extractor=extractor, embedder=embedder, index=index, index_policy=provider_policy
    )

    slot_names = sorted({slot for c in REPORT_CONFIGS.values() for slot in c.field_mappings.values()})
    templates = load_slot_templates(settings.forms_dir, slot_names) if settings.forms_dir else None
    reports = ReportGenerator(FormExtractionOrchestrator(extractor, completion, templates), completion)

    documents = DocumentService(
        settings, store, pipeline, index, global_catalog, index_policy=provider_policy
    )
    chat = ChatService(
        settings,
        store,
        embedder,
        RetrievalOrchestrator(embedder, index, index_policy=provider_policy),
        completion,
        triggers,
        global_catalog,
        reports=reports,
    )

    logger.info("Services ready")
    return Services(
        settings=settings,
        store=store,
        index=index,
        global_catalog=global_catalog,
        documents=documents,
        chat=chat,
    )
