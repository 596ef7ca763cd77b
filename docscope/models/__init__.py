"""Models package - re-exports for convenience."""

from docscope.models.common import (
    DEFAULT_CATEGORY,
    GLOBAL_PARTITION,
    Category,
    Partition,
    Sender,
)
from docscope.models.docs import (
    DocumentRecord,
    UploadedFile,
    VectorFilter,
    VectorMatch,
    VectorRecord,
)
from docscope.models.results import (
    FileOutcome,
    FormFillResult,
    IngestionResult,
    ReportResult,
    SlotOutcome,
)
from docscope.models.session import ChatMessage, SessionState
from docscope.models.triggers import EmbeddedTrigger, Trigger, TriggerTable

__all__ = [
    # Common
    "Category",
    "DEFAULT_CATEGORY",
    "GLOBAL_PARTITION",
    "Partition",
    "Sender",
    # Documents
    "UploadedFile",
    "DocumentRecord",
    "VectorRecord",
    "VectorMatch",
    "VectorFilter",
    # Results
    "FileOutcome",
    "IngestionResult",
    "SlotOutcome",
    "FormFillResult",
    "ReportResult",
    # Session
    "ChatMessage",
    "SessionState",
    # Triggers
    "Trigger",
    "EmbeddedTrigger",
    "TriggerTable",
]
