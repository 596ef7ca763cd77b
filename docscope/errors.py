"""Exception taxonomy.

Per-item errors (one file, one form slot) are caught by the batch orchestrators and
recorded as outcomes; request-level errors propagate to the caller.
"""


class DocscopeError(Exception):
    """Base class for all docscope errors."""

    pass


class UnsupportedFormatError(DocscopeError):
    """No extraction strategy exists for the file's extension / declared type."""

    def __init__(self, extension: str, declared_type: str) -> None:
        self.extension = extension
        self.declared_type = declared_type
        super().__init__(f"Unsupported file type: {extension or '<none>'} ({declared_type})")


class ExtractionError(DocscopeError):
    """Every strategy in a file's fallback chain failed to yield text."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


class ConversionError(ExtractionError):
    """Document conversion service failed or was unreachable."""

    def __init__(self, reason: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(reason)


class OCRError(DocscopeError):
    """OCR / vision service failed."""

    pass


class EmbeddingError(DocscopeError):
    """Embedding provider or transport failure."""

    pass


class VectorIndexError(DocscopeError):
    """Vector index provider or transport failure."""

    pass


class CompletionError(DocscopeError):
    """Completion provider or transport failure."""

    pass


class SchemaParseError(DocscopeError):
    """Structured-extraction response could not be parsed into the expected shape."""

    def __init__(self, slot: str, raw_response: str, reason: str) -> None:
        self.slot = slot
        self.raw_response = raw_response
        self.reason = reason
        super().__init__(f"Slot '{slot}': {reason}")


class ScopeConfigurationError(DocscopeError):
    """Unknown category name; rejects the whole request."""

    pass


class CategoryLimitError(DocscopeError):
    """Upload would push a category past its configured document limit."""

    def __init__(self, category: str, limit: int, current: int, requested: int) -> None:
        self.category = category
        self.limit = limit
        self.current = current
        self.requested = requested
        super().__init__(
            f"Category '{category}' holds {current} of {limit} documents; "
            f"cannot add {requested} more"
        )


class IngestionFailedError(DocscopeError):
    """No file in the batch was ingested."""

    def __init__(self, outcomes: list) -> None:
        self.outcomes = outcomes
        reasons = "; ".join(f"{o.file_name}: {o.reason}" for o in outcomes)
        super().__init__(f"No file could be processed ({reasons})" if reasons else "No files given")


class ReportGenerationError(DocscopeError):
    """Final report could not be produced."""

    pass


class SessionNotFoundError(DocscopeError):
    """Session id unknown to the session store."""

    pass


class DocumentNotFoundError(DocscopeError):
    """Document id unknown to the catalog."""

    pass


class FormConfigurationError(DocscopeError):
    """A form slot or report has no usable template; rejects the whole request."""

    pass
