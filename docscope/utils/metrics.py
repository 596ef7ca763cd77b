"""Prometheus metrics for provider calls, ingestion and context switching."""

from prometheus_client import Counter, Histogram

# Provider call metrics
provider_call_latency_ms = Histogram(
    "docscope_provider_call_latency_ms",
    "External provider call latency in milliseconds",
    ["provider", "outcome"],
    buckets=[10, 50, 100, 200, 500, 1000, 2000, 5000, 10000, 30000],
)

provider_errors_total = Counter(
    "docscope_provider_errors_total",
    "Total external provider call errors",
    ["provider", "reason"],
)

# Pipeline metrics
ingested_files_total = Counter(
    "docscope_ingested_files_total",
    "Files processed by the ingestion pipeline",
    ["outcome"],
)

extraction_fallbacks_total = Counter(
    "docscope_extraction_fallbacks_total",
    "Extractions that fell back from the local parser to OCR",
    ["family"],
)

context_switches_total = Counter(
    "docscope_context_switches_total",
    "Active category switches triggered by user utterances",
    ["category"],
)

form_slots_total = Counter(
    "docscope_form_slots_total",
    "Structured-extraction slot outcomes",
    ["outcome"],
)


class CallMetrics:
    """Interface for provider call metrics (no-op default)."""

    def record_latency(self, provider: str, outcome: str, latency_ms: float) -> None:
        """Record provider call latency."""
        pass

    def inc_error(self, provider: str, reason: str) -> None:
        """Increment error counter."""
        pass


class PrometheusCallMetrics(CallMetrics):
    """Prometheus-based provider call metrics implementation."""

    def record_latency(self, provider: str, outcome: str, latency_ms: float) -> None:
        """Record provider call latency."""
        provider_call_latency_ms.labels(provider=provider, outcome=outcome).observe(latency_ms)

    def inc_error(self, provider: str, reason: str) -> None:
        """Increment error counter."""
        provider_errors_total.labels(provider=provider, reason=reason).inc()
