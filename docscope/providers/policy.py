"""Cross-cutting call policy for external providers.

Every embedding, completion, vector index, OCR and conversion call goes through a
CallPolicy, which owns:
- an optional fixed delay before each call (provider rate limits)
- a hard timeout per attempt
- bounded retries with random jitter
- metrics and structured logging
Call semantics are unchanged: the wrapped call's result is returned as-is and the
last error is re-raised after the final attempt.
"""

import asyncio
import random
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from docscope.config import Settings
from docscope.errors import DocscopeError
from docscope.utils.logging import CallLogger
from docscope.utils.metrics import CallMetrics

T = TypeVar("T")


@dataclass(frozen=True)
class PolicyConfig:
    """Configuration for provider calls."""

    delay_ms: int = 0
    timeout_ms: int = 60000
    retry_count: int = 0
    retry_jitter_min_ms: int = 200
    retry_jitter_max_ms: int = 500

    @classmethod
    def from_settings(cls, settings: Settings, *, retries: bool = True) -> "PolicyConfig":
        """Build a config from settings; `retries=False` pins retry_count to 0."""
        return cls(
            delay_ms=settings.provider_call_delay_ms,
            timeout_ms=settings.provider_timeout_ms,
            retry_count=settings.provider_retry_count if retries else 0,
            retry_jitter_min_ms=settings.provider_retry_jitter_min_ms,
            retry_jitter_max_ms=settings.provider_retry_jitter_max_ms,
        )


class CallPolicy:
    """Wraps provider calls with delay, timeout, retries, metrics and logging."""

    def __init__(
        self,
        config: PolicyConfig | None = None,
        metrics: CallMetrics | None = None,
        logger: CallLogger | None = None,
        sleep_fn: Callable[[float], Awaitable[None]] | None = None,
    ) -> None:
        """Initialize policy.

        Args:
            config: Delay/timeout/retry configuration (default: no delay, no retry)
            metrics: Metrics recorder (optional, defaults to no-op)
            logger: Structured logger (optional, defaults to no-op)
            sleep_fn: Injectable sleep function (default: asyncio.sleep)
        """
        self.config = config or PolicyConfig()
        self._metrics = metrics or CallMetrics()
        self._logger = logger or CallLogger()
        self._sleep = sleep_fn or asyncio.sleep

    async def execute(
        self,
        provider: str,
        fn: Callable[[], Awaitable[T]],
        *,
        error_cls: type[DocscopeError] = DocscopeError,
    ) -> T:
        """Run `fn` under the policy.

        Args:
            provider: Provider label for metrics and logs ("embedding", "ocr", ...)
            fn: Zero-argument coroutine factory performing one attempt
            error_cls: Domain error raised when an attempt times out

        Returns:
            Whatever `fn` returns on the first successful attempt

        Raises:
            error_cls: All attempts timed out
            Exception: The last error raised by `fn` once retries are exhausted
        """
        last_error: BaseException | None = None

        for attempt in range(self.config.retry_count + 1):
            if self.config.delay_ms > 0:
                await self._sleep(self.config.delay_ms / 1000)

            attempt_start = time.monotonic()
            try:
                result = await asyncio.wait_for(fn(), timeout=self.config.timeout_ms / 1000)
            except asyncio.TimeoutError:
                elapsed_ms = (time.monotonic() - attempt_start) * 1000
                last_error = error_cls(
                    f"{provider} call timed out after {self.config.timeout_ms}ms"
                )
                self._metrics.inc_error(provider, "timeout")
                self._metrics.record_latency(provider, "timeout", elapsed_ms)
                self._logger.log_attempt(
                    provider, attempt + 1, "timeout", elapsed_ms, error_reason="timeout"
                )
            except asyncio.CancelledError:
                raise
            except Exception as e:
                elapsed_ms = (time.monotonic() - attempt_start) * 1000
                last_error = e
                self._metrics.inc_error(provider, type(e).__name__)
                self._metrics.record_latency(provider, "error", elapsed_ms)
                self._logger.log_attempt(
                    provider, attempt + 1, "error", elapsed_ms, error_reason=str(e)
                )
            else:
                elapsed_ms = (time.monotonic() - attempt_start) * 1000
                self._metrics.record_latency(provider, "success", elapsed_ms)
                self._logger.log_attempt(provider, attempt + 1, "success", elapsed_ms)
                return result

            if attempt < self.config.retry_count:
                jitter_ms = random.uniform(
                    self.config.retry_jitter_min_ms, self.config.retry_jitter_max_ms
                )
                await self._sleep(jitter_ms / 1000)

        assert last_error is not None
        raise last_error
