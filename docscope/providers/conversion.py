"""Document conversion microservice client (legacy office formats -> PDF).

A single awaited request/response exchange with an explicit timeout. Any
non-2xx status or transport failure is a hard ConversionError for the file.
"""

import logging
from typing import Protocol

import httpx

from docscope.config import Settings
from docscope.errors import ConversionError
from docscope.providers.policy import CallPolicy

logger = logging.getLogger(__name__)


class ConversionService(Protocol):
    """Protocol for document conversion providers."""

    async def convert(self, file_bytes: bytes, original_name: str) -> bytes:
        """Convert a document to PDF.

        Raises:
            ConversionError: Non-success response or unreachable service
        """
        ...


class HttpConversionService:
    """Posts the file as multipart form data and returns the PDF body."""

    def __init__(
        self,
        url: str,
        timeout_seconds: float = 120.0,
        policy: CallPolicy | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize conversion client.

        Args:
            url: Conversion endpoint accepting a multipart "file" field
            timeout_seconds: HTTP timeout for the whole exchange
            policy: Call policy (delay / retries)
            client: Optional httpx client (for testing with mocks)
        """
        self.url = url
        self.timeout_seconds = timeout_seconds
        self._policy = policy or CallPolicy()
        self._client = client

    async def convert(self, file_bytes: bytes, original_name: str) -> bytes:
        """Convert a document to PDF bytes."""
        logger.info(f"Delegating conversion of {original_name} ({len(file_bytes)} bytes)")
        return await self._policy.execute(
            "conversion",
            lambda: self._post(file_bytes, original_name),
            error_cls=ConversionError,
        )

    async def _post(self, file_bytes: bytes, original_name: str) -> bytes:
        close_client = False
        client = self._client
        if client is None:
            client = httpx.AsyncClient(timeout=self.timeout_seconds)
            close_client = True

        try:
            response = await client.post(
                self.url,
                files={"file": (original_name, file_bytes, "application/octet-stream")},
            )
        except httpx.TimeoutException as e:
            raise ConversionError(
                f"Conversion service at {self.url} timed out after {self.timeout_seconds}s"
            ) from e
        except httpx.HTTPError as e:
            raise ConversionError(f"No response from conversion service at {self.url}: {e}") from e
        finally:
            if close_client:
                await client.aclose()

        if not response.is_success:
            raise ConversionError(
                f"Conversion service failed with status {response.status_code}",
                status_code=response.status_code,
            )
        if not response.content:
            raise ConversionError("Conversion service returned an empty document")

        logger.info(f"Converted {original_name} to PDF ({len(response.content)} bytes)")
        return response.content


class UnconfiguredConversionService:
    """Used when no conversion URL is configured; every call fails loudly."""

    async def convert(self, file_bytes: bytes, original_name: str) -> bytes:
        raise ConversionError(
            f"Converting {original_name} requires a conversion service, "
            "but DOCSCOPE_CONVERSION_SERVICE_URL is not configured"
        )


def get_conversion_service(
    settings: Settings, policy: CallPolicy | None = None
) -> ConversionService:
    """Factory function to get the conversion service based on config."""
    if settings.conversion_service_url:
        return HttpConversionService(
            url=settings.conversion_service_url,
            timeout_seconds=settings.conversion_timeout_seconds,
            policy=policy,
        )

    logger.warning("No conversion service URL configured, legacy office formats will fail")
    return UnconfiguredConversionService()
