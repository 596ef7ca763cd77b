"""OCR / vision service using the Mistral OCR API.

Used as the direct extractor for images and as the fallback for PDFs whose local
parse yields nothing.
"""

import base64
import logging
from typing import Protocol

import httpx

from docscope.config import Settings
from docscope.errors import OCRError
from docscope.providers.policy import CallPolicy

logger = logging.getLogger(__name__)


class OCRService(Protocol):
    """Protocol for OCR providers."""

    async def extract_text(self, data: bytes, mime_type: str) -> str:
        """Recognize the text of a PDF or image.

        Raises:
            OCRError: On provider or transport failure
        """
        ...


def to_data_uri(data: bytes, mime_type: str) -> str:
    """Encode raw bytes as a base64 data URI."""
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


class MistralOCRService:
    """Mistral OCR client over httpx."""

    def __init__(
        self,
        api_key: str,
        model: str = "mistral-ocr-latest",
        url: str = "https://api.mistral.ai/v1/ocr",
        policy: CallPolicy | None = None,
        client: httpx.AsyncClient | None = None,
        timeout_seconds: float = 60.0,
    ) -> None:
        """Initialize the OCR client.

        Args:
            api_key: Mistral API key (read from environment)
            model: OCR model name
            url: OCR endpoint
            policy: Call policy (delay / timeout / retries)
            client: Optional httpx client (for testing with mocks)
            timeout_seconds: HTTP timeout when the client is created here
        """
        self._api_key = api_key
        self.model = model
        self.url = url
        self._policy = policy or CallPolicy()
        self._client = client
        self._timeout_seconds = timeout_seconds

    async def extract_text(self, data: bytes, mime_type: str) -> str:
        """Send the document as a data URI and join the markdown of every page."""
        return await self._policy.execute(
            "ocr", lambda: self._process(data, mime_type), error_cls=OCRError
        )

    def _payload(self, data: bytes, mime_type: str) -> dict[str, object]:
        data_uri = to_data_uri(data, mime_type)
        if mime_type.startswith("image/"):
            document = {"type": "image_url", "image_url": data_uri}
        else:
            document = {"type": "document_url", "document_url": data_uri}
        return {"model": self.model, "document": document}

    async def _process(self, data: bytes, mime_type: str) -> str:
        close_client = False
        client = self._client
        if client is None:
            client = httpx.AsyncClient(timeout=self._timeout_seconds)
            close_client = True

        try:
            response = await client.post(
                self.url,
                json=self._payload(data, mime_type),
                headers={"Authorization": f"Bearer {self._api_key}"},
            )
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPStatusError as e:
            raise OCRError(f"OCR service returned HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise OCRError(f"OCR service unreachable: {e}") from e
        except ValueError as e:
            raise OCRError(f"OCR service returned invalid JSON: {e}") from e
        finally:
            if close_client:
                await client.aclose()

        # Response structure: {pages: [{index, markdown, ...}, ...]}
        pages = body.get("pages") if isinstance(body, dict) else None
        if not isinstance(pages, list):
            raise OCRError("OCR response has no pages")

        return "\n\n".join(str(page.get("markdown", "")) for page in pages)


class UnconfiguredOCRService:
    """Placeholder used when no OCR key is configured; every call fails."""

    async def extract_text(self, data: bytes, mime_type: str) -> str:
        raise OCRError("OCR service is not configured (set DOCSCOPE_MISTRAL_API_KEY)")


def get_ocr_service(settings: Settings, policy: CallPolicy | None = None) -> OCRService:
    """Factory function to get the OCR service based on config."""
    api_key = settings.mistral_api_key

    if api_key and api_key.get_secret_value():
        logger.info("Using Mistral OCR")
        return MistralOCRService(
            api_key=api_key.get_secret_value(),
            model=settings.mistral_ocr_model,
            url=settings.mistral_ocr_url,
            policy=policy,
            timeout_seconds=settings.provider_timeout_ms / 1000,
        )

    logger.warning("No Mistral API key configured, OCR fallback disabled")
    return UnconfiguredOCRService()
