"""Tests for the HTTP-backed OCR and conversion clients."""

import base64
import json

import httpx
import pytest

from docscope.config import Settings
from docscope.errors import ConversionError, OCRError
from docscope.providers.conversion import (
    HttpConversionService,
    UnconfiguredConversionService,
    get_conversion_service,
)
from docscope.providers.ocr import MistralOCRService, UnconfiguredOCRService, get_ocr_service


@pytest.mark.asyncio
async def test_ocr_sends_data_uri_and_joins_pages() -> None:
    """Test that the OCR client posts a base64 data URI and joins page markdown."""
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200, json={"pages": [{"index": 0, "markdown": "Page one"}, {"index": 1, "markdown": "Page two"}]}
        )

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    service = MistralOCRService(api_key="test-key", client=client)

    text = await service.extract_text(b"%PDF-1.4", "application/pdf")

    assert text == "Page one\n\nPage two"
    assert seen["auth"] == "Bearer test-key"
    assert seen["body"]["model"] == "mistral-ocr-latest"
    document = seen["body"]["document"]
    assert document["type"] == "document_url"
    assert document["document_url"] == (
        "data:application/pdf;base64," + base64.b64encode(b"%PDF-1.4").decode()
    )

    await client.aclose()


@pytest.mark.asyncio
async def test_ocr_sends_images_as_image_url() -> None:
    """Test that images use the image_url document type."""
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"pages": [{"markdown": "Receipt"}]})

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    service = MistralOCRService(api_key="k", client=client)

    assert await service.extract_text(b"\x89PNG", "image/png") == "Receipt"
    assert seen["body"]["document"]["type"] == "image_url"
    assert seen["body"]["document"]["image_url"].startswith("data:image/png;base64,")

    await client.aclose()


@pytest.mark.asyncio
async def test_ocr_http_error_maps_to_ocr_error() -> None:
    """Test that non-2xx OCR responses raise OCRError."""
    client = httpx.AsyncClient(
        transport=httpx.MockTransport(lambda request: httpx.Response(429, json={"detail": "slow down"}))
    )
    service = MistralOCRService(api_key="k", client=client)

    with pytest.raises(OCRError, match="HTTP 429"):
        await service.extract_text(b"data", "application/pdf")

    await client.aclose()


@pytest.mark.asyncio
async def test_ocr_response_without_pages_is_an_error() -> None:
    """Test that an unexpected OCR payload raises OCRError."""
    client = httpx.AsyncClient(
        transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"text": "?"}))
    )
    service = MistralOCRService(api_key="k", client=client)

    with pytest.raises(OCRError, match="no pages"):
        await service.extract_text(b"data", "application/pdf")

    await client.aclose()


@pytest.mark.asyncio
async def test_conversion_posts_multipart_and_returns_pdf() -> None:
    """Test that the file is sent as multipart "file" and the body is returned."""
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["content_type"] = request.headers["Content-Type"]
        seen["body"] = request.content
        return httpx.Response(200, content=b"%PDF-1.7 converted")

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    service = HttpConversionService(url="http://convert.local/convert", client=client)

    pdf = await service.convert(b"legacy bytes", "deck.pptx")

    assert pdf == b"%PDF-1.7 converted"
    assert seen["content_type"].startswith("multipart/form-data")
    assert b'name="file"; filename="deck.pptx"' in seen["body"]
    assert b"legacy bytes" in seen["body"]

    await client.aclose()


@pytest.mark.asyncio
async def test_conversion_non_success_is_hard_error() -> None:
    """Test that a non-2xx conversion response raises with its status code."""
    client = httpx.AsyncClient(
        transport=httpx.MockTransport(lambda request: httpx.Response(500, content=b"boom"))
    )
    service = HttpConversionService(url="http://convert.local/convert", client=client)

    with pytest.raises(ConversionError) as exc_info:
        await service.convert(b"x", "old.doc")

    assert exc_info.value.status_code == 500

    await client.aclose()


@pytest.mark.asyncio
async def test_conversion_unreachable_is_hard_error() -> None:
    """Test that transport failures raise ConversionError."""

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    service = HttpConversionService(url="http://convert.local/convert", client=client)

    with pytest.raises(ConversionError, match="No response from conversion service"):
        await service.convert(b"x", "old.doc")

    await client.aclose()


@pytest.mark.asyncio
async def test_unconfigured_services_fail_loudly() -> None:
    """Test that missing configuration produces explicit errors."""
    settings = Settings(_env_file=None, mistral_api_key=None, conversion_service_url=None)

    conversion = get_conversion_service(settings)
    ocr = get_ocr_service(settings)

    assert isinstance(conversion, UnconfiguredConversionService)
    assert isinstance(ocr, UnconfiguredOCRService)
    with pytest.raises(ConversionError, match="not configured"):
        await conversion.convert(b"x", "old.doc")
    with pytest.raises(OCRError, match="not configured"):
        await ocr.extract_text(b"x", "image/png")


def test_factories_build_http_clients_when_configured() -> None:
    """Test that configured settings yield the HTTP clients."""
    settings = Settings(
        _env_file=None, mistral_api_key="m-key", conversion_service_url="http://convert.local"
    )

    assert isinstance(get_conversion_service(settings), HttpConversionService)
    assert isinstance(get_ocr_service(settings), MistralOCRService)
