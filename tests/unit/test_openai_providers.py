"""Tests for embedding and completion providers.

All tests are deterministic and do not make real network calls.
"""

import math
from unittest.mock import AsyncMock, MagicMock

import pytest

from docscope.config import Settings
from docscope.errors import CompletionError, EmbeddingError
from docscope.providers.completion import (
    DeterministicCompletionService,
    OpenAICompletionService,
    get_completion_service,
)
from docscope.providers.embeddings import (
    HashingEmbeddingService,
    OpenAIEmbeddingService,
    get_embedding_service,
)


def completion_response(content: str | None) -> MagicMock:
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = content
    return response


@pytest.mark.asyncio
async def test_hashing_embeddings_are_deterministic_and_normalized() -> None:
    """Test that the offline embedder is stable and unit-length."""
    embedder = HashingEmbeddingService(dimensions=64)

    first = await embedder.embed("Budget approved for the library")
    second = await embedder.embed("budget APPROVED for the library")

    assert first == second
    assert len(first) == 64
    assert math.isclose(math.sqrt(sum(v * v for v in first)), 1.0)


@pytest.mark.asyncio
async def test_hashing_embedding_of_empty_text_is_zero_vector() -> None:
    """Test that text without tokens embeds to the zero vector."""
    assert await HashingEmbeddingService(dimensions=8).embed("  ...  ") == [0.0] * 8


@pytest.mark.asyncio
async def test_openai_embedding_returns_vector() -> None:
    """Test that the OpenAI embedder returns the first embedding."""
    client = MagicMock()
    client.embeddings.create = AsyncMock(
        return_value=MagicMock(data=[MagicMock(embedding=[0.1, 0.2, 0.3])])
    )
    service = OpenAIEmbeddingService(api_key="k", model="emb-model", client=client)

    assert await service.embed("hello") == [0.1, 0.2, 0.3]
    client.embeddings.create.assert_awaited_once_with(model="emb-model", input="hello")


@pytest.mark.asyncio
async def test_openai_embedding_empty_response_raises() -> None:
    """Test that a response with no data raises EmbeddingError."""
    client = MagicMock()
    client.embeddings.create = AsyncMock(return_value=MagicMock(data=[]))
    service = OpenAIEmbeddingService(api_key="k", client=client)

    with pytest.raises(EmbeddingError, match="no embedding"):
        await service.embed("hello")


@pytest.mark.asyncio
async def test_openai_completion_accepts_prompt_or_history() -> None:
    """Test that a plain prompt becomes a single user message."""
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=completion_response("Answer"))
    service = OpenAICompletionService(api_key="k", model="chat-model", client=client)

    assert await service.complete("Question?") == "Answer"
    kwargs = client.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "chat-model"
    assert kwargs["messages"] == [{"role": "user", "content": "Question?"}]

    history = [{"role": "system", "content": "S"}, {"role": "user", "content": "Q"}]
    await service.complete(history)
    assert client.chat.completions.create.call_args.kwargs["messages"] == history


@pytest.mark.asyncio
async def test_openai_complete_json_uses_json_mode() -> None:
    """Test that structured extraction requests a JSON object response."""
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=completion_response('{"a": 1}'))
    service = OpenAICompletionService(api_key="k", client=client)

    assert await service.complete_json("Extract") == '{"a": 1}'
    assert client.chat.completions.create.call_args.kwargs["response_format"] == {
        "type": "json_object"
    }


@pytest.mark.asyncio
async def test_openai_empty_completion_raises() -> None:
    """Test that an empty completion is an error, not a silent empty answer."""
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=completion_response(None))
    service = OpenAICompletionService(api_key="k", client=client)

    with pytest.raises(CompletionError, match="empty completion"):
        await service.complete("Question?")


@pytest.mark.asyncio
async def test_stub_completion_is_deterministic() -> None:
    """Test the offline completion stub."""
    stub = DeterministicCompletionService()

    assert "Hello there" in await stub.complete("Hello there")
    assert await stub.complete_json("anything") == "{}"


def test_factories_fall_back_without_api_key() -> None:
    """Test that missing keys select the deterministic implementations."""
    settings = Settings(_env_file=None, openai_api_key=None)

    assert isinstance(get_embedding_service(settings), HashingEmbeddingService)
    assert isinstance(get_completion_service(settings), DeterministicCompletionService)


def test_factories_use_openai_with_api_key() -> None:
    """Test that a configured key selects the OpenAI implementations."""
    settings = Settings(_env_file=None, openai_api_key="sk-test", openai_model="m")

    completion = get_completion_service(settings)

    assert isinstance(get_embedding_service(settings), OpenAIEmbeddingService)
    assert isinstance(completion, OpenAICompletionService)
    assert completion.model == "m"
