from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from openai import OpenAIError

from advisor_bot.errors import EmbeddingError, UpstreamServiceError
from advisor_bot.rag.embeddings import EmbeddingGenerator


@pytest.fixture
def client():
    client = MagicMock()
    client.embeddings.create = AsyncMock(
        return_value=SimpleNamespace(data=[SimpleNamespace(embedding=[0.1, 0.2, 0.3])])
    )
    return client


async def test_generate_calls_the_configured_model(client):
    generator = EmbeddingGenerator(model="text-embedding-3-small", client=client)

    assert await generator.generate("Our mission") == [0.1, 0.2, 0.3]
    client.embeddings.create.assert_awaited_once_with(model="text-embedding-3-small", input="Our mission")


async def test_repeated_text_is_served_from_cache(client):
    generator = EmbeddingGenerator(client=client)

    await generator.generate("Our mission")
    await generator.generate("Our mission")
    assert client.embeddings.create.await_count == 1


async def test_empty_text_is_rejected_without_a_call(client):
    generator = EmbeddingGenerator(client=client)

    with pytest.raises(EmbeddingError):
        await generator.generate("   ")

    client.embeddings.create.assert_not_awaited()


async def test_api_errors_become_embedding_errors(client):
    client.embeddings.create.side_effect = OpenAIError("rate limited")

    with pytest.raises(EmbeddingError) as exc_info:
        await EmbeddingGenerator(client=client).generate("Our mission")

    assert isinstance(exc_info.value, UpstreamServiceError)
