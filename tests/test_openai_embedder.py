from types import SimpleNamespace
from unittest.mock import Mock

import httpx
import openai
import pytest

from docsim.core.errors import PipelineStep, ProviderError
from docsim.core.models.embedding import EmbeddingConfig
from docsim.infrastructure.embeddings.openai_embedder import OpenAIEmbeddingProvider


def _client(vectors, tokens=7, model="text-embedding-3-small"):
    client = Mock()
    client.embeddings.create.return_value = SimpleNamespace(
        data=[SimpleNamespace(index=i, embedding=v) for i, v in enumerate(vectors)],
        usage=SimpleNamespace(total_tokens=tokens),
        model=model,
    )
    return client


def _status_error(cls, status):
    request = httpx.Request("POST", "https://api.example.test/v1/embeddings")
    return cls(
        "upstream said no",
        response=httpx.Response(status, request=request),
        body=None,
    )


def test_embed_maps_response_items():
    client = _client([[0.1, 0.2], [0.3, 0.4]])
    provider = OpenAIEmbeddingProvider(client=client)

    response = provider.embed(["a", "b"], EmbeddingConfig(dimensions=512))

    assert [item.index for item in response.items] == [0, 1]
    assert response.items[1].vector == [0.3, 0.4]
    assert response.tokens_used == 7
    assert response.model == "text-embedding-3-small"
    client.embeddings.create.assert_called_once_with(
        model="text-embedding-3-small", input=["a", "b"], dimensions=512
    )


def test_dimensions_are_not_sent_to_models_without_support():
    client = _client([[0.5] * 4], model="text-embedding-ada-002")
    provider = OpenAIEmbeddingProvider(client=client)

    provider.embed(["a"], EmbeddingConfig(model="text-embedding-ada-002", dimensions=1536))

    kwargs = client.embeddings.create.call_args.kwargs
    assert "dimensions" not in kwargs


@pytest.mark.parametrize(
    "cls,status,fragment",
    [
        (openai.RateLimitError, 429, "rate limit"),
        (openai.AuthenticationError, 401, "Invalid API key"),
        (openai.InternalServerError, 503, "temporarily unavailable"),
    ],
)
def test_status_errors_become_provider_errors(cls, status, fragment):
    client = Mock()
    client.embeddings.create.side_effect = _status_error(cls, status)
    provider = OpenAIEmbeddingProvider(client=client)

    with pytest.raises(ProviderError) as exc_info:
        provider.embed(["a"], EmbeddingConfig())

    assert exc_info.value.status_code == status
    assert exc_info.value.step is PipelineStep.EMBED
    assert fragment in str(exc_info.value)
    assert isinstance(exc_info.value.__cause__, cls)


def test_connection_errors_become_provider_errors():
    client = Mock()
    client.embeddings.create.side_effect = openai.APIConnectionError(
        request=httpx.Request("POST", "https://api.example.test/v1/embeddings")
    )
    provider = OpenAIEmbeddingProvider(client=client)

    with pytest.raises(ProviderError) as exc_info:
        provider.embed(["a"], EmbeddingConfig())

    assert exc_info.value.status_code is None


def test_client_is_created_lazily_without_sdk_retries(monkeypatch):
    created = {}

    def fake_openai(**kwargs):
        created.update(kwargs)
        return Mock()

    monkeypatch.setattr(
        "docsim.infrastructure.embeddings.openai_embedder.OpenAI", fake_openai
    )
    provider = OpenAIEmbeddingProvider(api_key="sk-test", timeout=12.0)

    assert created == {}
    client = provider.client

    assert provider.client is client
    assert created["max_retries"] == 0
    assert created["timeout"] == 12.0
    assert created["api_key"] == "sk-test"
