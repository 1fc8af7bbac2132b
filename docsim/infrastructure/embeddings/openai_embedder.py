import logging
from typing import Optional

from openai import APIConnectionError, APIStatusError, OpenAI

from docsim.core.errors import PipelineStep, ProviderError
from docsim.core.models.embedding import (
    EMBEDDING_MODELS,
    EmbeddingConfig,
    EmbeddingItem,
    EmbeddingResponse,
)

logger = logging.getLogger(__name__)


def _status_message(status_code: int) -> str:
    if status_code == 401:
        return "Invalid API key for embedding provider"
    if status_code == 429:
        return "Embedding provider rate limit exceeded"
    if status_code == 400:
        return "Invalid embedding request"
    if status_code >= 500:
        return "Embedding provider temporarily unavailable"
    return f"Embedding provider error (status {status_code})"


class OpenAIEmbeddingProvider:
    """Embedding provider backed by an OpenAI-compatible API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: float = 60.0,
        client: Optional[OpenAI] = None,
    ):
        """Initialize provider.

        Args:
            api_key: API key; falls back to OPENAI_API_KEY.
            base_url: Custom API base URL.
            timeout: HTTP timeout in seconds.
            client: Preconfigured client.
        """
        self._api_key = api_key
        self._base_url = base_url
        self._timeout = timeout
        self._client = client

    @property
    def client(self) -> OpenAI:
        """Lazy create API client."""
        if self._client is None:
            # Retries happen per sub-batch in the batcher.
            self._client = OpenAI(
                api_key=self._api_key,
                base_url=self._base_url,
                timeout=self._timeout,
                max_retries=0,
            )
        return self._client

    def embed(self, texts: list[str], config: EmbeddingConfig) -> EmbeddingResponse:
        params = {"model": config.model, "input": texts}
        info = EMBEDDING_MODELS.get(config.model)
        if config.dimensions is not None and (info is None or info.supports_dimensions):
            params["dimensions"] = config.dimensions

        try:
            response = self.client.embeddings.create(**params)
        except APIStatusError as e:
            raise ProviderError(
                f"{_status_message(e.status_code)}: {e.message}",
                step=PipelineStep.EMBED,
                status_code=e.status_code,
                cause=e,
            ) from e
        except APIConnectionError as e:
            raise ProviderError(
                f"Could not reach embedding provider: {e}",
                step=PipelineStep.EMBED,
                cause=e,
            ) from e

        usage = response.usage.total_tokens if response.usage else 0
        logger.debug(f"Embedded {len(texts)} texts with {config.model} ({usage} tokens)")

        return EmbeddingResponse(
            items=[
                EmbeddingItem(index=item.index, vector=list(item.embedding))
                for item in response.data
            ],
            tokens_used=usage,
            model=response.model or config.model,
        )
