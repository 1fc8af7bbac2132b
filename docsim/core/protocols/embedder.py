"""Embedding provider protocol for dependency injection."""
from typing import Protocol, runtime_checkable

from ..models.embedding import EmbeddingConfig, EmbeddingResponse


@runtime_checkable
class EmbeddingProviderProtocol(Protocol):
    """Protocol for a remote or local embedding provider."""

    def embed(self, texts: list[str], config: EmbeddingConfig) -> EmbeddingResponse:
        """Embed a single provider-sized batch of texts.

        Args:
            texts: Texts to embed, already validated and batched.
            config: Model selection.

        Returns:
            Vectors tagged with their input index, in any order, plus
            token usage.

        Raises:
            ProviderError: If the provider rejects or fails the call.
        """
        ...
