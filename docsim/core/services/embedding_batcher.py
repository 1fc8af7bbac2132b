"""Embedding batcher - budgeted, partially failing batch embedding."""

import logging
import math
import string
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Optional

from ..errors import PipelineStep, ProviderError, ValidationError
from ..models.embedding import (
    BatchEmbeddingResult,
    BatchError,
    EmbeddingConfig,
    EmbeddingResponse,
)
from ..protocols.embedder import EmbeddingProviderProtocol

logger = logging.getLogger(__name__)

_PUNCTUATION = frozenset(string.punctuation)

# Client-side errors a retry cannot fix.
_NON_RETRYABLE_STATUS = frozenset({400, 401, 403, 404, 422})


class EmbeddingBatcher:
    """Embeds ordered texts in sub-batches bounded by item count and tokens."""

    def __init__(
        self,
        provider: EmbeddingProviderProtocol,
        config: Optional[EmbeddingConfig] = None,
        max_batch_size: int = 2048,
        max_batch_tokens: int = 250_000,
        max_text_chars: int = 50_000,
        max_texts: int = 100_000,
        batch_delay: float = 0.1,
        timeout: Optional[float] = 60.0,
        max_retries: int = 2,
        retry_base_delay: float = 1.0,
    ):
        """Initialize embedding batcher.

        Args:
            provider: Embedding provider.
            config: Default model selection.
            max_batch_size: Maximum texts per provider call.
            max_batch_tokens: Maximum estimated tokens per provider call.
            max_text_chars: Maximum characters of a single text.
            max_texts: Maximum texts accepted by one embed_batch() call.
            batch_delay: Pause between sub-batches, in seconds.
            timeout: Default bound for one provider call, in seconds.
            max_retries: Retries of a sub-batch after a provider error.
            retry_base_delay: First retry pause; doubles on each retry.
        """
        self._provider = provider
        self._config = config or EmbeddingConfig()
        self._max_batch_size = max_batch_size
        self._max_batch_tokens = max_batch_tokens
        self._max_text_chars = max_text_chars
        self._max_texts = max_texts
        self._batch_delay = batch_delay
        self._timeout = timeout
        self._max_retries = max_retries
        self._retry_base_delay = retry_base_delay

    @property
    def config(self) -> EmbeddingConfig:
        return self._config

    @staticmethod
    def estimate_tokens(text: str) -> int:
        """Estimate provider tokens for a text.

        Starts from ~4 characters per token, adds weight for punctuation,
        which tokenizers mostly split off, and never goes below the word
        count.
        """
        if not text:
            return 0
        punctuation = sum(1 for ch in text if ch in _PUNCTUATION)
        return max(math.ceil(len(text) / 4 + punctuation * 0.25), len(text.split()))

    def validate_texts(self, texts: list[str]) -> None:
        """Validate every input before any provider call.

        Raises:
            ValidationError: On an empty list, too many texts, or an
                empty or oversized text (``index`` names the text).
        """
        if not texts:
            raise ValidationError(
                "At least one text is required", step=PipelineStep.EMBED
            )
        if len(texts) > self._max_texts:
            raise ValidationError(
                f"Too many texts: {len(texts)} (max {self._max_texts})",
                step=PipelineStep.EMBED,
            )

        for i, text in enumerate(texts):
            if not isinstance(text, str) or not text.strip():
                raise ValidationError(
                    f"Text at index {i} is empty", step=PipelineStep.EMBED, index=i
                )
            if len(text.strip()) > self._max_text_chars:
                raise ValidationError(
                    f"Text at index {i} is too long: {len(text.strip())} chars "
                    f"(max {self._max_text_chars})",
                    step=PipelineStep.EMBED,
                    index=i,
                )

    def plan_batches(self, texts: list[str]) -> list[list[int]]:
        """Partition text indices into sub-batches.

        Returns:
            Consecutive index groups, each within the item and token limits.
        """
        batches: list[list[int]] = []
        current: list[int] = []
        current_tokens = 0

        for i, text in enumerate(texts):
            tokens = self.estimate_tokens(text)
            if current and (
                len(current) >= self._max_batch_size
                or current_tokens + tokens > self._max_batch_tokens
            ):
                batches.append(current)
                current = []
                current_tokens = 0
            current.append(i)
            current_tokens += tokens

        if current:
            batches.append(current)
        return batches

    def embed_batch(
        self,
        texts: list[str],
        config: Optional[EmbeddingConfig] = None,
        timeout: Optional[float] = None,
    ) -> BatchEmbeddingResult:
        """Embed texts, tolerating failed sub-batches.

        Args:
            texts: Texts to embed.
            config: Override for the default model selection.
            timeout: Override for the per-call timeout.

        Returns:
            Result whose embeddings line up with ``texts``; positions of
            failed sub-batches hold None and are listed in ``errors``.
        """
        config = config or self._config
        config.validate(known_models_only=False)
        self.validate_texts(texts)
        timeout = timeout if timeout is not None else self._timeout

        batches = self.plan_batches(texts)
        embeddings: list[Optional[list[float]]] = [None] * len(texts)
        errors: list[BatchError] = []
        total_tokens = 0
        model = config.model

        logger.info(f"Embedding {len(texts)} texts in {len(batches)} batches")

        for batch_index, indices in enumerate(batches):
            if batch_index > 0 and self._batch_delay > 0:
                time.sleep(self._batch_delay)

            batch_texts = [texts[i] for i in indices]
            try:
                vectors, response = self._embed_sub_batch(batch_texts, config, timeout)
            except Exception as e:
                logger.error(f"Batch {batch_index + 1}/{len(batches)} failed: {e}")
                errors.append(
                    BatchError(
                        batch_index=batch_index,
                        message=f"Batch {batch_index + 1}: {e}",
                        text_indices=list(indices),
                    )
                )
                continue

            for i, vector in zip(indices, vectors):
                embeddings[i] = vector
            total_tokens += response.tokens_used
            model = response.model or model

        successful = sum(1 for e in embeddings if e is not None)
        dimensions = next((len(e) for e in embeddings if e is not None), 0)

        logger.info(
            f"Embedded {successful}/{len(texts)} texts "
            f"({total_tokens} tokens, {len(errors)} failed batches)"
        )

        return BatchEmbeddingResult(
            embeddings=embeddings,
            model=model,
            dimensions=dimensions,
            total_tokens_used=total_tokens,
            successful_count=successful,
            failed_count=len(texts) - successful,
            errors=errors,
        )

    def embed_text(
        self,
        text: str,
        config: Optional[EmbeddingConfig] = None,
        timeout: Optional[float] = None,
    ) -> list[float]:
        """Embed a single text.

        Raises:
            ProviderError: If the embedding could not be generated.
        """
        result = self.embed_batch([text], config=config, timeout=timeout)
        vector = result.embeddings[0]
        if vector is None:
            message = result.errors[0].message if result.errors else "unknown error"
            raise ProviderError(
                f"Failed to embed text: {message}", step=PipelineStep.EMBED
            )
        return vector

    def _embed_sub_batch(
        self, texts: list[str], config: EmbeddingConfig, timeout: Optional[float]
    ) -> tuple[list[list[float]], EmbeddingResponse]:
        attempt = 0
        while True:
            try:
                response = self._call_provider(texts, config, timeout)
                return self._ordered_vectors(response, len(texts)), response
            except ProviderError as e:
                if attempt >= self._max_retries or e.status_code in _NON_RETRYABLE_STATUS:
                    raise
                delay = self._retry_base_delay * (2 ** attempt)
                attempt += 1
                logger.warning(
                    f"Embedding attempt {attempt}/{self._max_retries + 1} failed: {e}. "
                    f"Retrying in {delay}s..."
                )
                time.sleep(delay)

    def _call_provider(
        self, texts: list[str], config: EmbeddingConfig, timeout: Optional[float]
    ) -> EmbeddingResponse:
        # A fresh single-use worker per call so a hung call cannot block the next one.
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="embed")
        try:
            future = executor.submit(self._provider.embed, texts, config)
            try:
                return future.result(timeout=timeout)
            except FutureTimeoutError as e:
                future.cancel()
                raise ProviderError(
                    f"Embedding provider timed out after {timeout}s",
                    step=PipelineStep.EMBED,
                    cause=e,
                ) from e
        finally:
            executor.shutdown(wait=False)

    @staticmethod
    def _ordered_vectors(
        response: EmbeddingResponse, expected: int
    ) -> list[list[float]]:
        items = sorted(response.items, key=lambda item: item.index)
        if len(items) != expected or [item.index for item in items] != list(range(expected)):
            raise ProviderError(
                f"Provider returned {len(items)} embeddings for {expected} texts",
                step=PipelineStep.EMBED,
            )

        dimensions = {len(item.vector) for item in items}
        if len(dimensions) > 1:
            raise ProviderError(
                f"Provider returned mixed dimensions: {sorted(dimensions)}",
                step=PipelineStep.EMBED,
            )
        return [list(item.vector) for item in items]
