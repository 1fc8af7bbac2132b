import logging
from functools import cached_property

from sentence_transformers import SentenceTransformer

from docsim.core.errors import PipelineStep, ProviderError
from docsim.core.models.embedding import EmbeddingConfig, EmbeddingItem, EmbeddingResponse

logger = logging.getLogger(__name__)


class SentenceTransformerEmbedder:
    """Local embedding provider; the config's model name is ignored."""

    def __init__(
        self,
        model_name: str = "intfloat/multilingual-e5-base",
        prefix: str = "passage: ",
    ):
        self._model_name = model_name
        self._prefix = prefix

    @cached_property
    def model(self) -> SentenceTransformer:
        logger.info(f"Loading embedding model: {self._model_name}")
        return SentenceTransformer(self._model_name)

    def warmup(self) -> None:
        _ = self.model
        logger.info("Embedding model warmed up")

    def embed(self, texts: list[str], config: EmbeddingConfig) -> EmbeddingResponse:
        try:
            vectors = self.model.encode(
                [f"{self._prefix}{t}" for t in texts],
                convert_to_numpy=True,
                normalize_embeddings=True,
            )
        except Exception as e:
            raise ProviderError(
                f"Local embedding failed: {e}", step=PipelineStep.EMBED, cause=e
            ) from e

        return EmbeddingResponse(
            items=[EmbeddingItem(index=i, vector=v.tolist()) for i, v in enumerate(vectors)],
            tokens_used=0,
            model=self._model_name,
        )
