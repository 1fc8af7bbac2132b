"""Embedding models."""
from dataclasses import dataclass, field
from typing import Optional

from ..errors import PipelineStep, ValidationError


@dataclass(frozen=True)
class EmbeddingModelInfo:
    """Known limits of a remote embedding model."""
    name: str
    dimensions: tuple[int, ...]
    default_dimensions: int
    max_tokens: int = 8191
    supports_dimensions: bool = True


EMBEDDING_MODELS: dict[str, EmbeddingModelInfo] = {
    "text-embedding-3-small": EmbeddingModelInfo(
        name="text-embedding-3-small",
        dimensions=(512, 1536),
        default_dimensions=1536,
    ),
    "text-embedding-3-large": EmbeddingModelInfo(
        name="text-embedding-3-large",
        dimensions=(256, 1024, 3072),
        default_dimensions=3072,
    ),
    "text-embedding-ada-002": EmbeddingModelInfo(
        name="text-embedding-ada-002",
        dimensions=(1536,),
        default_dimensions=1536,
        supports_dimensions=False,
    ),
}


@dataclass(frozen=True)
class EmbeddingConfig:
    """Model selection for an embedding call."""
    model: str = "text-embedding-3-small"
    dimensions: Optional[int] = None

    @property
    def resolved_dimensions(self) -> Optional[int]:
        if self.dimensions is not None:
            return self.dimensions
        info = EMBEDDING_MODELS.get(self.model)
        return info.default_dimensions if info else None

    def validate(self, known_models_only: bool = True) -> None:
        """Check model name and requested dimensions.

        Args:
            known_models_only: Reject models missing from EMBEDDING_MODELS.

        Raises:
            ValidationError: If the model or dimensions are unsupported.
        """
        info = EMBEDDING_MODELS.get(self.model)
        if info is None:
            if known_models_only:
                raise ValidationError(
                    f"Unsupported embedding model: {self.model}",
                    step=PipelineStep.EMBED,
                )
            return
        if self.dimensions is not None and self.dimensions not in info.dimensions:
            raise ValidationError(
                f"Model {self.model} does not support {self.dimensions} dimensions "
                f"(supported: {', '.join(map(str, info.dimensions))})",
                step=PipelineStep.EMBED,
            )


@dataclass
class EmbeddingItem:
    """One vector returned by a provider, tagged with its input position."""
    index: int
    vector: list[float]


@dataclass
class EmbeddingResponse:
    """Raw provider response for a single call."""
    items: list[EmbeddingItem]
    tokens_used: int = 0
    model: str = ""


@dataclass
class BatchError:
    """Failure of one sub-batch."""
    batch_index: int
    message: str
    text_indices: list[int] = field(default_factory=list)


@dataclass
class BatchEmbeddingResult:
    """Aggregate result of a batched embedding call.

    ``embeddings`` is aligned with the input texts; positions whose
    sub-batch failed hold ``None``.
    """
    embeddings: list[Optional[list[float]]]
    model: str
    dimensions: int = 0
    total_tokens_used: int = 0
    successful_count: int = 0
    failed_count: int = 0
    errors: list[BatchError] = field(default_factory=list)

    @property
    def total_embeddings(self) -> int:
        return len(self.embeddings)

    @property
    def is_complete(self) -> bool:
        return self.failed_count == 0

    @property
    def failed_indices(self) -> list[int]:
        return [i for i, e in enumerate(self.embeddings) if e is None]
