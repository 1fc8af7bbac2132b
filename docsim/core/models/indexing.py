"""Indexing models."""
from dataclasses import dataclass, field
from typing import Optional

from .chunking import ChunkingStatistics
from .embedding import BatchEmbeddingResult


@dataclass
class CostEstimate:
    """Estimated provider cost of an embedding run."""
    total_tokens: int
    cost_per_token: float

    @property
    def total_cost(self) -> float:
        return self.total_tokens * self.cost_per_token


@dataclass
class IndexingResult:
    """Outcome of indexing one document."""
    document_id: str
    chunk_count: int
    embedded_count: int
    failed_count: int
    reused_generated_data: bool = False
    statistics: Optional[ChunkingStatistics] = None
    errors: list[str] = field(default_factory=list)


@dataclass
class EmbeddingGenerationResult:
    """Outcome of (re)generating embeddings for stored chunks."""
    document_id: str
    total_chunks_processed: int
    chunks_skipped: int
    chunks_with_errors: int
    processing_time_ms: int
    estimated_cost: CostEstimate
    batch_result: Optional[BatchEmbeddingResult] = None
    errors: list[str] = field(default_factory=list)
