"""Domain models."""
from .document import (
    ALLOWED_TRANSITIONS,
    ChunkType,
    Document,
    DocumentChunk,
    DocumentStatus,
    can_transition,
)
from .chunking import ChunkingConfig, ChunkingResult, ChunkingStatistics
from .embedding import (
    EMBEDDING_MODELS,
    BatchEmbeddingResult,
    BatchError,
    EmbeddingConfig,
    EmbeddingItem,
    EmbeddingResponse,
)
from .search import SimilarDocument, VectorEntry, VectorMatch, VectorSearchOptions
from .similarity import (
    CheckState,
    DocumentMatch,
    GeneratedSimilarityData,
    MatchType,
    SimilarityCandidate,
    SimilarityOptions,
    SimilarityResult,
    SimilarityStatus,
)
from .indexing import CostEstimate, EmbeddingGenerationResult, IndexingResult

__all__ = [
    "ALLOWED_TRANSITIONS",
    "ChunkType",
    "Document",
    "DocumentChunk",
    "DocumentStatus",
    "can_transition",
    "ChunkingConfig",
    "ChunkingResult",
    "ChunkingStatistics",
    "EMBEDDING_MODELS",
    "BatchEmbeddingResult",
    "BatchError",
    "EmbeddingConfig",
    "EmbeddingItem",
    "EmbeddingResponse",
    "SimilarDocument",
    "VectorEntry",
    "VectorMatch",
    "VectorSearchOptions",
    "CheckState",
    "DocumentMatch",
    "GeneratedSimilarityData",
    "MatchType",
    "SimilarityCandidate",
    "SimilarityOptions",
    "SimilarityResult",
    "SimilarityStatus",
    "CostEstimate",
    "EmbeddingGenerationResult",
    "IndexingResult",
]
