"""Core business services."""
from .chunker import SemanticChunker
from .embedding_batcher import EmbeddingBatcher
from .hasher import binary_fingerprint, text_fingerprint
from .indexing_service import IndexingService
from .lifecycle_service import DocumentLifecycleService
from .search_service import SearchService
from .similarity_service import SimilarityService

__all__ = [
    "SemanticChunker",
    "EmbeddingBatcher",
    "binary_fingerprint",
    "text_fingerprint",
    "IndexingService",
    "DocumentLifecycleService",
    "SearchService",
    "SimilarityService",
]
