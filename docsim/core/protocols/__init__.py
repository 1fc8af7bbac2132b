"""Protocol interfaces for dependency injection."""
from .embedder import EmbeddingProviderProtocol
from .vector_store import VectorIndexProtocol
from .repositories import ChunkRepositoryProtocol, DocumentRepositoryProtocol
from .storage import BlobStoreProtocol
from .text_extractor import TextExtractorProtocol

__all__ = [
    "EmbeddingProviderProtocol",
    "VectorIndexProtocol",
    "ChunkRepositoryProtocol",
    "DocumentRepositoryProtocol",
    "BlobStoreProtocol",
    "TextExtractorProtocol",
]
