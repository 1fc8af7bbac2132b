"""Vector search models."""
from dataclasses import dataclass, field
from typing import Optional

from .document import ChunkType


@dataclass(frozen=True)
class VectorSearchOptions:
    """Nearest-neighbor query options."""
    limit: int = 10
    similarity_threshold: float = 0.7
    document_ids: Optional[frozenset[str]] = None
    exclude_document_ids: frozenset[str] = frozenset()
    chunk_types: Optional[frozenset[ChunkType]] = None
    exclude_chunk_ids: frozenset[str] = frozenset()

    def accepts(
        self, chunk_id: str, document_id: str, chunk_type: ChunkType
    ) -> bool:
        """Check a stored entry against the filters (threshold excluded)."""
        if self.document_ids is not None and document_id not in self.document_ids:
            return False
        if document_id in self.exclude_document_ids:
            return False
        if self.chunk_types is not None and chunk_type not in self.chunk_types:
            return False
        return chunk_id not in self.exclude_chunk_ids


@dataclass
class VectorEntry:
    """Vector stored for a chunk."""
    chunk_id: str
    document_id: str
    chunk_index: int
    chunk_type: ChunkType
    content: str
    vector: list[float]
    is_active: bool = True


@dataclass
class VectorMatch:
    """Nearest-neighbor hit."""
    chunk_id: str
    document_id: str
    similarity: float
    content: str = ""
    chunk_index: int = 0
    chunk_type: Optional[ChunkType] = None


@dataclass
class SimilarDocument:
    """Document-level grouping of nearest-neighbor hits."""
    document_id: str
    average_similarity: float
    max_similarity: float
    total_chunks: int
    relevant_chunks: list[VectorMatch] = field(default_factory=list)
