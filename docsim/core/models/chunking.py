"""Chunking models."""
from dataclasses import dataclass, field

from .document import DocumentChunk


@dataclass(frozen=True)
class ChunkingConfig:
    """Chunker configuration."""
    max_chunk_size: int = 1000
    overlap: int = 100
    min_chunk_size: int = 50
    respect_paragraphs: bool = True
    respect_sentences: bool = True
    # Overlap words per chunk = overlap // overlap_word_divisor
    overlap_word_divisor: int = 10


@dataclass
class ChunkingStatistics:
    """Per-run chunking statistics."""
    total_chunks: int = 0
    min_chunk_size: int = 0
    average_chunk_size: int = 0
    max_chunk_size: int = 0
    overlap_percentage: float = 0.0
    dropped_paragraphs: int = 0


@dataclass
class ChunkingResult:
    """Chunks produced for a document plus run statistics."""
    chunks: list[DocumentChunk]
    config: ChunkingConfig
    statistics: ChunkingStatistics = field(default_factory=ChunkingStatistics)

    @property
    def contents(self) -> list[str]:
        return [c.content for c in self.chunks]
