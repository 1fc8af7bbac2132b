"""Similarity check models."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from .chunking import ChunkingConfig
from .document import Document, DocumentChunk


class CheckState(str, Enum):
    """Stages a similarity check passes through."""
    CHECKING_BINARY = "checking_binary"
    CHECKING_TEXT = "checking_text"
    CHECKING_VECTORS = "checking_vectors"


class SimilarityStatus(str, Enum):
    """Outcome of a similarity check."""
    EXACT_MATCH = "exact_match"
    TEXT_MATCH = "text_match"
    CANDIDATES = "candidates"
    NO_MATCH = "no_match"
    RESTORED = "restored"


class MatchType(str, Enum):
    """Fingerprint that produced an exact match."""
    BINARY_HASH = "binary_hash"
    TEXT_HASH = "text_hash"


@dataclass(frozen=True)
class SimilarityOptions:
    """Per-submission similarity check options."""
    similarity_threshold: float = 0.7
    max_candidates: int = 10
    skip_text_extraction: bool = False
    skip_embeddings: bool = False
    check_deleted: bool = True
    auto_restore: bool = False
    return_generated_data: bool = False


@dataclass
class DocumentMatch:
    """Existing document matched by fingerprint."""
    document: Document
    match_type: MatchType
    deleted: bool = False


@dataclass
class SimilarityCandidate:
    """Near-duplicate document with its aggregated score."""
    document_id: str
    final_score: float
    avg_similarity: float
    coverage: float
    matched_chunks: int
    total_chunks: int
    original_name: str = ""


@dataclass
class GeneratedSimilarityData:
    """Chunks and embeddings computed during a check, reusable at indexing."""
    extracted_text: str
    chunks: list[DocumentChunk]
    embeddings: list[list[float]]
    chunking_config: ChunkingConfig


@dataclass
class SimilarityResult:
    """Result of checking a submitted file against stored documents."""
    status: SimilarityStatus
    binary_hash: str = ""
    text_hash: Optional[str] = None
    match: Optional[DocumentMatch] = None
    restored_document: Optional[Document] = None
    candidates: list[SimilarityCandidate] = field(default_factory=list)
    generated: Optional[GeneratedSimilarityData] = None
    states_visited: list[CheckState] = field(default_factory=list)

    @property
    def is_duplicate(self) -> bool:
        return self.status in (
            SimilarityStatus.EXACT_MATCH,
            SimilarityStatus.TEXT_MATCH,
            SimilarityStatus.RESTORED,
        )
