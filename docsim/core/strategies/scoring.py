import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from ..models.similarity import SimilarityCandidate

logger = logging.getLogger(__name__)


def clamp_unit(value: float) -> float:
    return max(0.0, min(1.0, value))


@dataclass
class DocumentHits:
    """Per-chunk similarities collected for one candidate document."""
    document_id: str
    similarities: list[float] = field(default_factory=list)
    total_chunks: int = 0

    @property
    def matched_chunks(self) -> int:
        return len(self.similarities)

    def add(self, similarity: float) -> None:
        self.similarities.append(similarity)


class ScoringStrategy(ABC):
    """Base class for candidate scoring strategies."""

    @abstractmethod
    def score(self, hits: DocumentHits) -> SimilarityCandidate:
        """Turn accumulated hits into a scored candidate."""
        ...


class CoverageWeightedScoring(ScoringStrategy):
    """Average similarity weighted by the share of the candidate that matched.

    Both factors are clamped to [0, 1] before multiplying, so the final
    score stays in [0, 1] even when one candidate chunk matched several
    query chunks.
    """

    def score(self, hits: DocumentHits) -> SimilarityCandidate:
        avg_similarity = (
            sum(hits.similarities) / len(hits.similarities) if hits.similarities else 0.0
        )
        coverage = hits.matched_chunks / max(hits.total_chunks, 1)

        avg_similarity = clamp_unit(avg_similarity)
        coverage = clamp_unit(coverage)

        return SimilarityCandidate(
            document_id=hits.document_id,
            final_score=clamp_unit(avg_similarity * coverage),
            avg_similarity=avg_similarity,
            coverage=coverage,
            matched_chunks=hits.matched_chunks,
            total_chunks=hits.total_chunks,
        )


class CandidateFilter(ABC):
    """Base class for candidate filtering strategies."""

    @abstractmethod
    def apply(self, candidates: list[SimilarityCandidate]) -> list[SimilarityCandidate]:
        """Apply filter to candidates."""
        ...


class ThresholdCutoffFilter(CandidateFilter):
    """Keep candidates at or above a score, best first, up to a limit."""

    def __init__(self, threshold: float = 0.7, max_candidates: int = 10):
        """Initialize filter.

        Args:
            threshold: Minimum final score.
            max_candidates: Maximum candidates kept.
        """
        self._threshold = threshold
        self._max_candidates = max_candidates

    def apply(self, candidates: list[SimilarityCandidate]) -> list[SimilarityCandidate]:
        kept = [c for c in candidates if c.final_score >= self._threshold]
        kept.sort(key=lambda c: c.final_score, reverse=True)

        if len(kept) < len(candidates):
            logger.info(
                f"Score cutoff: {len(candidates)} → {len(kept)} "
                f"(threshold={self._threshold:.2f})"
            )

        return kept[: self._max_candidates]
