import pytest

from docsim.core.models.similarity import SimilarityCandidate
from docsim.core.strategies import (
    CoverageWeightedScoring,
    DocumentHits,
    ThresholdCutoffFilter,
)


def _hits(document_id, similarity, matched, total):
    hits = DocumentHits(document_id=document_id, total_chunks=total)
    for _ in range(matched):
        hits.add(similarity)
    return hits


def test_score_is_average_times_coverage():
    candidate = CoverageWeightedScoring().score(_hits("doc", 0.9, 17, 20))

    assert candidate.avg_similarity == pytest.approx(0.9)
    assert candidate.coverage == pytest.approx(0.85)
    assert candidate.final_score == pytest.approx(0.765)
    assert candidate.matched_chunks == 17
    assert candidate.total_chunks == 20


def test_coverage_above_one_is_clamped():
    candidate = CoverageWeightedScoring().score(_hits("doc", 0.95, 8, 2))

    assert candidate.coverage == 1.0
    assert candidate.final_score == pytest.approx(0.95)


def test_zero_total_chunks_does_not_divide_by_zero():
    candidate = CoverageWeightedScoring().score(_hits("doc", 0.8, 0, 0))

    assert candidate.final_score == 0.0
    assert candidate.coverage == 0.0


@pytest.mark.parametrize(
    "similarities,total",
    [([1.0, 1.0, 1.0], 1), ([0.0], 5), ([0.3, 0.99, 0.5], 3), ([1.2], 1)],
)
def test_final_score_stays_in_unit_interval(similarities, total):
    hits = DocumentHits(document_id="doc", total_chunks=total)
    for s in similarities:
        hits.add(s)

    candidate = CoverageWeightedScoring().score(hits)

    assert 0.0 <= candidate.final_score <= 1.0


def test_cutoff_keeps_high_coverage_candidate_and_drops_partial_one():
    scoring = CoverageWeightedScoring()
    strong = scoring.score(_hits("strong", 0.9, 17, 20))
    partial = scoring.score(_hits("partial", 0.8, 5, 10))

    kept = ThresholdCutoffFilter(threshold=0.7).apply([partial, strong])

    assert [c.document_id for c in kept] == ["strong"]


def test_cutoff_sorts_and_limits():
    candidates = [
        SimilarityCandidate(
            document_id=f"doc-{score}",
            final_score=score,
            avg_similarity=score,
            coverage=1.0,
            matched_chunks=1,
            total_chunks=1,
        )
        for score in (0.71, 0.95, 0.8, 0.9)
    ]

    kept = ThresholdCutoffFilter(threshold=0.7, max_candidates=2).apply(candidates)

    assert [c.final_score for c in kept] == [0.95, 0.9]


def test_score_exactly_at_threshold_is_kept():
    candidate = CoverageWeightedScoring().score(_hits("doc", 0.7, 1, 1))

    assert ThresholdCutoffFilter(threshold=0.7).apply([candidate]) == [candidate]
