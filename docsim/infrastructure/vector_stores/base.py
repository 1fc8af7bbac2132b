import logging
import math

from docsim.core.errors import PipelineStep, ValidationError

logger = logging.getLogger(__name__)

COMMON_DIMENSIONS = frozenset({256, 384, 512, 768, 1024, 1536, 3072})


def validate_query_vector(vector: list[float]) -> None:
    """Reject empty or non-finite query vectors.

    Raises:
        ValidationError: If the vector cannot be searched with.
    """
    if not vector:
        raise ValidationError("Query vector is empty", step=PipelineStep.SEARCH)
    if not all(math.isfinite(v) for v in vector):
        raise ValidationError(
            "Query vector contains non-finite values", step=PipelineStep.SEARCH
        )
    if len(vector) not in COMMON_DIMENSIONS:
        logger.warning(f"Unusual query vector dimension: {len(vector)}")
