"""Vector index protocol for dependency injection."""
from typing import Protocol, runtime_checkable

from ..models.search import VectorEntry, VectorMatch, VectorSearchOptions


@runtime_checkable
class VectorIndexProtocol(Protocol):
    """Protocol for nearest-neighbor storage of chunk embeddings."""

    def nearest_neighbors(
        self, vector: list[float], options: VectorSearchOptions
    ) -> list[VectorMatch]:
        """Find the closest active chunk vectors.

        Args:
            vector: Query vector.
            options: Limit, similarity threshold and filters.

        Returns:
            Matches at or above the threshold, most similar first.
        """
        ...

    def upsert(self, entries: list[VectorEntry]) -> None:
        """Insert or replace chunk vectors.

        Args:
            entries: Vectors to write, normally all from one document.
        """
        ...

    def set_document_active(self, document_id: str, active: bool) -> int:
        """Flag all vectors of a document active or inactive.

        Returns:
            Number of vectors updated.
        """
        ...

    def delete_document(self, document_id: str) -> int:
        """Remove all vectors of a document.

        Returns:
            Number of vectors removed.
        """
        ...
