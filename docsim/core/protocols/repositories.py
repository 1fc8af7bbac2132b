"""Repository protocols for documents and chunks."""
from typing import Optional, Protocol, runtime_checkable

from ..models.document import Document, DocumentChunk, DocumentStatus


@runtime_checkable
class DocumentRepositoryProtocol(Protocol):
    """Protocol for document persistence."""

    def save(self, document: Document) -> Document:
        ...

    def find_by_id(self, document_id: str) -> Optional[Document]:
        ...

    def find_by_binary_hash(self, binary_hash: str) -> Optional[Document]:
        """Find a non-deleted document by binary fingerprint."""
        ...

    def find_deleted_by_binary_hash(self, binary_hash: str) -> Optional[Document]:
        """Find a soft-deleted document by binary fingerprint."""
        ...

    def find_by_text_hash(self, text_hash: str) -> Optional[Document]:
        """Find a non-deleted document by text fingerprint."""
        ...

    def find_deleted_by_text_hash(self, text_hash: str) -> Optional[Document]:
        """Find a soft-deleted document by text fingerprint."""
        ...

    def update_status(
        self,
        document_id: str,
        status: DocumentStatus,
        expected_status: Optional[DocumentStatus] = None,
    ) -> Optional[Document]:
        """Set document status.

        Args:
            document_id: Document ID.
            status: New status.
            expected_status: When given, only update if the current status
                still equals it (compare-and-set).

        Returns:
            Updated document, or None if missing or the expected status
            did not match.
        """
        ...

    def associate_hashes(
        self, document_id: str, text_hash: str, extracted_text: Optional[str] = None
    ) -> Optional[Document]:
        """Attach text fingerprint (and optionally text) to a document."""
        ...


@runtime_checkable
class ChunkRepositoryProtocol(Protocol):
    """Protocol for chunk persistence."""

    def save_many(self, chunks: list[DocumentChunk]) -> list[DocumentChunk]:
        ...

    def find_by_id(self, chunk_id: str) -> Optional[DocumentChunk]:
        ...

    def find_by_document_id(
        self, document_id: str, include_inactive: bool = False
    ) -> list[DocumentChunk]:
        """Chunks of a document ordered by chunk index."""
        ...

    def delete_by_document_id(self, document_id: str) -> int:
        ...

    def soft_delete_by_document_id(self, document_id: str) -> int:
        ...

    def restore_by_document_id(self, document_id: str) -> int:
        ...

    def count_by_document_id(self, document_id: str) -> int:
        """Count active chunks of a document."""
        ...

    def update_embedding(self, chunk_id: str, embedding: list[float]) -> None:
        ...

    def update_batch_embeddings(self, embeddings: dict[str, list[float]]) -> int:
        """Write several chunk embeddings as one unit.

        Args:
            embeddings: Chunk ID to vector.

        Returns:
            Number of chunks updated.
        """
        ...

    def has_embedding(self, chunk_id: str) -> bool:
        ...
