"""Lifecycle service - document status machine, soft delete and restore."""

import logging

from ..errors import (
    ConsistencyError,
    DocsimError,
    NotFoundError,
    PipelineStep,
    StatusTransitionError,
    ValidationError,
    pipeline_step,
)
from ..models.document import Document, DocumentStatus, can_transition
from ..protocols.repositories import ChunkRepositoryProtocol, DocumentRepositoryProtocol
from ..protocols.storage import BlobStoreProtocol
from ..protocols.text_extractor import TextExtractorProtocol
from ..protocols.vector_store import VectorIndexProtocol
from .hasher import text_fingerprint

logger = logging.getLogger(__name__)


class DocumentLifecycleService:
    """Owns every document status change.

    The persisted status doubles as a single-writer gate: transitions
    are compare-and-set against the status that was read, so two
    concurrent attempts to start processing cannot both succeed.
    """

    def __init__(
        self,
        documents: DocumentRepositoryProtocol,
        chunks: ChunkRepositoryProtocol,
        vector_index: VectorIndexProtocol,
        blob_store: BlobStoreProtocol,
        text_extractor: TextExtractorProtocol,
        deleted_prefix: str = "deleted/",
    ):
        """Initialize lifecycle service.

        Args:
            documents: Document repository.
            chunks: Chunk repository.
            vector_index: Vector index mirroring chunk activity.
            blob_store: File storage.
            text_extractor: Text extraction for process_text().
            deleted_prefix: Key prefix of soft-deleted files.
        """
        self._documents = documents
        self._chunks = chunks
        self._vector_index = vector_index
        self._blob_store = blob_store
        self._text_extractor = text_extractor
        self._deleted_prefix = deleted_prefix

    def deleted_key(self, storage_key: str) -> str:
        return f"{self._deleted_prefix}{storage_key}"

    def get(self, document_id: str) -> Document:
        document = self._documents.find_by_id(document_id)
        if document is None:
            raise NotFoundError(f"Document {document_id} not found")
        return document

    def transition(self, document_id: str, target: DocumentStatus) -> Document:
        """Move a document to a new status if the table allows it.

        Raises:
            NotFoundError: If the document does not exist.
            StatusTransitionError: If the move is not allowed, or the
                status changed between read and write.
        """
        document = self.get(document_id)
        if not can_transition(document.status, target):
            raise StatusTransitionError(
                f"Document {document_id} cannot move from "
                f"{document.status.value} to {target.value}"
            )

        updated = self._documents.update_status(
            document_id, target, expected_status=document.status
        )
        if updated is None:
            raise StatusTransitionError(
                f"Document {document_id} changed status concurrently "
                f"(expected {document.status.value})"
            )

        logger.info(
            f"Document {document_id}: {document.status.value} → {target.value}"
        )
        return updated

    def start_processing(self, document_id: str) -> Document:
        return self.transition(document_id, DocumentStatus.PROCESSING)

    def mark_processed(self, document_id: str) -> Document:
        return self.transition(document_id, DocumentStatus.PROCESSED)

    def mark_failed(self, document_id: str) -> Document:
        return self.transition(document_id, DocumentStatus.ERROR)

    def fail_after_error(self, document_id: str) -> None:
        """Best-effort ERROR transition while another error propagates."""
        try:
            self.mark_failed(document_id)
        except DocsimError as e:
            logger.error(f"Could not mark document {document_id} as failed: {e}")

    def extract_text(self, document: Document) -> str:
        """Download a document's file and extract its text.

        Raises:
            ValidationError: If no text could be extracted.
        """
        with pipeline_step(PipelineStep.EXTRACT):
            data = self._blob_store.download_bytes(document.storage_key)
            text = self._text_extractor.extract_text(data, document.original_name)

        if not text or not text.strip():
            raise ValidationError(
                f"No text could be extracted from {document.original_name}",
                step=PipelineStep.EXTRACT,
            )
        return text

    def process_text(self, document_id: str) -> Document:
        """Extract and store a document's text and text fingerprint.

        Returns:
            The document in PROCESSED status.
        """
        document = self.start_processing(document_id)
        try:
            text = self.extract_text(document)
            with pipeline_step(PipelineStep.PERSIST):
                self._documents.associate_hashes(
                    document_id, text_fingerprint(text), text
                )
            return self.mark_processed(document_id)
        except Exception:
            self.fail_after_error(document_id)
            raise

    def soft_delete(self, document_id: str) -> Document:
        """Delete a document while keeping it restorable.

        The file moves under the deleted prefix, chunks and vectors are
        deactivated and the status becomes DELETED.

        Raises:
            NotFoundError: If the document is missing or already deleted.
            ConsistencyError: If the document's file is missing.
        """
        document = self.get(document_id)
        if document.is_deleted:
            raise NotFoundError(f"Document {document_id} is already deleted")

        if not self._blob_store.exists(document.storage_key):
            raise ConsistencyError(
                f"File {document.storage_key} of document {document_id} not found in storage"
            )

        with pipeline_step(PipelineStep.PERSIST):
            self._blob_store.move_file(
                document.storage_key, self.deleted_key(document.storage_key)
            )
            chunk_count = self._chunks.soft_delete_by_document_id(document_id)
            self._vector_index.set_document_active(document_id, False)

        deleted = self._documents.update_status(
            document_id, DocumentStatus.DELETED, expected_status=document.status
        )
        if deleted is None:
            with pipeline_step(PipelineStep.PERSIST):
                self._blob_store.move_file(
                    self.deleted_key(document.storage_key), document.storage_key
                )
                self._chunks.restore_by_document_id(document_id)
                self._vector_index.set_document_active(document_id, True)
            raise StatusTransitionError(
                f"Document {document_id} changed status during delete"
            )

        logger.info(f"Soft-deleted document {document_id} ({chunk_count} chunks)")
        return deleted

    def restore(self, document: Document) -> Document:
        """Bring a soft-deleted document back to UPLOADED.

        Raises:
            NotFoundError: If the document is not deleted.
            ConsistencyError: If its file is missing from the deleted
                location or its status could not be reset.
        """
        if not document.is_deleted:
            raise NotFoundError(
                f"Document {document.id} is not deleted", step=PipelineStep.RESTORE
            )

        deleted_key = self.deleted_key(document.storage_key)
        with pipeline_step(PipelineStep.RESTORE):
            if not self._blob_store.exists(deleted_key):
                raise ConsistencyError(
                    f"Deleted file {deleted_key} not found for document {document.id}",
                    step=PipelineStep.RESTORE,
                )
            self._blob_store.move_file(deleted_key, document.storage_key)

            restored = self._documents.update_status(
                document.id, DocumentStatus.UPLOADED, expected_status=DocumentStatus.DELETED
            )
            if restored is None:
                self._blob_store.move_file(document.storage_key, deleted_key)
                raise ConsistencyError(
                    f"Document {document.id} could not be restored",
                    step=PipelineStep.RESTORE,
                )

            chunk_count = self._chunks.restore_by_document_id(document.id)
            self._vector_index.set_document_active(document.id, True)

        logger.info(f"Restored document {document.id} ({chunk_count} chunks)")
        return restored

    def restore_by_id(self, document_id: str) -> Document:
        return self.restore(self.get(document_id))
