import logging
import threading
from dataclasses import replace
from typing import Callable, Optional

from docsim.core.errors import ConsistencyError, NotFoundError
from docsim.core.models.document import Document, DocumentChunk, DocumentStatus

logger = logging.getLogger(__name__)


class InMemoryDocumentRepository:
    """Thread-safe document repository kept in process memory."""

    def __init__(self):
        self._documents: dict[str, Document] = {}
        self._lock = threading.Lock()

    def save(self, document: Document) -> Document:
        with self._lock:
            for other in self._documents.values():
                if other.id != document.id and other.binary_hash == document.binary_hash:
                    raise ConsistencyError(
                        f"Document {other.id} already has binary hash {document.binary_hash[:12]}"
                    )
            self._documents[document.id] = document
        return document

    def find_by_id(self, document_id: str) -> Optional[Document]:
        return self._documents.get(document_id)

    def find_by_binary_hash(self, binary_hash: str) -> Optional[Document]:
        return self._first(lambda d: not d.is_deleted and d.binary_hash == binary_hash)

    def find_deleted_by_binary_hash(self, binary_hash: str) -> Optional[Document]:
        return self._first(lambda d: d.is_deleted and d.binary_hash == binary_hash)

    def find_by_text_hash(self, text_hash: str) -> Optional[Document]:
        return self._first(lambda d: not d.is_deleted and d.text_hash == text_hash)

    def find_deleted_by_text_hash(self, text_hash: str) -> Optional[Document]:
        return self._first(lambda d: d.is_deleted and d.text_hash == text_hash)

    def update_status(
        self,
        document_id: str,
        status: DocumentStatus,
        expected_status: Optional[DocumentStatus] = None,
    ) -> Optional[Document]:
        with self._lock:
            document = self._documents.get(document_id)
            if document is None:
                return None
            if expected_status is not None and document.status is not expected_status:
                return None
            updated = document.with_status(status)
            self._documents[document_id] = updated
            return updated

    def associate_hashes(
        self, document_id: str, text_hash: str, extracted_text: Optional[str] = None
    ) -> Optional[Document]:
        with self._lock:
            document = self._documents.get(document_id)
            if document is None:
                return None
            updated = document.with_text(text_hash, extracted_text)
            self._documents[document_id] = updated
            return updated

    def list_all(self) -> list[Document]:
        return list(self._documents.values())

    def _first(self, predicate: Callable[[Document], bool]) -> Optional[Document]:
        with self._lock:
            matches = [d for d in self._documents.values() if predicate(d)]
        if not matches:
            return None
        return min(matches, key=lambda d: d.uploaded_at)


class InMemoryChunkRepository:
    """Thread-safe chunk repository kept in process memory.

    Chunks are copied on the way in and out so callers never share
    mutable state with the store.
    """

    def __init__(self):
        self._chunks: dict[str, DocumentChunk] = {}
        self._lock = threading.Lock()

    def save_many(self, chunks: list[DocumentChunk]) -> list[DocumentChunk]:
        with self._lock:
            for chunk in chunks:
                self._chunks[chunk.id] = replace(chunk)
        logger.debug(f"Saved {len(chunks)} chunks")
        return chunks

    def find_by_id(self, chunk_id: str) -> Optional[DocumentChunk]:
        chunk = self._chunks.get(chunk_id)
        return replace(chunk) if chunk else None

    def find_by_document_id(
        self, document_id: str, include_inactive: bool = False
    ) -> list[DocumentChunk]:
        with self._lock:
            chunks = [
                replace(c)
                for c in self._chunks.values()
                if c.document_id == document_id and (include_inactive or c.is_active)
            ]
        return sorted(chunks, key=lambda c: c.chunk_index)

    def delete_by_document_id(self, document_id: str) -> int:
        with self._lock:
            ids = [cid for cid, c in self._chunks.items() if c.document_id == document_id]
            for chunk_id in ids:
                del self._chunks[chunk_id]
        return len(ids)

    def soft_delete_by_document_id(self, document_id: str) -> int:
        return self._set_active(document_id, False)

    def restore_by_document_id(self, document_id: str) -> int:
        return self._set_active(document_id, True)

    def count_by_document_id(self, document_id: str) -> int:
        with self._lock:
            return sum(
                1 for c in self._chunks.values() if c.document_id == document_id and c.is_active
            )

    def update_embedding(self, chunk_id: str, embedding: list[float]) -> None:
        self.update_batch_embeddings({chunk_id: embedding})

    def update_batch_embeddings(self, embeddings: dict[str, list[float]]) -> int:
        with self._lock:
            missing = [cid for cid in embeddings if cid not in self._chunks]
            if missing:
                raise NotFoundError(f"Chunks not found: {', '.join(missing[:5])}")
            for chunk_id, embedding in embeddings.items():
                self._chunks[chunk_id].embedding = list(embedding)
        return len(embeddings)

    def has_embedding(self, chunk_id: str) -> bool:
        chunk = self._chunks.get(chunk_id)
        return chunk is not None and chunk.has_embedding

    def _set_active(self, document_id: str, active: bool) -> int:
        updated = 0
        with self._lock:
            for chunk in self._chunks.values():
                if chunk.document_id == document_id and chunk.is_active != active:
                    chunk.is_active = active
                    updated += 1
        return updated
