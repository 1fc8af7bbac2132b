"""Document domain models."""
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


class DocumentStatus(str, Enum):
    """Document lifecycle status."""
    UPLOADED = "uploaded"
    PROCESSING = "processing"
    PROCESSED = "processed"
    ERROR = "error"
    DELETED = "deleted"


# DELETED leaves only through the restore path.
ALLOWED_TRANSITIONS: dict[DocumentStatus, frozenset[DocumentStatus]] = {
    DocumentStatus.UPLOADED: frozenset(
        {DocumentStatus.PROCESSING, DocumentStatus.ERROR, DocumentStatus.DELETED}
    ),
    DocumentStatus.PROCESSING: frozenset(
        {DocumentStatus.PROCESSED, DocumentStatus.ERROR, DocumentStatus.DELETED}
    ),
    DocumentStatus.PROCESSED: frozenset(
        {DocumentStatus.PROCESSING, DocumentStatus.DELETED}
    ),
    DocumentStatus.ERROR: frozenset(
        {DocumentStatus.PROCESSING, DocumentStatus.DELETED}
    ),
    DocumentStatus.DELETED: frozenset(),
}


def can_transition(current: DocumentStatus, target: DocumentStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


class ChunkType(str, Enum):
    """How a chunk was produced by the chunker."""
    PARAGRAPH = "paragraph"
    SENTENCE_GROUP = "sentence_group"
    WORD_GROUP = "word_group"


@dataclass(frozen=True)
class Document:
    """Uploaded document tracked by its content fingerprints."""
    storage_key: str
    original_name: str
    binary_hash: str
    id: str = field(default_factory=new_id)
    status: DocumentStatus = DocumentStatus.UPLOADED
    text_hash: Optional[str] = None
    extracted_text: Optional[str] = None
    course_id: Optional[str] = None
    class_id: Optional[str] = None
    uploaded_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    @property
    def is_deleted(self) -> bool:
        return self.status is DocumentStatus.DELETED

    @property
    def is_ready_for_processing(self) -> bool:
        return can_transition(self.status, DocumentStatus.PROCESSING)

    def with_status(self, status: DocumentStatus) -> "Document":
        return replace(self, status=status, updated_at=_utcnow())

    def with_text(
        self, text_hash: str, extracted_text: Optional[str] = None
    ) -> "Document":
        return replace(
            self,
            text_hash=text_hash,
            extracted_text=(
                extracted_text if extracted_text is not None else self.extracted_text
            ),
            updated_at=_utcnow(),
        )


@dataclass
class DocumentChunk:
    """Contiguous text segment of a document, the unit of embedding."""
    document_id: str
    content: str
    chunk_index: int
    type: ChunkType
    id: str = field(default_factory=new_id)
    embedding: Optional[list[float]] = None
    is_active: bool = True
    created_at: datetime = field(default_factory=_utcnow)

    @property
    def content_length(self) -> int:
        return len(self.content)

    @property
    def word_count(self) -> int:
        return len(self.content.split())

    @property
    def has_embedding(self) -> bool:
        return bool(self.embedding)
