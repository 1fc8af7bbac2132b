import hashlib
import re
from typing import Callable
from unittest.mock import Mock

import pytest

from docsim.core.errors import PipelineStep, ProviderError
from docsim.core.models.chunking import ChunkingConfig
from docsim.core.models.document import Document
from docsim.core.models.embedding import EmbeddingConfig, EmbeddingItem, EmbeddingResponse
from docsim.core.services.chunker import SemanticChunker
from docsim.core.services.embedding_batcher import EmbeddingBatcher
from docsim.core.services.hasher import binary_fingerprint
from docsim.core.services.indexing_service import IndexingService
from docsim.core.services.lifecycle_service import DocumentLifecycleService
from docsim.core.services.search_service import SearchService
from docsim.core.services.similarity_service import SimilarityService
from docsim.infrastructure.document_loaders import CompositeTextExtractor
from docsim.infrastructure.repositories.memory import (
    InMemoryChunkRepository,
    InMemoryDocumentRepository,
)
from docsim.infrastructure.storage.local_storage import LocalBlobStore
from docsim.infrastructure.vector_stores.memory_store import InMemoryVectorIndex

TEST_CHUNKING = ChunkingConfig(max_chunk_size=200, overlap=0, min_chunk_size=10)

BIOLOGY = (
    "Photosynthesis converts sunlight into chemical energy inside chloroplasts of green plants.\n\n"
    "Mitochondria generate adenosine triphosphate through cellular respiration pathways.\n\n"
    "Ribosomes translate messenger molecules into polypeptide chains during protein synthesis."
)

GEOLOGY = "Volcanic eruptions expel molten basalt across oceanic ridges."


class BagOfWordsProvider:
    """Deterministic embedding provider: hashed word counts.

    Texts sharing no words are (almost) orthogonal, identical texts have
    similarity 1.0.
    """

    DIMENSIONS = 256

    def __init__(self):
        self.calls: list[list[str]] = []
        self.fail_on: set[str] = set()
        self.reverse_order = False

    @classmethod
    def vectorize(cls, text: str) -> list[float]:
        vector = [0.0] * cls.DIMENSIONS
        for word in re.findall(r"\w+", text.lower()):
            bucket = int(hashlib.md5(word.encode()).hexdigest(), 16) % cls.DIMENSIONS
            vector[bucket] += 1.0
        return vector

    def embed(self, texts: list[str], config: EmbeddingConfig) -> EmbeddingResponse:
        self.calls.append(list(texts))
        if any(marker in text for marker in self.fail_on for text in texts):
            raise ProviderError("provider unavailable", step=PipelineStep.EMBED, status_code=503)

        items = [EmbeddingItem(index=i, vector=self.vectorize(t)) for i, t in enumerate(texts)]
        if self.reverse_order:
            items.reverse()
        return EmbeddingResponse(
            items=items,
            tokens_used=sum(len(t.split()) for t in texts),
            model=config.model,
        )

    @property
    def embedded_texts(self) -> int:
        return sum(len(call) for call in self.calls)


@pytest.fixture
def provider():
    return BagOfWordsProvider()


@pytest.fixture
def documents():
    return InMemoryDocumentRepository()


@pytest.fixture
def chunks():
    return InMemoryChunkRepository()


@pytest.fixture
def vector_index():
    return InMemoryVectorIndex()


@pytest.fixture
def blob_store(tmp_path):
    return LocalBlobStore(tmp_path / "blobs")


@pytest.fixture
def extractor():
    return Mock(wraps=CompositeTextExtractor())


@pytest.fixture
def chunker():
    return SemanticChunker(TEST_CHUNKING)


@pytest.fixture
def batcher(provider):
    return EmbeddingBatcher(
        provider,
        batch_delay=0,
        timeout=5,
        max_retries=0,
        retry_base_delay=0,
    )


@pytest.fixture
def lifecycle(documents, chunks, vector_index, blob_store, extractor):
    return DocumentLifecycleService(
        documents=documents,
        chunks=chunks,
        vector_index=vector_index,
        blob_store=blob_store,
        text_extractor=extractor,
    )


@pytest.fixture
def similarity(documents, chunks, vector_index, extractor, chunker, batcher, lifecycle):
    return SimilarityService(
        documents=documents,
        chunks=chunks,
        vector_index=vector_index,
        text_extractor=extractor,
        chunker=chunker,
        batcher=batcher,
        lifecycle=lifecycle,
        chunking_config=TEST_CHUNKING,
    )


@pytest.fixture
def indexing(documents, chunks, vector_index, chunker, batcher, lifecycle):
    return IndexingService(
        documents=documents,
        chunks=chunks,
        vector_index=vector_index,
        chunker=chunker,
        batcher=batcher,
        lifecycle=lifecycle,
    )


@pytest.fixture
def search(batcher, vector_index, chunks):
    return SearchService(batcher=batcher, vector_index=vector_index, chunks=chunks)


@pytest.fixture
def upload(documents, blob_store) -> Callable[..., Document]:
    """Store a text file and register it as an UPLOADED document."""

    def _upload(name: str, text: str) -> Document:
        data = text.encode("utf-8")
        blob_store.upload_bytes(name, data)
        return documents.save(
            Document(
                storage_key=name,
                original_name=name,
                binary_hash=binary_fingerprint(data),
            )
        )

    return _upload


@pytest.fixture
def indexed(upload, indexing):
    """Upload and index a text file."""

    def _indexed(name: str, text: str) -> Document:
        document = upload(name, text)
        indexing.index_document(document.id)
        return document

    return _indexed
