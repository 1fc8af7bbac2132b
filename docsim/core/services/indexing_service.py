"""Indexing service - chunk, embed and persist documents for vector search."""

import logging
import time
from typing import Optional

from ..errors import (
    NotFoundError,
    PipelineStep,
    StatusTransitionError,
    ValidationError,
    pipeline_step,
)
from ..models.chunking import ChunkingConfig, ChunkingStatistics
from ..models.document import ChunkType, Document, DocumentChunk, DocumentStatus
from ..models.embedding import EmbeddingConfig
from ..models.indexing import CostEstimate, EmbeddingGenerationResult, IndexingResult
from ..models.search import VectorEntry
from ..models.similarity import GeneratedSimilarityData
from ..protocols.repositories import ChunkRepositoryProtocol, DocumentRepositoryProtocol
from ..protocols.vector_store import VectorIndexProtocol
from .chunker import SemanticChunker
from .embedding_batcher import EmbeddingBatcher
from .hasher import text_fingerprint
from .lifecycle_service import DocumentLifecycleService

logger = logging.getLogger(__name__)


class IndexingService:
    """Service for turning stored documents into searchable chunk vectors."""

    def __init__(
        self,
        documents: DocumentRepositoryProtocol,
        chunks: ChunkRepositoryProtocol,
        vector_index: VectorIndexProtocol,
        chunker: SemanticChunker,
        batcher: EmbeddingBatcher,
        lifecycle: DocumentLifecycleService,
        cost_per_token: float = 0.00002,
    ):
        """Initialize indexing service.

        Args:
            documents: Document repository.
            chunks: Chunk repository.
            vector_index: Vector index.
            chunker: Chunker.
            batcher: Embedding batcher.
            lifecycle: Lifecycle service guarding status changes.
            cost_per_token: Provider price used for cost estimates.
        """
        self._documents = documents
        self._chunks = chunks
        self._vector_index = vector_index
        self._chunker = chunker
        self._batcher = batcher
        self._lifecycle = lifecycle
        self._cost_per_token = cost_per_token

    def index_document(
        self,
        document_id: str,
        reuse: Optional[GeneratedSimilarityData] = None,
        chunking_config: Optional[ChunkingConfig] = None,
        replace_existing: bool = False,
    ) -> IndexingResult:
        """Chunk, embed and store a document.

        The document passes through PROCESSING; a second concurrent call
        for the same document is rejected by the status gate.

        Args:
            document_id: Document to index.
            reuse: Text, chunks and embeddings computed by a preceding
                similarity check. Embeddings are only reused when they
                line up one-to-one with the chunks.
            chunking_config: Override for the chunker's default config.
            replace_existing: Drop existing chunks and vectors first.

        Returns:
            Indexing result; chunks whose embedding failed are stored
            without a vector and counted in ``failed_count``.
        """
        document = self._lifecycle.start_processing(document_id)
        try:
            result = self._index(document, reuse, chunking_config, replace_existing)
        except Exception:
            self._lifecycle.fail_after_error(document_id)
            raise

        try:
            self._lifecycle.mark_processed(document_id)
        except StatusTransitionError:
            self._deactivate_if_deleted(document_id)
            raise

        logger.info(
            f"Indexed document {document_id}: {result.embedded_count}/{result.chunk_count} "
            f"chunks embedded"
            + (" (reused check data)" if result.reused_generated_data else "")
        )
        return result

    def reindex_document(
        self, document_id: str, chunking_config: Optional[ChunkingConfig] = None
    ) -> IndexingResult:
        return self.index_document(
            document_id, chunking_config=chunking_config, replace_existing=True
        )

    def generate_embeddings(
        self,
        document_id: str,
        replace_existing: bool = False,
        chunk_types: Optional[set[ChunkType]] = None,
        chunk_indices: Optional[set[int]] = None,
        min_content_length: Optional[int] = None,
        config: Optional[EmbeddingConfig] = None,
    ) -> EmbeddingGenerationResult:
        """Embed stored chunks of a document that lack a vector.

        Args:
            document_id: Document whose chunks are embedded.
            replace_existing: Re-embed chunks that already have a vector.
            chunk_types: Only embed chunks of these types.
            chunk_indices: Only embed chunks at these indices.
            min_content_length: Only embed chunks at least this long.
            config: Override for the batcher's model selection.

        Returns:
            Counts, timing and estimated cost of the run.
        """
        started = time.monotonic()
        document = self._lifecycle.get(document_id)
        if document.is_deleted:
            raise NotFoundError(f"Document {document_id} is deleted")

        stored = self._chunks.find_by_document_id(document_id)
        if not stored:
            raise NotFoundError(f"No chunks found for document {document_id}")

        selected = [
            c
            for c in stored
            if (chunk_types is None or c.type in chunk_types)
            and (chunk_indices is None or c.chunk_index in chunk_indices)
            and (min_content_length is None or c.content_length >= min_content_length)
        ]
        if replace_existing:
            pending = selected
        else:
            pending = [c for c in selected if not self._chunks.has_embedding(c.id)]
        skipped = len(selected) - len(pending)

        if not pending:
            logger.info(f"No chunks to embed for document {document_id} ({skipped} skipped)")
            return EmbeddingGenerationResult(
                document_id=document_id,
                total_chunks_processed=0,
                chunks_skipped=skipped,
                chunks_with_errors=0,
                processing_time_ms=int((time.monotonic() - started) * 1000),
                estimated_cost=CostEstimate(0, self._cost_per_token),
            )

        batch = self._batcher.embed_batch([c.content for c in pending], config=config)
        with pipeline_step(PipelineStep.PERSIST):
            self._store_embeddings(document_id, pending, batch.embeddings)

        result = EmbeddingGenerationResult(
            document_id=document_id,
            total_chunks_processed=batch.successful_count,
            chunks_skipped=skipped,
            chunks_with_errors=batch.failed_count,
            processing_time_ms=int((time.monotonic() - started) * 1000),
            estimated_cost=CostEstimate(batch.total_tokens_used, self._cost_per_token),
            batch_result=batch,
            errors=[e.message for e in batch.errors],
        )
        logger.info(
            f"Generated {result.total_chunks_processed} embeddings for {document_id} "
            f"(skipped={skipped}, failed={result.chunks_with_errors}, "
            f"cost≈{result.estimated_cost.total_cost:.6f})"
        )
        return result

    def _index(
        self,
        document: Document,
        reuse: Optional[GeneratedSimilarityData],
        chunking_config: Optional[ChunkingConfig],
        replace_existing: bool,
    ) -> IndexingResult:
        existing = self._chunks.find_by_document_id(document.id, include_inactive=True)
        if existing:
            if not replace_existing:
                raise ValidationError(
                    f"Document {document.id} already has {len(existing)} chunks",
                    step=PipelineStep.CHUNK,
                )
            with pipeline_step(PipelineStep.PERSIST):
                self._chunks.delete_by_document_id(document.id)
                self._vector_index.delete_document(document.id)

        if reuse is not None:
            text = reuse.extracted_text
        else:
            text = document.extracted_text or self._lifecycle.extract_text(document)

        with pipeline_step(PipelineStep.PERSIST):
            self._documents.associate_hashes(document.id, text_fingerprint(text), text)

        statistics: Optional[ChunkingStatistics] = None
        if reuse is not None and reuse.chunks:
            new_chunks = [
                DocumentChunk(
                    document_id=document.id,
                    content=c.content,
                    chunk_index=i,
                    type=c.type,
                )
                for i, c in enumerate(reuse.chunks)
            ]
        else:
            with pipeline_step(PipelineStep.CHUNK):
                chunking = self._chunker.chunk(
                    text, document_id=document.id, config=chunking_config
                )
            new_chunks = chunking.chunks
            statistics = chunking.statistics

        if not new_chunks:
            raise ValidationError(
                f"Could not generate chunks for document {document.id}",
                step=PipelineStep.CHUNK,
            )

        reused = (
            reuse is not None
            and bool(reuse.chunks)
            and len(reuse.embeddings) == len(new_chunks)
        )
        errors: list[str] = []
        if reused:
            vectors: list[Optional[list[float]]] = list(reuse.embeddings)
        else:
            if reuse is not None:
                logger.warning(
                    f"Discarding {len(reuse.embeddings)} pre-generated embeddings "
                    f"for {len(new_chunks)} chunks of {document.id}"
                )
            batch = self._batcher.embed_batch([c.content for c in new_chunks])
            vectors = batch.embeddings
            errors = [e.message for e in batch.errors]

        # Embedding is slow; the document may have been deleted meanwhile.
        current = self._documents.find_by_id(document.id)
        if current is None or current.status is not DocumentStatus.PROCESSING:
            raise StatusTransitionError(
                f"Document {document.id} left processing during indexing "
                f"({current.status.value if current else 'missing'})",
                step=PipelineStep.PERSIST,
            )

        with pipeline_step(PipelineStep.PERSIST):
            self._chunks.save_many(new_chunks)
            embedded = self._store_embeddings(document.id, new_chunks, vectors)

        return IndexingResult(
            document_id=document.id,
            chunk_count=len(new_chunks),
            embedded_count=embedded,
            failed_count=len(new_chunks) - embedded,
            reused_generated_data=reused,
            statistics=statistics,
            errors=errors,
        )

    def _deactivate_if_deleted(self, document_id: str) -> None:
        """Hide chunks written for a document deleted after the status check."""
        document = self._documents.find_by_id(document_id)
        if document is None or not document.is_deleted:
            return

        chunk_count = self._chunks.soft_delete_by_document_id(document_id)
        self._vector_index.set_document_active(document_id, False)
        logger.warning(
            f"Document {document_id} was deleted while indexing; "
            f"deactivated {chunk_count} chunks"
        )

    def _store_embeddings(
        self,
        document_id: str,
        chunks: list[DocumentChunk],
        vectors: list[Optional[list[float]]],
    ) -> int:
        """Write one document's vectors to the repository and the index at once."""
        pairs = [(c, v) for c, v in zip(chunks, vectors) if v is not None]
        if not pairs:
            return 0

        self._chunks.update_batch_embeddings({c.id: v for c, v in pairs})
        self._vector_index.upsert(
            [
                VectorEntry(
                    chunk_id=c.id,
                    document_id=document_id,
                    chunk_index=c.chunk_index,
                    chunk_type=c.type,
                    content=c.content,
                    vector=v,
                )
                for c, v in pairs
            ]
        )
        return len(pairs)
