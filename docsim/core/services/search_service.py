"""Search service - text, chunk and document level vector search."""

import logging
from dataclasses import replace
from typing import Optional

import numpy as np

from ..errors import NotFoundError, PipelineStep, ValidationError, pipeline_step
from ..models.search import SimilarDocument, VectorMatch, VectorSearchOptions
from ..protocols.repositories import ChunkRepositoryProtocol
from ..protocols.vector_store import VectorIndexProtocol
from .embedding_batcher import EmbeddingBatcher

logger = logging.getLogger(__name__)


class SearchService:
    """Nearest-neighbor lookups on top of the vector index."""

    def __init__(
        self,
        batcher: EmbeddingBatcher,
        vector_index: VectorIndexProtocol,
        chunks: ChunkRepositoryProtocol,
        min_query_length: int = 3,
        max_query_length: int = 8000,
        relevant_chunks_per_document: int = 3,
    ):
        """Initialize search service.

        Args:
            batcher: Embedding batcher used for query text.
            vector_index: Vector index.
            chunks: Chunk repository.
            min_query_length: Shortest accepted query.
            max_query_length: Longest accepted query.
            relevant_chunks_per_document: Chunks kept per similar document.
        """
        self._batcher = batcher
        self._vector_index = vector_index
        self._chunks = chunks
        self._min_query_length = min_query_length
        self._max_query_length = max_query_length
        self._relevant_chunks = relevant_chunks_per_document

    def search_by_text(
        self, query: str, options: Optional[VectorSearchOptions] = None
    ) -> list[VectorMatch]:
        """Search chunks similar to a free-text query.

        Args:
            query: Search text.
            options: Limit, threshold and filters.

        Returns:
            Matching chunks, most similar first.
        """
        query = query.strip()
        if not self._min_query_length <= len(query) <= self._max_query_length:
            raise ValidationError(
                f"Query must be between {self._min_query_length} and "
                f"{self._max_query_length} characters",
                step=PipelineStep.SEARCH,
            )

        vector = self._batcher.embed_text(query)
        with pipeline_step(PipelineStep.SEARCH):
            matches = self._vector_index.nearest_neighbors(
                vector, options or VectorSearchOptions()
            )

        logger.info(f"Search: {len(matches)} chunks for '{query[:50]}'")
        return matches

    def find_similar_chunks(
        self, chunk_id: str, options: Optional[VectorSearchOptions] = None
    ) -> list[VectorMatch]:
        """Find chunks similar to a stored chunk, excluding the chunk itself."""
        chunk = self._chunks.find_by_id(chunk_id)
        if chunk is None:
            raise NotFoundError(f"Chunk {chunk_id} not found")
        if not chunk.has_embedding:
            raise NotFoundError(f"Chunk {chunk_id} has no embedding")

        options = options or VectorSearchOptions()
        options = replace(options, exclude_chunk_ids=options.exclude_chunk_ids | {chunk_id})
        with pipeline_step(PipelineStep.SEARCH):
            return self._vector_index.nearest_neighbors(chunk.embedding, options)

    def find_similar_documents(
        self,
        document_id: str,
        limit: int = 10,
        options: Optional[VectorSearchOptions] = None,
    ) -> list[SimilarDocument]:
        """Find documents similar to a stored document.

        The document is represented by the mean of its chunk vectors;
        chunk hits are grouped per owning document.

        Args:
            document_id: Reference document.
            limit: Maximum documents returned.
            options: Chunk-level search options; the chunk limit defaults
                to a multiple of ``limit``.

        Returns:
            Similar documents ordered by average chunk similarity.
        """
        vectors = [
            c.embedding
            for c in self._chunks.find_by_document_id(document_id)
            if c.has_embedding
        ]
        if not vectors:
            raise NotFoundError(f"Document {document_id} has no embedded chunks")

        centroid = np.mean(np.asarray(vectors, dtype=float), axis=0).tolist()

        options = options or VectorSearchOptions(limit=limit * 5)
        options = replace(
            options,
            exclude_document_ids=options.exclude_document_ids | {document_id},
        )
        with pipeline_step(PipelineStep.SEARCH):
            matches = self._vector_index.nearest_neighbors(centroid, options)

        grouped: dict[str, list[VectorMatch]] = {}
        for match in matches:
            grouped.setdefault(match.document_id, []).append(match)

        documents = []
        for doc_id, doc_matches in grouped.items():
            similarities = [m.similarity for m in doc_matches]
            documents.append(
                SimilarDocument(
                    document_id=doc_id,
                    average_similarity=sum(similarities) / len(similarities),
                    max_similarity=max(similarities),
                    total_chunks=len(doc_matches),
                    relevant_chunks=sorted(
                        doc_matches, key=lambda m: m.similarity, reverse=True
                    )[: self._relevant_chunks],
                )
            )

        documents.sort(key=lambda d: d.average_similarity, reverse=True)
        logger.info(
            f"Similar documents for {document_id}: {min(len(documents), limit)} found"
        )
        return documents[:limit]
