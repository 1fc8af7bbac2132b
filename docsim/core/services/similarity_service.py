"""Similarity service - classify a submitted file against stored documents."""

import logging
from typing import Callable, Optional

from ..errors import PipelineStep, ProviderError, ValidationError, pipeline_step
from ..models.chunking import ChunkingConfig
from ..models.document import Document
from ..models.search import VectorSearchOptions
from ..models.similarity import (
    CheckState,
    DocumentMatch,
    GeneratedSimilarityData,
    MatchType,
    SimilarityCandidate,
    SimilarityOptions,
    SimilarityResult,
    SimilarityStatus,
)
from ..protocols.repositories import ChunkRepositoryProtocol, DocumentRepositoryProtocol
from ..protocols.text_extractor import TextExtractorProtocol
from ..protocols.vector_store import VectorIndexProtocol
from ..strategies.scoring import (
    CoverageWeightedScoring,
    DocumentHits,
    ScoringStrategy,
    ThresholdCutoffFilter,
)
from .chunker import SemanticChunker
from .embedding_batcher import EmbeddingBatcher
from .hasher import binary_fingerprint, text_fingerprint
from .lifecycle_service import DocumentLifecycleService

logger = logging.getLogger(__name__)

_MATCH_STATUS: dict[MatchType, SimilarityStatus] = {
    MatchType.BINARY_HASH: SimilarityStatus.EXACT_MATCH,
    MatchType.TEXT_HASH: SimilarityStatus.TEXT_MATCH,
}

DEFAULT_CHECK_CHUNKING = ChunkingConfig(max_chunk_size=1000, overlap=200)


class SimilarityService:
    """Exact, text and vector similarity checks for a submitted file.

    Checks run cheapest first and stop at the first decisive answer:
    binary fingerprint, then text fingerprint, then per-chunk vector
    search aggregated per candidate document.
    """

    def __init__(
        self,
        documents: DocumentRepositoryProtocol,
        chunks: ChunkRepositoryProtocol,
        vector_index: VectorIndexProtocol,
        text_extractor: TextExtractorProtocol,
        chunker: SemanticChunker,
        batcher: EmbeddingBatcher,
        lifecycle: DocumentLifecycleService,
        chunking_config: Optional[ChunkingConfig] = None,
        threshold_floor: float = 0.3,
        threshold_margin: float = 0.2,
        neighbors_per_chunk: int = 5,
        scoring: Optional[ScoringStrategy] = None,
        default_options: Optional[SimilarityOptions] = None,
    ):
        """Initialize similarity service.

        Args:
            documents: Document repository.
            chunks: Chunk repository.
            vector_index: Vector index.
            text_extractor: Text extraction.
            chunker: Chunker for the submitted text.
            batcher: Embedding batcher.
            lifecycle: Lifecycle service used for auto-restore.
            chunking_config: Chunking used for the submitted text.
            threshold_floor: Lowest per-chunk search threshold.
            threshold_margin: How far below the document threshold the
                per-chunk search threshold sits.
            neighbors_per_chunk: Neighbors fetched per submitted chunk.
            scoring: Candidate scoring strategy.
            default_options: Options used when a check passes none.
        """
        self._documents = documents
        self._chunks = chunks
        self._vector_index = vector_index
        self._text_extractor = text_extractor
        self._chunker = chunker
        self._batcher = batcher
        self._lifecycle = lifecycle
        self._chunking_config = chunking_config or DEFAULT_CHECK_CHUNKING
        self._threshold_floor = threshold_floor
        self._threshold_margin = threshold_margin
        self._neighbors_per_chunk = neighbors_per_chunk
        self._scoring = scoring or CoverageWeightedScoring()
        self._default_options = default_options or SimilarityOptions()

        SemanticChunker.validate_config(self._chunking_config)

    @property
    def default_options(self) -> SimilarityOptions:
        return self._default_options

    def chunk_threshold(self, threshold: float) -> float:
        """Relaxed threshold applied to individual chunk matches."""
        return max(self._threshold_floor, threshold - self._threshold_margin)

    def check(
        self,
        data: bytes,
        file_name: str,
        options: Optional[SimilarityOptions] = None,
    ) -> SimilarityResult:
        """Check a submitted file for duplicates and near-duplicates.

        Args:
            data: Raw file content.
            file_name: Original file name, used for text extraction.
            options: Thresholds and which stages to run.

        Returns:
            Similarity result; ``status`` tells which stage decided.
        """
        options = options or self._default_options
        states: list[CheckState] = [CheckState.CHECKING_BINARY]

        with pipeline_step(PipelineStep.HASH):
            binary_hash = binary_fingerprint(data)

        result = self._match_fingerprint(binary_hash, MatchType.BINARY_HASH, options)
        if result is not None:
            return self._finish(result, binary_hash, None, states, file_name)

        if options.skip_text_extraction:
            return self._finish(
                SimilarityResult(status=SimilarityStatus.NO_MATCH),
                binary_hash, None, states, file_name,
            )

        states.append(CheckState.CHECKING_TEXT)
        text = self._extract(data, file_name)
        text_hash = text_fingerprint(text)

        result = self._match_fingerprint(text_hash, MatchType.TEXT_HASH, options)
        if result is not None:
            return self._finish(result, binary_hash, text_hash, states, file_name)

        if options.skip_embeddings:
            return self._finish(
                SimilarityResult(status=SimilarityStatus.NO_MATCH),
                binary_hash, text_hash, states, file_name,
            )

        states.append(CheckState.CHECKING_VECTORS)
        candidates, generated = self._vector_candidates(text, options)
        result = SimilarityResult(
            status=(
                SimilarityStatus.CANDIDATES if candidates else SimilarityStatus.NO_MATCH
            ),
            candidates=candidates,
            generated=generated if options.return_generated_data else None,
        )
        return self._finish(result, binary_hash, text_hash, states, file_name)

    def _finish(
        self,
        result: SimilarityResult,
        binary_hash: str,
        text_hash: Optional[str],
        states: list[CheckState],
        file_name: str,
    ) -> SimilarityResult:
        result.binary_hash = binary_hash
        result.text_hash = text_hash
        result.states_visited = list(states)
        logger.info(
            f"Similarity check for '{file_name}': {result.status.value} "
            f"({len(result.candidates)} candidates)"
        )
        return result

    def _lookups(
        self, match_type: MatchType
    ) -> tuple[
        Callable[[str], Optional[Document]], Callable[[str], Optional[Document]]
    ]:
        if match_type is MatchType.BINARY_HASH:
            return (
                self._documents.find_by_binary_hash,
                self._documents.find_deleted_by_binary_hash,
            )
        return (
            self._documents.find_by_text_hash,
            self._documents.find_deleted_by_text_hash,
        )

    def _match_fingerprint(
        self, fingerprint: str, match_type: MatchType, options: SimilarityOptions
    ) -> Optional[SimilarityResult]:
        """Look up active, then deleted documents with a fingerprint."""
        find_active, find_deleted = self._lookups(match_type)
        status = _MATCH_STATUS[match_type]

        with pipeline_step(PipelineStep.HASH):
            active = find_active(fingerprint)
        if active is not None:
            return SimilarityResult(
                status=status,
                match=DocumentMatch(document=active, match_type=match_type),
            )

        if not options.check_deleted:
            return None

        with pipeline_step(PipelineStep.HASH):
            deleted = find_deleted(fingerprint)
        if deleted is None:
            return None

        match = DocumentMatch(document=deleted, match_type=match_type, deleted=True)
        if not options.auto_restore:
            return SimilarityResult(status=status, match=match)

        restored = self._lifecycle.restore(deleted)
        return SimilarityResult(
            status=SimilarityStatus.RESTORED,
            match=match,
            restored_document=restored,
        )

    def _extract(self, data: bytes, file_name: str) -> str:
        with pipeline_step(PipelineStep.EXTRACT):
            text = self._text_extractor.extract_text(data, file_name)
        if not text or not text.strip():
            raise ValidationError(
                f"No text could be extracted from {file_name}",
                step=PipelineStep.EXTRACT,
            )
        return text

    def _vector_candidates(
        self, text: str, options: SimilarityOptions
    ) -> tuple[list[SimilarityCandidate], GeneratedSimilarityData]:
        with pipeline_step(PipelineStep.CHUNK):
            chunking = self._chunker.chunk(text, config=self._chunking_config)

        generated = GeneratedSimilarityData(
            extracted_text=text,
            chunks=chunking.chunks,
            embeddings=[],
            chunking_config=chunking.config,
        )
        if not chunking.chunks:
            logger.info("No chunks produced for similarity check")
            return [], generated

        with pipeline_step(PipelineStep.EMBED):
            batch = self._batcher.embed_batch(chunking.contents)
        if not batch.is_complete:
            raise ProviderError(
                f"Failed to embed {batch.failed_count}/{batch.total_embeddings} chunks: "
                + "; ".join(e.message for e in batch.errors),
                step=PipelineStep.EMBED,
            )
        generated.embeddings = [vector for vector in batch.embeddings if vector is not None]

        search_options = VectorSearchOptions(
            limit=self._neighbors_per_chunk,
            similarity_threshold=self.chunk_threshold(options.similarity_threshold),
        )

        hits: dict[str, DocumentHits] = {}
        with pipeline_step(PipelineStep.SEARCH):
            for vector in generated.embeddings:
                for match in self._vector_index.nearest_neighbors(vector, search_options):
                    if match.document_id not in hits:
                        hits[match.document_id] = DocumentHits(document_id=match.document_id)
                    hits[match.document_id].add(match.similarity)

            candidates = []
            for document_id, document_hits in hits.items():
                document = self._documents.find_by_id(document_id)
                if document is None or document.is_deleted:
                    logger.debug(f"Skipping unavailable candidate {document_id}")
                    continue
                document_hits.total_chunks = self._chunks.count_by_document_id(document_id)
                candidate = self._scoring.score(document_hits)
                candidate.original_name = document.original_name
                candidates.append(candidate)

        cutoff = ThresholdCutoffFilter(
            threshold=options.similarity_threshold,
            max_candidates=options.max_candidates,
        )
        return cutoff.apply(candidates), generated
