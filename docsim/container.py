import logging
from dataclasses import dataclass, field
from typing import Any, Callable, TypeVar

from .config.settings import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class Container:
    _factories: dict[type, Callable[[], Any]] = field(default_factory=dict)
    _singletons: dict[type, Any] = field(default_factory=dict)
    _singleton_flags: set[type] = field(default_factory=set)

    def register(
        self, interface: type[T], factory: Callable[[], T], singleton: bool = False
    ) -> None:
        """Register factory for interface.

        Args:
            interface: Interface type.
            factory: Factory function.
            singleton: Whether to cache instance.
        """
        self._factories[interface] = factory
        if singleton:
            self._singleton_flags.add(interface)

    def resolve(self, interface: type[T]) -> T:
        if interface in self._singletons:
            return self._singletons[interface]

        if interface not in self._factories:
            raise KeyError(f"No factory registered for {interface}")

        instance = self._factories[interface]()

        if interface in self._singleton_flags:
            self._singletons[interface] = instance

        return instance

    def reset(self) -> None:
        """Reset singletons (for testing)."""
        self._singletons.clear()


container = Container()


def configure_container(settings: Settings, target: Container | None = None) -> Container:
    """Configure container with all dependencies.

    Args:
        settings: Application settings.
        target: Container to configure; defaults to the module container.

    Returns:
        Configured container.
    """
    from .config.logging_config import configure_logging
    from .core.models.chunking import ChunkingConfig
    from .core.models.embedding import EmbeddingConfig
    from .core.models.similarity import SimilarityOptions
    from .core.protocols.embedder import EmbeddingProviderProtocol
    from .core.protocols.repositories import (
        ChunkRepositoryProtocol,
        DocumentRepositoryProtocol,
    )
    from .core.protocols.storage import BlobStoreProtocol
    from .core.protocols.text_extractor import TextExtractorProtocol
    from .core.protocols.vector_store import VectorIndexProtocol
    from .core.services.chunker import SemanticChunker
    from .core.services.embedding_batcher import EmbeddingBatcher
    from .core.services.indexing_service import IndexingService
    from .core.services.lifecycle_service import DocumentLifecycleService
    from .core.services.search_service import SearchService
    from .core.services.similarity_service import SimilarityService
    from .infrastructure.document_loaders import CompositeTextExtractor
    from .infrastructure.repositories.memory import (
        InMemoryChunkRepository,
        InMemoryDocumentRepository,
    )
    from .infrastructure.storage.local_storage import LocalBlobStore

    configure_logging(settings.log_level)
    c = target or container

    def make_provider() -> EmbeddingProviderProtocol:
        if settings.embedding_provider == "sentence_transformer":
            from .infrastructure.embeddings.sentence_transformer import (
                SentenceTransformerEmbedder,
            )

            return SentenceTransformerEmbedder(settings.local_embedding_model)
        if settings.embedding_provider == "openai":
            from .infrastructure.embeddings.openai_embedder import (
                OpenAIEmbeddingProvider,
            )

            return OpenAIEmbeddingProvider(
                api_key=settings.openai_api_key,
                base_url=settings.openai_base_url,
                timeout=settings.embedding_timeout,
            )
        raise ValueError(f"Unknown embedding provider: {settings.embedding_provider}")

    def make_vector_index() -> VectorIndexProtocol:
        if settings.vector_backend == "chroma":
            from .infrastructure.vector_stores.chroma_store import ChromaVectorIndex

            return ChromaVectorIndex(
                host=settings.chroma_host,
                port=settings.chroma_port,
                collection_name=settings.chroma_collection,
                timeout=settings.chroma_timeout,
            )
        if settings.vector_backend == "memory":
            from .infrastructure.vector_stores.memory_store import InMemoryVectorIndex

            return InMemoryVectorIndex()
        raise ValueError(f"Unknown vector backend: {settings.vector_backend}")

    def make_embedding_config() -> EmbeddingConfig:
        if settings.embedding_provider == "sentence_transformer":
            return EmbeddingConfig(model=settings.local_embedding_model)
        config = EmbeddingConfig(
            model=settings.embedding_model, dimensions=settings.embedding_dimensions
        )
        config.validate()
        return config

    c.register(DocumentRepositoryProtocol, InMemoryDocumentRepository, singleton=True)
    c.register(ChunkRepositoryProtocol, InMemoryChunkRepository, singleton=True)
    c.register(
        BlobStoreProtocol, lambda: LocalBlobStore(settings.storage_path), singleton=True
    )
    c.register(TextExtractorProtocol, CompositeTextExtractor, singleton=True)
    c.register(EmbeddingProviderProtocol, make_provider, singleton=True)
    c.register(VectorIndexProtocol, make_vector_index, singleton=True)

    c.register(
        SemanticChunker,
        lambda: SemanticChunker(
            ChunkingConfig(
                max_chunk_size=settings.chunk_max_size,
                overlap=settings.chunk_overlap,
                min_chunk_size=settings.chunk_min_size,
                respect_paragraphs=settings.chunk_respect_paragraphs,
                respect_sentences=settings.chunk_respect_sentences,
                overlap_word_divisor=settings.chunk_overlap_word_divisor,
            )
        ),
        singleton=True,
    )

    c.register(
        EmbeddingBatcher,
        lambda: EmbeddingBatcher(
            provider=c.resolve(EmbeddingProviderProtocol),
            config=make_embedding_config(),
            max_batch_size=settings.embedding_max_batch_size,
            max_batch_tokens=settings.embedding_max_batch_tokens,
            max_text_chars=settings.embedding_max_text_chars,
            max_texts=settings.embedding_max_texts,
            batch_delay=settings.embedding_batch_delay,
            timeout=settings.embedding_timeout,
            max_retries=settings.embedding_max_retries,
            retry_base_delay=settings.embedding_retry_base_delay,
        ),
        singleton=True,
    )

    c.register(
        DocumentLifecycleService,
        lambda: DocumentLifecycleService(
            documents=c.resolve(DocumentRepositoryProtocol),
            chunks=c.resolve(ChunkRepositoryProtocol),
            vector_index=c.resolve(VectorIndexProtocol),
            blob_store=c.resolve(BlobStoreProtocol),
            text_extractor=c.resolve(TextExtractorProtocol),
            deleted_prefix=settings.deleted_prefix,
        ),
        singleton=True,
    )

    c.register(
        SimilarityService,
        lambda: SimilarityService(
            documents=c.resolve(DocumentRepositoryProtocol),
            chunks=c.resolve(ChunkRepositoryProtocol),
            vector_index=c.resolve(VectorIndexProtocol),
            text_extractor=c.resolve(TextExtractorProtocol),
            chunker=c.resolve(SemanticChunker),
            batcher=c.resolve(EmbeddingBatcher),
            lifecycle=c.resolve(DocumentLifecycleService),
            chunking_config=ChunkingConfig(
                max_chunk_size=settings.similarity_chunk_size,
                overlap=settings.similarity_chunk_overlap,
                min_chunk_size=settings.chunk_min_size,
                overlap_word_divisor=settings.chunk_overlap_word_divisor,
            ),
            threshold_floor=settings.similarity_chunk_threshold_floor,
            threshold_margin=settings.similarity_chunk_threshold_margin,
            neighbors_per_chunk=settings.similarity_neighbors_per_chunk,
            default_options=SimilarityOptions(
                similarity_threshold=settings.similarity_threshold,
                max_candidates=settings.similarity_max_candidates,
            ),
        ),
        singleton=True,
    )

    c.register(
        IndexingService,
        lambda: IndexingService(
            documents=c.resolve(DocumentRepositoryProtocol),
            chunks=c.resolve(ChunkRepositoryProtocol),
            vector_index=c.resolve(VectorIndexProtocol),
            chunker=c.resolve(SemanticChunker),
            batcher=c.resolve(EmbeddingBatcher),
            lifecycle=c.resolve(DocumentLifecycleService),
            cost_per_token=settings.embedding_cost_per_token,
        ),
        singleton=True,
    )

    c.register(
        SearchService,
        lambda: SearchService(
            batcher=c.resolve(EmbeddingBatcher),
            vector_index=c.resolve(VectorIndexProtocol),
            chunks=c.resolve(ChunkRepositoryProtocol),
        ),
        singleton=True,
    )

    logger.info("Container configured")
    return c
