
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):

    log_level: str = "INFO"

    # Backends
    embedding_provider: str = "openai"
    vector_backend: str = "memory"

    chroma_host: str = "localhost"
    chroma_port: int = 8001
    chroma_collection: str = "document_chunks"
    chroma_timeout: float = 30.0

    openai_api_key: Optional[str] = None
    openai_base_url: Optional[str] = None

    storage_path: str = "./storage"
    deleted_prefix: str = "deleted/"

    # Embeddings
    embedding_model: str = "text-embedding-3-small"
    embedding_dimensions: Optional[int] = 1536
    local_embedding_model: str = "intfloat/multilingual-e5-base"
    embedding_max_batch_size: int = 2048
    embedding_max_batch_tokens: int = 250_000
    embedding_max_text_chars: int = 50_000
    embedding_max_texts: int = 100_000
    embedding_batch_delay: float = 0.1
    embedding_timeout: float = 60.0
    embedding_max_retries: int = 2
    embedding_retry_base_delay: float = 1.0
    embedding_cost_per_token: float = 0.00002

    # Chunking (indexing)
    chunk_max_size: int = 1000
    chunk_overlap: int = 100
    chunk_min_size: int = 50
    chunk_respect_paragraphs: bool = True
    chunk_respect_sentences: bool = True
    chunk_overlap_word_divisor: int = 10

    # Similarity check
    similarity_threshold: float = 0.7
    similarity_max_candidates: int = 10
    similarity_chunk_size: int = 1000
    similarity_chunk_overlap: int = 200
    similarity_chunk_threshold_floor: float = 0.3
    similarity_chunk_threshold_margin: float = 0.2
    similarity_neighbors_per_chunk: int = 5

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
