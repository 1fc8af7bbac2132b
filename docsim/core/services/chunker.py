"""Chunker - paragraph/sentence aware text segmentation."""

import logging
import re
from typing import Optional

from ..errors import PipelineStep, ValidationError
from ..models.chunking import ChunkingConfig, ChunkingResult, ChunkingStatistics
from ..models.document import ChunkType, DocumentChunk

logger = logging.getLogger(__name__)

_LINE_BREAKS = re.compile(r"\r\n?")
_INLINE_SPACE = re.compile(r"[^\S\n]+")
_SPACE_AROUND_NEWLINE = re.compile(r" *\n *")
_EXTRA_NEWLINES = re.compile(r"\n{3,}")
_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")
# Sentence end followed by whitespace and an uppercase (Latin-1) letter.
_SENTENCE_BREAK = re.compile(r"(?<=[.!?])\s+(?=[A-ZÀ-ÖØ-Þ])")


def normalize_text(text: str) -> str:
    """Unify line breaks and collapse whitespace, keeping blank lines."""
    text = _LINE_BREAKS.sub("\n", text)
    text = _INLINE_SPACE.sub(" ", text)
    text = _SPACE_AROUND_NEWLINE.sub("\n", text)
    text = _EXTRA_NEWLINES.sub("\n\n", text)
    return text.strip()


def split_sentences(text: str) -> list[str]:
    """Split on terminal punctuation followed by a capitalized word."""
    return [s.strip() for s in _SENTENCE_BREAK.split(text) if s.strip()]


class SemanticChunker:
    """Splits text into bounded chunks along paragraph and sentence lines."""

    def __init__(self, default_config: Optional[ChunkingConfig] = None):
        """Initialize chunker.

        Args:
            default_config: Config used when chunk() gets none.
        """
        self._default_config = default_config or ChunkingConfig()
        self.validate_config(self._default_config)

    @property
    def default_config(self) -> ChunkingConfig:
        return self._default_config

    @staticmethod
    def validate_config(config: ChunkingConfig) -> None:
        """Reject configurations the algorithm cannot honor.

        Raises:
            ValidationError: If any bound is out of range.
        """
        if config.max_chunk_size <= 0:
            raise ValidationError(
                "max_chunk_size must be greater than 0", step=PipelineStep.CHUNK
            )
        if config.overlap < 0 or config.overlap >= config.max_chunk_size:
            raise ValidationError(
                "overlap must be between 0 and max_chunk_size (exclusive)",
                step=PipelineStep.CHUNK,
            )
        if config.min_chunk_size <= 0 or config.min_chunk_size > config.max_chunk_size:
            raise ValidationError(
                "min_chunk_size must be between 1 and max_chunk_size",
                step=PipelineStep.CHUNK,
            )
        if config.overlap_word_divisor <= 0:
            raise ValidationError(
                "overlap_word_divisor must be greater than 0", step=PipelineStep.CHUNK
            )

    def chunk(
        self,
        text: str,
        document_id: str = "",
        config: Optional[ChunkingConfig] = None,
    ) -> ChunkingResult:
        """Split text into chunks.

        Args:
            text: Raw text.
            document_id: Owner of the produced chunks. Empty while the
                document does not exist yet.
            config: Override for the default config.

        Returns:
            Chunks with dense indices and run statistics.
        """
        config = config or self._default_config
        self.validate_config(config)

        cleaned = normalize_text(text)
        if not cleaned:
            return ChunkingResult(chunks=[], config=config)

        if config.respect_paragraphs:
            paragraphs = [p.strip() for p in _PARAGRAPH_BREAK.split(cleaned)]
            paragraphs = [p for p in paragraphs if p]
        else:
            paragraphs = [cleaned]

        pieces: list[tuple[str, ChunkType]] = []
        dropped = 0
        for paragraph in paragraphs:
            if len(paragraph) < config.min_chunk_size:
                dropped += 1
                continue
            pieces.extend(self._split_paragraph(paragraph, config))

        contents = self._apply_overlap([content for content, _ in pieces], config)
        chunks = [
            DocumentChunk(
                document_id=document_id,
                content=content,
                chunk_index=i,
                type=chunk_type,
            )
            for i, (content, (_, chunk_type)) in enumerate(zip(contents, pieces))
        ]

        statistics = self._statistics(chunks, config, dropped)
        logger.info(
            f"Chunked {len(cleaned)} chars into {statistics.total_chunks} chunks "
            f"(avg={statistics.average_chunk_size}, dropped={dropped})"
        )
        return ChunkingResult(chunks=chunks, config=config, statistics=statistics)

    def _split_paragraph(
        self, paragraph: str, config: ChunkingConfig
    ) -> list[tuple[str, ChunkType]]:
        max_size = config.max_chunk_size
        if len(paragraph) <= max_size:
            return [(paragraph, ChunkType.PARAGRAPH)]

        if not config.respect_sentences:
            return [(w, ChunkType.WORD_GROUP) for w in self._split_words(paragraph, max_size)]

        pieces: list[tuple[str, ChunkType]] = []
        current = ""
        for sentence in split_sentences(paragraph):
            candidate = f"{current} {sentence}" if current else sentence
            if len(candidate) <= max_size:
                current = candidate
                continue

            if current:
                pieces.append((current, ChunkType.SENTENCE_GROUP))

            if len(sentence) > max_size:
                pieces.extend(
                    (w, ChunkType.WORD_GROUP)
                    for w in self._split_words(sentence, max_size)
                )
                current = ""
            else:
                current = sentence

        if current:
            pieces.append((current, ChunkType.SENTENCE_GROUP))
        return pieces

    @staticmethod
    def _split_words(text: str, max_size: int) -> list[str]:
        """Greedy word accumulation; oversized single words are cut."""
        pieces: list[str] = []
        current = ""
        for word in text.split():
            if len(word) > max_size:
                if current:
                    pieces.append(current)
                    current = ""
                pieces.extend(
                    word[i : i + max_size] for i in range(0, len(word), max_size)
                )
                continue

            candidate = f"{current} {word}" if current else word
            if len(candidate) <= max_size:
                current = candidate
            else:
                pieces.append(current)
                current = word

        if current:
            pieces.append(current)
        return pieces

    @staticmethod
    def _apply_overlap(contents: list[str], config: ChunkingConfig) -> list[str]:
        """Prepend trailing words of each previous chunk.

        The previous chunk is taken as emitted, including any overlap it
        received itself, so the word cap and the carried words both count
        that overlap.
        """
        if config.overlap == 0 or len(contents) <= 1:
            return list(contents)

        wanted = config.overlap // config.overlap_word_divisor
        result = [contents[0]]
        for current in contents[1:]:
            previous_words = result[-1].split()
            count = min(wanted, len(previous_words) // 3)
            if count > 0:
                current = " ".join(previous_words[-count:]) + " " + current
            result.append(current)
        return result

    @staticmethod
    def _statistics(
        chunks: list[DocumentChunk], config: ChunkingConfig, dropped: int
    ) -> ChunkingStatistics:
        overlap_percentage = (
            config.overlap / config.max_chunk_size * 100 if config.overlap > 0 else 0.0
        )
        if not chunks:
            return ChunkingStatistics(
                overlap_percentage=overlap_percentage, dropped_paragraphs=dropped
            )

        sizes = [c.content_length for c in chunks]
        return ChunkingStatistics(
            total_chunks=len(chunks),
            min_chunk_size=min(sizes),
            average_chunk_size=round(sum(sizes) / len(sizes)),
            max_chunk_size=max(sizes),
            overlap_percentage=overlap_percentage,
            dropped_paragraphs=dropped,
        )
