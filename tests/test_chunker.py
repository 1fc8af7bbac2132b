import pytest

from docsim.core.errors import ValidationError
from docsim.core.models.chunking import ChunkingConfig
from docsim.core.models.document import ChunkType
from docsim.core.services.chunker import SemanticChunker, normalize_text, split_sentences


def _sentences(count: int) -> str:
    return " ".join(
        f"Sentence number {i} talks about topic {i % 7} in some detail." for i in range(count)
    )


LONG_TEXT = "\n\n".join(
    [
        _sentences(3),
        _sentences(40),
        "Short tail paragraph here.",
        " ".join(f"word{i}" for i in range(300)),
    ]
)


def test_two_paragraphs_become_two_chunks():
    chunker = SemanticChunker()
    config = ChunkingConfig(
        max_chunk_size=5000, overlap=0, min_chunk_size=10, respect_paragraphs=True
    )

    result = chunker.chunk("Paragraph A. Sentence two.\n\nParagraph B.", config=config)

    assert [c.content for c in result.chunks] == ["Paragraph A. Sentence two.", "Paragraph B."]
    assert all(c.type is ChunkType.PARAGRAPH for c in result.chunks)
    assert result.statistics.dropped_paragraphs == 0


@pytest.mark.parametrize(
    "config",
    [
        ChunkingConfig(max_chunk_size=0, overlap=0, min_chunk_size=1),
        ChunkingConfig(max_chunk_size=100, overlap=-1, min_chunk_size=1),
        ChunkingConfig(max_chunk_size=100, overlap=100, min_chunk_size=1),
        ChunkingConfig(max_chunk_size=100, overlap=10, min_chunk_size=0),
        ChunkingConfig(max_chunk_size=100, overlap=10, min_chunk_size=101),
        ChunkingConfig(max_chunk_size=100, overlap=10, min_chunk_size=10, overlap_word_divisor=0),
    ],
)
def test_invalid_config_is_rejected(config):
    with pytest.raises(ValidationError):
        SemanticChunker().chunk("Some text that would otherwise chunk fine.", config=config)


def test_invalid_default_config_is_rejected_at_construction():
    with pytest.raises(ValidationError):
        SemanticChunker(ChunkingConfig(max_chunk_size=10, overlap=20, min_chunk_size=1))


@pytest.mark.parametrize("max_size", [50, 200, 1000])
@pytest.mark.parametrize("respect_sentences", [True, False])
def test_chunks_are_bounded_and_preserve_all_words(max_size, respect_sentences):
    config = ChunkingConfig(
        max_chunk_size=max_size,
        overlap=0,
        min_chunk_size=1,
        respect_sentences=respect_sentences,
    )

    result = SemanticChunker().chunk(LONG_TEXT, config=config)

    assert all(c.content_length <= max_size for c in result.chunks)
    joined = " ".join(c.content for c in result.chunks)
    assert joined.split() == normalize_text(LONG_TEXT).split()
    assert [c.chunk_index for c in result.chunks] == list(range(len(result.chunks)))


def test_chunking_is_idempotent():
    chunker = SemanticChunker(ChunkingConfig(max_chunk_size=200, overlap=50, min_chunk_size=5))

    first = chunker.chunk(LONG_TEXT)
    second = chunker.chunk(LONG_TEXT)

    assert [(c.content, c.type) for c in first.chunks] == [
        (c.content, c.type) for c in second.chunks
    ]
    assert [c.id for c in first.chunks] != [c.id for c in second.chunks]


def test_short_paragraphs_are_dropped():
    config = ChunkingConfig(max_chunk_size=500, overlap=0, min_chunk_size=20)

    result = SemanticChunker().chunk(
        "Tiny.\n\nThis paragraph is long enough to survive.\n\nAlso tiny.", config=config
    )

    assert [c.content for c in result.chunks] == ["This paragraph is long enough to survive."]
    assert result.statistics.dropped_paragraphs == 2


def test_sentence_groups_keep_terminal_punctuation():
    config = ChunkingConfig(max_chunk_size=30, overlap=0, min_chunk_size=1)

    result = SemanticChunker().chunk(
        "First sentence here. Second one is here! Third? Yes.", config=config
    )

    assert [c.content for c in result.chunks] == [
        "First sentence here.",
        "Second one is here! Third?",
        "Yes.",
    ]
    assert all(c.type is ChunkType.SENTENCE_GROUP for c in result.chunks)


def test_sentences_split_only_before_capitals():
    assert split_sentences("Dr. smith arrived. Then he left.") == [
        "Dr. smith arrived.",
        "Then he left.",
    ]


def test_oversized_sentence_falls_back_to_word_groups():
    config = ChunkingConfig(max_chunk_size=40, overlap=0, min_chunk_size=1)
    sentence = " ".join(f"token{i}" for i in range(30))

    result = SemanticChunker().chunk(sentence, config=config)

    assert len(result.chunks) > 1
    assert all(c.type is ChunkType.WORD_GROUP for c in result.chunks)
    assert all(c.content_length <= 40 for c in result.chunks)


def test_words_longer_than_max_are_cut():
    config = ChunkingConfig(
        max_chunk_size=10, overlap=0, min_chunk_size=1, respect_sentences=False
    )

    result = SemanticChunker().chunk("abcdefghijklmnopqrstuvwxyz short", config=config)

    assert [c.content for c in result.chunks] == [
        "abcdefghij",
        "klmnopqrst",
        "uvwxyz",
        "short",
    ]


def test_overlap_prepends_trailing_words_of_previous_chunk():
    config = ChunkingConfig(max_chunk_size=100, overlap=30, min_chunk_size=1)
    text = (
        "Alpha beta gamma delta epsilon zeta eta theta iota kappa.\n\n"
        "Lambda mu nu xi omicron pi rho sigma tau upsilon.\n\n"
        "Phi chi psi omega."
    )

    result = SemanticChunker().chunk(text, config=config)
    contents = [c.content for c in result.chunks]

    assert contents[0] == "Alpha beta gamma delta epsilon zeta eta theta iota kappa."
    assert contents[1] == "theta iota kappa. Lambda mu nu xi omicron pi rho sigma tau upsilon."
    assert contents[2] == "sigma tau upsilon. Phi chi psi omega."


def test_overlap_counts_words_the_previous_chunk_received():
    config = ChunkingConfig(max_chunk_size=400, overlap=100, min_chunk_size=5)
    text = "\n\n".join(
        " ".join(f"{prefix}{i}" for i in range(count))
        for prefix, count in (("aa", 30), ("bb", 5), ("cc", 5))
    )

    contents = [c.content for c in SemanticChunker().chunk(text, config=config).chunks]

    assert contents[1] == " ".join(
        [f"aa{i}" for i in range(20, 30)] + [f"bb{i}" for i in range(5)]
    )
    # Five of the fifteen words of chunk 1, all from its own paragraph
    assert contents[2] == "bb0 bb1 bb2 bb3 bb4 cc0 cc1 cc2 cc3 cc4"


def test_overlap_is_capped_at_a_third_of_previous_words():
    config = ChunkingConfig(max_chunk_size=100, overlap=90, min_chunk_size=1)

    result = SemanticChunker().chunk(
        "One two three four five six.\n\nSeven eight nine.", config=config
    )

    assert result.chunks[1].content == "five six. Seven eight nine."


def test_no_overlap_for_single_chunk():
    config = ChunkingConfig(max_chunk_size=100, overlap=50, min_chunk_size=1)

    result = SemanticChunker().chunk("Only one paragraph here.", config=config)

    assert [c.content for c in result.chunks] == ["Only one paragraph here."]


def test_statistics_report_sizes_and_configured_overlap():
    config = ChunkingConfig(max_chunk_size=100, overlap=30, min_chunk_size=1)

    result = SemanticChunker().chunk("Short one.\n\nA somewhat longer paragraph.", config=config)
    sizes = [c.content_length for c in result.chunks]

    stats = result.statistics
    assert stats.total_chunks == 2
    assert stats.min_chunk_size == min(sizes)
    assert stats.max_chunk_size == max(sizes)
    assert stats.average_chunk_size == round(sum(sizes) / 2)
    assert stats.overlap_percentage == pytest.approx(30.0)


def test_without_paragraphs_the_text_is_one_unit():
    config = ChunkingConfig(
        max_chunk_size=500, overlap=0, min_chunk_size=1, respect_paragraphs=False
    )

    result = SemanticChunker().chunk("First part.\n\nSecond part.", config=config)

    assert [c.content for c in result.chunks] == ["First part.\n\nSecond part."]


def test_empty_text_yields_no_chunks():
    result = SemanticChunker().chunk("  \n\n \r\n ")

    assert result.chunks == []
    assert result.statistics.total_chunks == 0


def test_normalize_text_unifies_breaks_and_spaces():
    assert normalize_text("a  b\r\n\r\n\r\n\r\nc \n d") == "a b\n\nc\nd"


def test_chunks_carry_document_id():
    result = SemanticChunker().chunk(_sentences(3), document_id="doc-1")

    assert result.chunks
    assert all(c.document_id == "doc-1" for c in result.chunks)
