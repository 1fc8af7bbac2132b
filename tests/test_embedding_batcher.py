import math
import time
from unittest.mock import Mock

import pytest

from conftest import BagOfWordsProvider
from docsim.core.errors import PipelineStep, ProviderError, ValidationError
from docsim.core.models.embedding import EmbeddingConfig, EmbeddingItem, EmbeddingResponse
from docsim.core.services.embedding_batcher import EmbeddingBatcher


def _batcher(provider, **kwargs) -> EmbeddingBatcher:
    kwargs.setdefault("batch_delay", 0)
    kwargs.setdefault("retry_base_delay", 0)
    kwargs.setdefault("max_retries", 0)
    return EmbeddingBatcher(provider, **kwargs)


def test_large_input_is_split_by_max_batch_size_and_keeps_order(provider):
    provider.reverse_order = True
    texts = [f"text number {i} about item{i}" for i in range(23)]
    batcher = _batcher(provider, max_batch_size=5)

    result = batcher.embed_batch(texts)

    assert len(provider.calls) == math.ceil(23 / 5)
    assert [len(call) for call in provider.calls] == [5, 5, 5, 5, 3]
    assert result.embeddings == [BagOfWordsProvider.vectorize(t) for t in texts]
    assert result.successful_count == 23
    assert result.failed_count == 0
    assert result.dimensions == BagOfWordsProvider.DIMENSIONS


def test_token_budget_splits_batches(provider):
    texts = ["word " * 100] * 6  # ~125 estimated tokens each
    batcher = _batcher(provider, max_batch_size=100, max_batch_tokens=300)

    batcher.embed_batch(texts)

    assert [len(call) for call in provider.calls] == [2, 2, 2]


def test_plan_batches_puts_oversized_text_alone(provider):
    batcher = _batcher(provider, max_batch_tokens=10)

    assert batcher.plan_batches(["a b", "x" * 200, "c d"]) == [[0], [1], [2]]


@pytest.mark.parametrize("bad", ["", "   ", "\n\t"])
def test_empty_text_fails_before_any_call(provider, bad):
    batcher = _batcher(provider)

    with pytest.raises(ValidationError) as exc_info:
        batcher.embed_batch(["fine", "also fine", bad])

    assert exc_info.value.index == 2
    assert exc_info.value.step is PipelineStep.EMBED
    assert provider.calls == []


def test_oversized_text_fails_before_any_call(provider):
    batcher = _batcher(provider, max_text_chars=20)

    with pytest.raises(ValidationError) as exc_info:
        batcher.embed_batch(["short", "x" * 21])

    assert exc_info.value.index == 1
    assert provider.calls == []


def test_empty_and_too_many_inputs_are_rejected(provider):
    batcher = _batcher(provider, max_texts=3)

    with pytest.raises(ValidationError):
        batcher.embed_batch([])
    with pytest.raises(ValidationError):
        batcher.embed_batch(["a", "b", "c", "d"])


def test_failed_sub_batch_is_recorded_and_processing_continues(provider):
    provider.fail_on = {"poison"}
    texts = ["alpha one", "beta two", "poison three", "gamma four", "delta five"]
    batcher = _batcher(provider, max_batch_size=2)

    result = batcher.embed_batch(texts)

    assert len(provider.calls) == 3
    assert result.successful_count == 3
    assert result.failed_count == 2
    assert result.embeddings[2] is None and result.embeddings[3] is None
    assert result.embeddings[4] == BagOfWordsProvider.vectorize("delta five")
    assert len(result.errors) == 1
    assert result.errors[0].batch_index == 1
    assert result.errors[0].text_indices == [2, 3]
    assert result.errors[0].message.startswith("Batch 2:")
    assert result.failed_indices == [2, 3]
    assert not result.is_complete


def test_provider_error_is_retried(provider):
    flaky = Mock(
        side_effect=[
            ProviderError("busy", status_code=503),
            provider.embed(["hello world"], EmbeddingConfig()),
        ]
    )
    batcher = _batcher(Mock(embed=flaky), max_retries=2)

    result = batcher.embed_batch(["hello world"])

    assert flaky.call_count == 2
    assert result.successful_count == 1


def test_client_errors_are_not_retried():
    embed = Mock(side_effect=ProviderError("bad key", status_code=401))
    batcher = _batcher(Mock(embed=embed), max_retries=3)

    result = batcher.embed_batch(["hello"])

    assert embed.call_count == 1
    assert result.failed_count == 1


def test_retries_are_bounded():
    embed = Mock(side_effect=ProviderError("down", status_code=500))
    batcher = _batcher(Mock(embed=embed), max_retries=2)

    result = batcher.embed_batch(["hello"])

    assert embed.call_count == 3
    assert result.failed_count == 1


def test_hung_provider_call_times_out_as_failed_batch():
    def slow_embed(texts, config):
        time.sleep(1.0)
        return EmbeddingResponse(items=[])

    batcher = _batcher(Mock(embed=slow_embed), timeout=0.05)

    started = time.monotonic()
    result = batcher.embed_batch(["hello"])

    assert time.monotonic() - started < 0.9
    assert result.failed_count == 1
    assert "timed out" in result.errors[0].message


def test_count_mismatch_fails_the_sub_batch():
    response = EmbeddingResponse(items=[EmbeddingItem(index=0, vector=[1.0, 0.0])])
    batcher = _batcher(Mock(embed=Mock(return_value=response)))

    result = batcher.embed_batch(["one", "two"])

    assert result.failed_count == 2
    assert "2 texts" in result.errors[0].message


def test_unexpected_exception_fails_only_its_sub_batch(provider):
    calls = {"n": 0}

    def embed(texts, config):
        calls["n"] += 1
        if calls["n"] == 1:
            raise RuntimeError("boom")
        return provider.embed(texts, config)

    batcher = _batcher(Mock(embed=embed), max_batch_size=1)

    result = batcher.embed_batch(["first", "second"])

    assert result.embeddings[0] is None
    assert result.embeddings[1] == BagOfWordsProvider.vectorize("second")


def test_tokens_are_summed(provider):
    batcher = _batcher(provider, max_batch_size=1)

    result = batcher.embed_batch(["one two", "three four five"])

    assert result.total_tokens_used == 5


def test_embed_text_raises_when_embedding_failed(provider):
    provider.fail_on = {"x"}
    batcher = _batcher(provider)

    with pytest.raises(ProviderError):
        batcher.embed_text("x marks the spot")


def test_unsupported_dimensions_are_rejected(provider):
    batcher = _batcher(provider)

    with pytest.raises(ValidationError):
        batcher.embed_batch(["hello"], config=EmbeddingConfig(dimensions=999))


def test_token_estimate_counts_punctuation_and_words():
    plain = "a" * 40
    punctuated = "!?.," * 10

    assert EmbeddingBatcher.estimate_tokens(plain) == 10
    assert EmbeddingBatcher.estimate_tokens(punctuated) > EmbeddingBatcher.estimate_tokens(plain)
    assert EmbeddingBatcher.estimate_tokens("a b c d e f g h") == 8
    assert EmbeddingBatcher.estimate_tokens("") == 0
