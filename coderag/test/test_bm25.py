import math

import pytest

from coderag.bm25 import build_index, score_query
from coderag.types import ChunkRecord
from coderag.utils import tokenize

STOP_WORDS = frozenset({"the", "and"})


def _chunks(*texts):
    return [ChunkRecord(id=i, rel_path=f"f{i}.ts", text=text) for i, text in enumerate(texts)]


def test_tokenize_lowercases_splits_and_filters():
    tokens = tokenize("Hello, World foo_bar x 中文 the AND", STOP_WORDS)

    assert tokens == ["hello", "world", "foo_bar", "中文"]


def test_document_frequency_counts_each_doc_once():
    index = build_index(_chunks("alpha alpha beta", "beta gamma"), STOP_WORDS)

    assert index.total_docs == 2
    assert index.document_frequency == {"alpha": 1, "beta": 2, "gamma": 1}
    assert index.average_doc_length == pytest.approx(2.5)
    assert all(df <= index.total_docs for df in index.document_frequency.values())


def test_empty_index_has_zero_stats_and_no_results():
    index = build_index([], STOP_WORDS)

    assert index.total_docs == 0
    assert index.average_doc_length == 0
    assert index.document_frequency == {}
    assert score_query(index, "alpha", STOP_WORDS, 5) == []


def test_score_follows_bm25_formula():
    index = build_index(_chunks("alpha alpha beta", "beta gamma"), STOP_WORDS)

    results = score_query(index, "alpha", STOP_WORDS, 5)

    idf = math.log(1 + (2 - 1 + 0.5) / (1 + 0.5))
    denom = 2 + 1.2 * (1 - 0.75 + 0.75 * (3 / 2.5))
    expected = idf * (2 * 2.2) / (denom + 1e-6)
    assert results[0].doc.id == 0
    assert results[0].score == pytest.approx(expected)


def test_zero_score_documents_are_still_returned():
    index = build_index(_chunks("alpha beta", "gamma delta"), STOP_WORDS)

    results = score_query(index, "alpha", STOP_WORDS, 5)

    assert [item.doc.id for item in results] == [0, 1]
    assert results[1].score == 0


def test_ties_keep_document_order_and_top_k_truncates():
    index = build_index(_chunks("same words", "other", "same words", "same words"), STOP_WORDS)

    results = score_query(index, "same", STOP_WORDS, 3)

    assert [item.doc.id for item in results] == [0, 2, 3]


def test_repeated_query_tokens_add_up():
    index = build_index(_chunks("alpha beta", "beta gamma"), STOP_WORDS)

    single = score_query(index, "alpha", STOP_WORDS, 1)[0].score
    double = score_query(index, "alpha alpha", STOP_WORDS, 1)[0].score

    assert double == pytest.approx(2 * single)


def test_scorer_defaults_to_index_stop_words():
    index = build_index(_chunks("the alpha"), STOP_WORDS)

    results = score_query(index, "the alpha", top_k=1)

    assert results[0].score == pytest.approx(score_query(index, "alpha", STOP_WORDS, 1)[0].score)
