from __future__ import annotations

import math
from dataclasses import dataclass
from typing import AbstractSet, Dict, Iterable, List, Sequence

from rank_bm25 import BM25

from .types import ChunkRecord, IndexedDoc, ScoredDoc
from .utils import tokenize

K1 = 1.2
B = 0.75
EPS = 1e-6


class CodeBM25(BM25):
    """BM25 with a ``ln(1 + ...)`` idf that never goes negative.

    ``rank_bm25`` gathers the per-document term frequencies, lengths and
    document frequencies; idf and scoring are computed here.
    """

    def __init__(self, corpus: Sequence[Sequence[str]], k1: float = K1, b: float = B, epsilon: float = EPS):
        self.k1 = k1
        self.b = b
        self.epsilon = epsilon
        self.document_frequency: Dict[str, int] = {}
        super().__init__(corpus)

    def _calc_idf(self, nd: Dict[str, int]) -> None:
        self.document_frequency = dict(nd)
        for word, freq in nd.items():
            self.idf[word] = math.log(1 + (self.corpus_size - freq + 0.5) / (freq + 0.5))

    def get_scores(self, query: Sequence[str]) -> List[float]:
        avgdl = self.avgdl or 1
        scores: List[float] = []
        for frequencies, doc_len in zip(self.doc_freqs, self.doc_len):
            score = 0.0
            for token in query:
                tf = frequencies.get(token, 0)
                if not tf:
                    continue
                denom = tf + self.k1 * (1 - self.b + self.b * (doc_len / avgdl))
                score += self.idf[token] * (tf * (self.k1 + 1)) / (denom + self.epsilon)
            scores.append(score)
        return scores


@dataclass(frozen=True)
class LexicalIndex:
    docs: List[IndexedDoc]
    stop_words: AbstractSet[str]
    bm25: CodeBM25 | None = None

    @property
    def total_docs(self) -> int:
        return len(self.docs)

    @property
    def document_frequency(self) -> Dict[str, int]:
        return self.bm25.document_frequency if self.bm25 is not None else {}

    @property
    def average_doc_length(self) -> float:
        return float(self.bm25.avgdl) if self.bm25 is not None else 0.0


def build_index(chunks: Iterable[ChunkRecord], stop_words: AbstractSet[str]) -> LexicalIndex:
    docs = [
        IndexedDoc(
            id=chunk.id,
            rel_path=chunk.rel_path,
            text=chunk.text,
            tokens=tuple(tokenize(chunk.text, stop_words)),
        )
        for chunk in chunks
    ]
    stops = frozenset(stop_words)
    if not docs:
        # rank_bm25 divides by the corpus size
        return LexicalIndex(docs=docs, stop_words=stops)
    return LexicalIndex(docs=docs, stop_words=stops, bm25=CodeBM25([doc.tokens for doc in docs]))


def score_query(
    index: LexicalIndex,
    query: str,
    stop_words: AbstractSet[str] | None = None,
    top_k: int = 8,
) -> List[ScoredDoc]:
    if index.bm25 is None:
        return []
    query_tokens = tokenize(query, index.stop_words if stop_words is None else stop_words)
    scores = index.bm25.get_scores(query_tokens)
    scored = [ScoredDoc(doc=doc, score=score) for doc, score in zip(index.docs, scores)]
    scored.sort(key=lambda item: item.score, reverse=True)
    return scored[:top_k]
