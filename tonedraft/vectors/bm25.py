"""BM25 sparse encoder kept for keyword-exact matching."""

from __future__ import annotations

import json
import logging
import math
import re
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Tuple

LOGGER = logging.getLogger(__name__)

PUNCTUATION_PATTERN = re.compile(r"[^\w\s]")


def tokenize(text: str) -> List[str]:
    return PUNCTUATION_PATTERN.sub(" ", text.lower()).split()


@dataclass(slots=True)
class SparseVector:
    indices: List[int]
    values: List[float]

    def pairs(self) -> List[Tuple[int, float]]:
        return list(zip(self.indices, self.values))


@dataclass(slots=True)
class BM25State:
    """Everything needed to encode queries after fitting."""

    vocabulary: Dict[str, int] = field(default_factory=dict)
    idf: Dict[str, float] = field(default_factory=dict)
    avg_doc_length: float = 0.0
    doc_count: int = 0
    k1: float = 1.5
    b: float = 0.75

    def to_dict(self) -> Dict:
        return {
            "vocabulary": self.vocabulary,
            "idf": self.idf,
            "avg_doc_length": self.avg_doc_length,
            "doc_count": self.doc_count,
            "k1": self.k1,
            "b": self.b,
        }

    @classmethod
    def from_dict(cls, payload: Dict) -> "BM25State":
        return cls(
            vocabulary={term: int(idx) for term, idx in payload["vocabulary"].items()},
            idf={term: float(value) for term, value in payload["idf"].items()},
            avg_doc_length=float(payload["avg_doc_length"]),
            doc_count=int(payload.get("doc_count", 0)),
            k1=float(payload.get("k1", 1.5)),
            b=float(payload.get("b", 0.75)),
        )


class BM25Encoder:
    """Fit once per user corpus, then encode queries into sparse vectors."""

    def __init__(self, k1: float = 1.5, b: float = 0.75, state: BM25State | None = None) -> None:
        self.state = state or BM25State(k1=k1, b=b)

    @property
    def is_fitted(self) -> bool:
        return bool(self.state.vocabulary)

    def fit(self, documents: Iterable[str]) -> "BM25Encoder":
        tokenized = [tokenize(doc) for doc in documents]
        doc_count = len(tokenized)
        document_frequency: Counter = Counter()
        for tokens in tokenized:
            document_frequency.update(set(tokens))

        vocabulary = {term: idx for idx, term in enumerate(sorted(document_frequency))}
        idf = {
            term: math.log((doc_count - df + 0.5) / (df + 0.5) + 1)
            for term, df in document_frequency.items()
        }
        total_tokens = sum(len(tokens) for tokens in tokenized)
        self.state = BM25State(
            vocabulary=vocabulary,
            idf=idf,
            avg_doc_length=total_tokens / doc_count if doc_count else 0.0,
            doc_count=doc_count,
            k1=self.state.k1,
            b=self.state.b,
        )
        LOGGER.info("Fitted BM25 on %s documents (%s terms)", doc_count, len(vocabulary))
        return self

    def term_score(self, term_frequency: int, idf: float, doc_length: int) -> float:
        k1, b = self.state.k1, self.state.b
        avg = self.state.avg_doc_length or 1.0
        return idf * term_frequency * (k1 + 1) / (term_frequency + k1 * (1 - b + b * (doc_length / avg)))

    def encode(self, text: str) -> SparseVector:
        if not self.is_fitted:
            raise RuntimeError("BM25 encoder must be fitted or loaded before encoding.")
        tokens = tokenize(text)
        counts = Counter(tokens)
        scored: List[Tuple[int, float]] = []
        for term, frequency in counts.items():
            index = self.state.vocabulary.get(term)
            if index is None:
                continue
            scored.append((index, self.term_score(frequency, self.state.idf[term], len(tokens))))
        scored.sort(key=lambda item: item[0])
        return SparseVector(indices=[idx for idx, _ in scored], values=[score for _, score in scored])

    def save(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as fh:
            json.dump(self.state.to_dict(), fh)

    @classmethod
    def load(cls, path: Path) -> "BM25Encoder":
        with path.open("r", encoding="utf-8") as fh:
            return cls(state=BM25State.from_dict(json.load(fh)))
