"""Small TF-IDF for short mixed Japanese/English texts.

Latin words are kept whole (``c++``, ``next.js`` and ``ci/cd`` survive);
kana/kanji runs become overlapping character bigrams, which is enough to
compare short phrases without a morphological analyzer.
"""
from __future__ import annotations

import math
import re
from collections import Counter
from dataclasses import dataclass

import numpy as np

_LATIN_RE = re.compile(r"[A-Za-z][A-Za-z0-9_\-\+\.#/]*[A-Za-z0-9\+#]|[A-Za-z]")
# Hiragana, Katakana (incl. prolonged sound mark) and CJK ideographs
_CJK_RE = re.compile(r"[\u3040-\u30ff\u3400-\u4dbf\u4e00-\u9fff]+")


def tokenize(text: str) -> list[str]:
    source = text or ""
    tokens = [w.lower() for w in _LATIN_RE.findall(source)]
    for run in _CJK_RE.findall(source):
        if len(run) == 1:
            tokens.append(run)
        else:
            tokens.extend(run[i : i + 2] for i in range(len(run) - 1))
    return tokens


@dataclass(frozen=True)
class TfidfModel:
    vocab: dict[str, int]
    idf: np.ndarray  # shape: (V,)

    def transform(self, texts: list[str]) -> np.ndarray:
        """Rows are L2-normalised, so a dot product is the cosine similarity."""

        X = np.zeros((len(texts), len(self.vocab)), dtype=np.float32)
        for row, text in enumerate(texts):
            for term, count in Counter(tokenize(text)).items():
                col = self.vocab.get(term)
                if col is not None:
                    X[row, col] = float(count)

        X *= self.idf
        norms = np.linalg.norm(X, axis=1, keepdims=True)
        norms[norms == 0] = 1.0
        return X / norms


def fit_tfidf(texts: list[str], *, max_features: int = 5000, min_df: int = 1) -> TfidfModel:
    doc_freq: Counter[str] = Counter()
    for text in texts:
        doc_freq.update(set(tokenize(text)))

    kept = [t for t, c in doc_freq.items() if c >= min_df]
    # high df first, then lexicographic so the vocabulary is reproducible
    kept.sort(key=lambda t: (-doc_freq[t], t))
    terms = kept[:max_features]

    n_docs = max(1, len(texts))
    idf = np.array(
        [math.log((1.0 + n_docs) / (1.0 + doc_freq[t])) + 1.0 for t in terms],
        dtype=np.float32,
    )
    return TfidfModel(vocab={t: i for i, t in enumerate(terms)}, idf=idf)
