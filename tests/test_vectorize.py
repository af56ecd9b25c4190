import numpy as np
import pytest

from blog_feed_aggregator.vectorize import fit_tfidf, tokenize


def test_tokenize_keeps_tech_words_whole():
    tokens = tokenize("Next.js と C++ で CI/CD")
    assert {"next.js", "c++", "ci/cd"} <= set(tokens)


def test_tokenize_splits_cjk_runs_into_bigrams():
    assert tokenize("カフェ") == ["カフ", "フェ"]
    assert tokenize("と") == ["と"]
    assert tokenize("") == []


def test_identical_texts_have_cosine_one():
    texts = ["Docker Kubernetes コンテナ", "旅行記 観光 グルメ"]
    model = fit_tfidf(texts)
    X = model.transform(texts)

    assert float(X[0] @ X[0]) == pytest.approx(1.0, abs=1e-5)
    assert float(X[0] @ X[1]) == pytest.approx(0.0, abs=1e-6)


def test_unknown_text_is_zero_vector():
    model = fit_tfidf(["python"])
    v = model.transform(["完全に無関係"])[0]
    assert not np.any(v)
