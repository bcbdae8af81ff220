import logging
import time

import numpy as np
import pytest

from recommender.embeddings import encoder
from recommender.embeddings.config import EmbeddingConfig
from recommender.embeddings.gateway import SentenceTransformerGateway, cosine
from recommender.recommendations.models import StoreEntity
from recommender.recommendations.rerank import _similarities, rerank

CANDIDATES = [StoreEntity(id=i, name=f"s{i}") for i in (5, 4, 3)]
TEXTS = ["five", "four", "three"]


class FakeGateway:
    """Returns a fixed vector per text; unknown texts get the zero vector."""

    def __init__(self, table):
        self.table = table
        self.calls = 0

    def embed_all(self, texts):
        self.calls += 1
        return [self.table.get(t, [0.0, 0.0]) for t in texts]


class ShortGateway:
    def embed_all(self, texts):
        return [[1.0, 0.0] for _ in texts[:-1]]


class BrokenGateway:
    def __init__(self):
        self.calls = 0

    def embed_all(self, texts):
        self.calls += 1
        raise RuntimeError("503 from provider")


def _ids(entities):
    return [e.id for e in entities]


def test_sorts_by_similarity_descending():
    gateway = FakeGateway({
        "me": [1.0, 0.0],
        "five": [0.0, 1.0],
        "four": [1.0, 0.1],
        "three": [1.0, 1.0],
    })
    outcome = rerank("me", CANDIDATES, TEXTS, gateway, timeout=1.0)
    assert outcome.reranked
    assert outcome.fallback_reason is None
    assert _ids(outcome.order) == [4, 3, 5]
    assert [r.entity.id for r in outcome.ranked] == [4, 3, 5]
    assert outcome.ranked[0].similarity == pytest.approx(0.995, abs=1e-3)
    assert gateway.calls == 1


def test_ties_keep_input_order():
    gateway = FakeGateway({"me": [1.0, 0.0], "five": [1.0, 0.0], "four": [2.0, 0.0], "three": [0.0, 1.0]})
    outcome = rerank("me", CANDIDATES, TEXTS, gateway, timeout=1.0)
    assert _ids(outcome.order) == [5, 4, 3]


def test_zero_vector_candidate_sinks_to_bottom():
    gateway = FakeGateway({"me": [1.0, 0.0], "five": [-1.0, 0.0], "four": [1.0, 1.0]})
    outcome = rerank("me", CANDIDATES, TEXTS, gateway, timeout=1.0)
    assert _ids(outcome.order) == [4, 5, 3]
    assert outcome.ranked[-1].similarity == -1.0


def test_gateway_error_falls_back_without_retry(caplog):
    gateway = BrokenGateway()
    with caplog.at_level(logging.WARNING):
        outcome = rerank("me", CANDIDATES, TEXTS, gateway, timeout=1.0)
    assert not outcome.reranked
    assert outcome.order == CANDIDATES
    assert outcome.fallback_reason.startswith("error")
    assert gateway.calls == 1
    assert "fallback to deterministic order" in caplog.text


def test_size_mismatch_falls_back():
    outcome = rerank("me", CANDIDATES, TEXTS, ShortGateway(), timeout=1.0)
    assert outcome.order == CANDIDATES
    assert outcome.fallback_reason == "size mismatch: expected=4, got=3"


def test_nan_vectors_fall_back():
    gateway = FakeGateway({"me": [1.0, 0.0], "five": [float("nan"), 1.0], "four": [1.0, 0.0], "three": [0.0, 1.0]})
    outcome = rerank("me", CANDIDATES, TEXTS, gateway, timeout=1.0)
    assert not outcome.reranked
    assert outcome.order == CANDIDATES
    assert "non-finite" in outcome.fallback_reason


def test_inconsistent_dimensions_fall_back():
    gateway = FakeGateway({"me": [1.0, 0.0], "five": [1.0, 0.0, 0.0], "four": [1.0, 0.0], "three": [0.0, 1.0]})
    outcome = rerank("me", CANDIDATES, TEXTS, gateway, timeout=1.0)
    assert outcome.order == CANDIDATES
    assert "inconsistent dimensions" in outcome.fallback_reason


def test_disabled_gateway_keeps_order():
    outcome = rerank("me", CANDIDATES, TEXTS, None)
    assert outcome.order == CANDIDATES
    assert outcome.fallback_reason == "disabled"


def test_empty_window_skips_gateway():
    gateway = FakeGateway({})
    outcome = rerank("me", [], [], gateway)
    assert outcome.order == []
    assert not outcome.reranked
    assert outcome.fallback_reason is None
    assert gateway.calls == 0


def test_mismatched_texts_is_a_programming_error():
    with pytest.raises(ValueError):
        rerank("me", CANDIDATES, TEXTS[:2], FakeGateway({}))


def test_zero_norm_user_vector_keeps_window_order():
    gateway = FakeGateway({"five": [1.0, 0.0], "four": [0.0, 1.0], "three": [1.0, 1.0]})
    outcome = rerank("nobody", CANDIDATES, TEXTS, gateway, timeout=1.0)
    assert outcome.reranked
    assert _ids(outcome.order) == [5, 4, 3]
    assert [r.similarity for r in outcome.ranked] == [-1.0, -1.0, -1.0]


def test_empty_vectors_fall_back():
    gateway = FakeGateway({"me": [], "five": [], "four": [], "three": []})
    outcome = rerank("me", CANDIDATES, TEXTS, gateway, timeout=1.0)
    assert not outcome.reranked
    assert outcome.order == CANDIDATES
    assert outcome.fallback_reason == "malformed embeddings: empty vectors"


@pytest.mark.parametrize(
    "user, items",
    [
        ([0.0, 0.0], [[1.0, 0.0], [0.0, 0.0]]),
        ([1.0, 2.0], [[-1.0, -2.0], [0.0, 0.0], [2.0, 4.0], [3.0, -1.0]]),
    ],
)
def test_batch_similarities_agree_with_cosine(user, items):
    sims = _similarities([user, *items])
    assert list(sims) == pytest.approx([cosine(user, item) for item in items])


class SlowLoadingModel:
    """Stands in for a sentence-transformer whose first load is slow."""

    def __init__(self, name):
        time.sleep(0.5)

    def encode(self, texts, **kwargs):
        return np.array([[1.0, 0.0] if t in ("me", "four") else [0.0, 1.0] for t in texts])


def test_slow_model_load_is_not_a_timeout(monkeypatch):
    monkeypatch.setattr(encoder, "_model", None)
    monkeypatch.setattr(encoder, "SentenceTransformer", SlowLoadingModel)
    gateway = SentenceTransformerGateway(EmbeddingConfig(provider="sentence-transformers"))

    outcome = rerank("me", CANDIDATES, TEXTS, gateway, timeout=0.2)

    assert outcome.reranked
    assert outcome.fallback_reason is None
    assert _ids(outcome.order) == [4, 5, 3]
