from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from recommender.analytics.store import clear_events
from recommender.app import app
from recommender.embeddings.gateway import get_gateway

client = TestClient(app)


class FailingGateway:
    def embed_all(self, texts):
        raise ConnectionError("embeddings endpoint unreachable")


class KeywordGateway:
    def __init__(self, keyword):
        self.keyword = keyword

    def embed_all(self, texts):
        return [[1.0, 0.0]] + [
            [1.0, 0.0] if self.keyword in t else [0.0, 1.0] for t in texts[1:]
        ]


def _use_gateway(gateway):
    app.dependency_overrides[get_gateway] = lambda: gateway


@pytest.fixture(autouse=True)
def _reset():
    clear_events()
    _use_gateway(None)
    yield
    app.dependency_overrides.clear()
    clear_events()


def test_health():
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_metadata():
    body = client.get("/metadata").json()
    assert body["stores"] == 8
    assert body["missions"] == 7
    assert "#spicy" in body["tags"]


def test_store_recommendations_deterministic_order():
    resp = client.get("/users/1/recommendations/stores")
    assert resp.status_code == 200
    body = resp.json()
    assert [r["id"] for r in body["recommendations"]] == [3, 1, 8, 2, 5]
    assert body["totalCandidates"] == 8
    assert body["reranked"] is False


def test_store_recommendations_response_shape():
    body = client.get("/users/1/recommendations/stores").json()
    first = body["recommendations"][0]
    assert set(first) == {"id", "name", "imageUrl", "tags"}
    assert first["name"] == "Red Pepper Grill"
    assert first["tags"] == ["#spicy", "#late-night"]


def test_store_recommendations_fallback_matches_deterministic_order():
    _use_gateway(FailingGateway())
    body = client.get("/users/1/recommendations/stores").json()
    assert [r["id"] for r in body["recommendations"]] == [3, 1, 8, 2, 5]
    assert body["reranked"] is False


def test_store_recommendations_reranked():
    _use_gateway(KeywordGateway("coffee"))
    body = client.get("/users/1/recommendations/stores").json()
    assert [r["id"] for r in body["recommendations"]] == [8, 2, 3, 1, 5]
    assert body["reranked"] is True


def test_store_recommendations_backfill_for_sparse_tags():
    body = client.get("/users/3/recommendations/stores").json()
    assert [r["id"] for r in body["recommendations"]] == [6, 3, 2, 8, 7]


def test_user_without_tags_is_rejected():
    resp = client.get("/users/2/recommendations/stores")
    assert resp.status_code == 400
    assert resp.json()["code"] == "USER_HASHTAG_EMPTY"


def test_unknown_user_is_not_found():
    resp = client.get("/users/999/recommendations/mission")
    assert resp.status_code == 404
    assert resp.json()["code"] == "USER_NOT_FOUND"


def test_mission_recommendation():
    resp = client.get("/users/1/recommendations/mission")
    assert resp.status_code == 200
    body = resp.json()
    assert body["recommendation"] == {
        "missionId": 1,
        "title": "Lunch visit",
        "reward": "Free cider",
        "storeName": "Dongbang Noodle House",
    }
    assert body["totalCandidates"] == 6


def test_mission_recommendation_reranked_head():
    _use_gateway(KeywordGateway("chapter"))
    body = client.get("/users/1/recommendations/mission").json()
    assert body["recommendation"]["missionId"] == 5
    assert body["reranked"] is True


def test_analytics_reports_fallbacks():
    _use_gateway(FailingGateway())
    client.get("/users/1/recommendations/stores")
    client.get("/users/1/recommendations/mission")
    client.get("/users/2/recommendations/mission")

    body = client.get("/analytics").json()

    assert body["total_recommendations"] == 2
    assert body["by_variant"] == {"store": 1, "mission": 1}
    assert body["semantic_stage"]["fallbacks"] == 2
    assert body["semantic_stage"]["fallback_rate"] == 100.0
    assert body["semantic_stage"]["fallback_reasons"] == {"error": 2}
    assert body["rejected"] == 1


def test_startup_warms_up_embedding_gateway():
    gateway = MagicMock()
    with patch("recommender.app.get_gateway", return_value=gateway):
        with TestClient(app) as started:
            assert started.get("/health").status_code == 200
    gateway.warm_up.assert_called_once_with()


def test_startup_survives_failed_warm_up():
    gateway = MagicMock()
    gateway.warm_up.side_effect = OSError("no network")
    with patch("recommender.app.get_gateway", return_value=gateway):
        with TestClient(app) as started:
            assert started.get("/health").status_code == 200
