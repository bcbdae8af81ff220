from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from .analytics.aggregator import compute_analytics
from .analytics.store import get_events
from .embeddings.gateway import EmbeddingGateway, get_gateway
from .recommendations.data_store import Catalog, get_catalog
from .recommendations.exceptions import RecommendationError
from .recommendations.models import (
    MissionRecommendationResponse,
    StoreRecommendationResponse,
)
from .recommendations.retrieval import recommend_mission, recommend_stores

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Load the local model before serving so the first requests do not spend
    # their embedding timeout on it.
    gateway = get_gateway()
    warm_up = getattr(gateway, "warm_up", None)
    if warm_up is not None:
        try:
            warm_up()
        except Exception:
            logger.exception("Embedding warm-up failed; it will be retried on the next request")
    yield


app = FastAPI(
    title="Store & Mission Recommendation API",
    version="1.0.0",
    lifespan=lifespan,
)


def catalog() -> Catalog:
    return get_catalog()


@app.exception_handler(RecommendationError)
def recommendation_error_handler(request: Request, exc: RecommendationError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code.value},
    )


# ── Public endpoints ─────────────────────────────────────────────────────


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/metadata")
def metadata(snapshot: Catalog = Depends(catalog)) -> dict:
    tags: set[str] = set()
    for store in snapshot.stores:
        tags.update(store.tag_set.display)
    return {
        "stores": len(snapshot.stores),
        "missions": len(snapshot.missions),
        "users": len(snapshot.users),
        "tags": sorted(tags),
    }


# ── Recommendations ──────────────────────────────────────────────────────


@app.get(
    "/users/{user_id}/recommendations/stores",
    response_model=StoreRecommendationResponse,
)
def store_recommendations(
    user_id: int,
    snapshot: Catalog = Depends(catalog),
    gateway: EmbeddingGateway | None = Depends(get_gateway),
) -> StoreRecommendationResponse:
    user = snapshot.get_user(user_id)
    return recommend_stores(user, snapshot.stores, snapshot.missions, gateway)


@app.get(
    "/users/{user_id}/recommendations/mission",
    response_model=MissionRecommendationResponse,
)
def mission_recommendation(
    user_id: int,
    snapshot: Catalog = Depends(catalog),
    gateway: EmbeddingGateway | None = Depends(get_gateway),
) -> MissionRecommendationResponse:
    user = snapshot.get_user(user_id)
    return recommend_mission(user, snapshot.missions, snapshot.stores, gateway)


# ── Observability ────────────────────────────────────────────────────────


@app.get("/analytics")
def analytics() -> dict:
    return compute_analytics(get_events())
