from __future__ import annotations

import logging
import time
from typing import Any, Sequence

from ..analytics.store import record_event
from ..embeddings.config import DEFAULT_EMBEDDING_CONFIG
from ..embeddings.gateway import EmbeddingGateway
from .assembler import to_mission_recommendation, to_store_recommendation
from .config import DEFAULT_RECOMMENDATION_CONFIG, RecommendationConfig
from .exceptions import EntityNotFoundError, NoInterestTagsError, RecommendationErrorCode
from .models import (
    MissionEntity,
    MissionRecommendationResponse,
    StoreEntity,
    StoreRecommendationResponse,
    UserProfile,
)
from .rerank import RerankOutcome
from .rerank import rerank as semantic_rerank
from .scoring import count_store_engagements, score_missions, score_stores
from .selection import select_candidates
from .tags import TagSet
from .text import mission_text, store_text, user_text

logger = logging.getLogger(__name__)

STORE_VARIANT = "store"
MISSION_VARIANT = "mission"


def _require_tags(user: UserProfile, variant: str) -> TagSet:
    user_tags = user.tag_set
    if not user_tags:
        record_event("rejected", {"variant": variant, "user_id": user.id})
        raise NoInterestTagsError(user.id)
    return user_tags


def _record(
    variant: str,
    user: UserProfile,
    start_time: float,
    total_candidates: int,
    window: Sequence[Any],
    outcome: RerankOutcome,
    returned: int,
) -> None:
    elapsed_ms = round((time.time() - start_time) * 1000, 1)
    record_event("recommendation", {
        "variant": variant,
        "user_id": user.id,
        "total_candidates": total_candidates,
        "window_size": len(window),
        "results_returned": returned,
        "reranked": outcome.reranked,
        "fallback_reason": outcome.fallback_reason,
        "response_time_ms": elapsed_ms,
    })


def recommend_stores(
    user: UserProfile,
    stores: Sequence[StoreEntity],
    missions: Sequence[MissionEntity],
    gateway: EmbeddingGateway | None,
    config: RecommendationConfig = DEFAULT_RECOMMENDATION_CONFIG,
    timeout: float = DEFAULT_EMBEDDING_CONFIG.timeout,
) -> StoreRecommendationResponse:
    """Recommend up to ``config.window_size`` stores for *user*.

    *missions* is only used to turn the user's completed missions into
    per-store engagement counts.
    """
    start_time = time.time()
    user_tags = _require_tags(user, STORE_VARIANT)

    engagements = count_store_engagements(user.completed_mission_ids, missions)
    scored = score_stores(user_tags, engagements, stores)
    window = select_candidates(scored, config.window_size)

    outcome = semantic_rerank(
        user_text(user_tags),
        window,
        [store_text(s) for s in window],
        gateway,
        timeout=timeout,
    )

    response = StoreRecommendationResponse(
        recommendations=[to_store_recommendation(s) for s in outcome.order],
        total_candidates=len(stores),
        reranked=outcome.reranked,
    )
    _record(STORE_VARIANT, user, start_time, len(stores), window, outcome,
            len(response.recommendations))
    return response


def _eligible_missions(
    missions: Sequence[MissionEntity],
    stores_by_id: dict[int, StoreEntity],
) -> list[MissionEntity]:
    eligible: list[MissionEntity] = []
    for mission in missions:
        if mission.store_id is None:
            continue
        if mission.store_id not in stores_by_id:
            raise EntityNotFoundError(
                "Store", mission.store_id, RecommendationErrorCode.STORE_NOT_FOUND
            )
        eligible.append(mission)
    return eligible


def recommend_mission(
    user: UserProfile,
    missions: Sequence[MissionEntity],
    stores: Sequence[StoreEntity],
    gateway: EmbeddingGateway | None,
    config: RecommendationConfig = DEFAULT_RECOMMENDATION_CONFIG,
    timeout: float = DEFAULT_EMBEDDING_CONFIG.timeout,
) -> MissionRecommendationResponse:
    """Recommend a single mission: rank a window like the store variant, keep the head.

    Returns ``recommendation=None`` when there are no eligible missions.
    """
    start_time = time.time()
    user_tags = _require_tags(user, MISSION_VARIANT)

    stores_by_id = {s.id: s for s in stores}
    eligible = _eligible_missions(missions, stores_by_id)
    scored = score_missions(user_tags, eligible, stores_by_id)
    window = select_candidates(scored, config.window_size)

    outcome = semantic_rerank(
        user_text(user_tags),
        window,
        [mission_text(m, stores_by_id[m.store_id]) for m in window],
        gateway,
        timeout=timeout,
    )

    recommendation = None
    if outcome.order:
        head = outcome.order[0]
        recommendation = to_mission_recommendation(head, stores_by_id[head.store_id])
    else:
        logger.info("No mission to recommend for user %s", user.id)

    _record(MISSION_VARIANT, user, start_time, len(eligible), window, outcome,
            1 if recommendation else 0)
    return MissionRecommendationResponse(
        recommendation=recommendation,
        total_candidates=len(eligible),
        reranked=outcome.reranked,
    )
