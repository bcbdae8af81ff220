from __future__ import annotations

from .models import (
    MissionEntity,
    MissionRecommendation,
    StoreEntity,
    StoreRecommendation,
)


def to_store_recommendation(store: StoreEntity) -> StoreRecommendation:
    return StoreRecommendation(
        id=store.id,
        name=store.name,
        image_url=store.main_image_url,
        tags=list(store.tag_set.display),
    )


def to_mission_recommendation(
    mission: MissionEntity, store: StoreEntity | None
) -> MissionRecommendation:
    return MissionRecommendation(
        mission_id=mission.id,
        title=mission.title,
        reward=mission.reward,
        store_name=store.name if store is not None else None,
    )
