"""Structured scoring.

Every candidate gets two integer signals:

* ``k1`` – how many of the user's interest tags the candidate shares.
* ``k2`` – an engagement signal. For stores it is how many missions the user
  has completed at that store; for missions it is the mission's global
  completion count.
"""
from __future__ import annotations

from collections import Counter
from typing import Iterable, Mapping, Sequence

from .models import MissionEntity, ScoredCandidate, StoreEntity
from .tags import EMPTY_TAG_SET, TagSet


def count_store_engagements(
    completed_mission_ids: Iterable[int],
    missions: Iterable[MissionEntity],
) -> dict[int, int]:
    """Return ``store_id -> number of the user's completed missions there``.

    Unknown mission ids and missions without a store are ignored, and a
    mission completed twice is only counted once.
    """
    store_by_mission = {m.id: m.store_id for m in missions}
    counts: Counter[int] = Counter()
    for mission_id in set(completed_mission_ids):
        store_id = store_by_mission.get(mission_id)
        if store_id is not None:
            counts[store_id] += 1
    return dict(counts)


def score_stores(
    user_tags: TagSet,
    engagements: Mapping[int, int],
    stores: Sequence[StoreEntity],
) -> list[ScoredCandidate[StoreEntity]]:
    return [
        ScoredCandidate(
            entity=store,
            k1=user_tags.overlap(store.tag_set),
            k2=int(engagements.get(store.id, 0)),
        )
        for store in stores
    ]


def score_missions(
    user_tags: TagSet,
    missions: Sequence[MissionEntity],
    stores_by_id: Mapping[int, StoreEntity],
) -> list[ScoredCandidate[MissionEntity]]:
    """Score missions on their owning store's tags and their completion count."""
    scored: list[ScoredCandidate[MissionEntity]] = []
    for mission in missions:
        store = stores_by_id.get(mission.store_id) if mission.store_id is not None else None
        store_tags = store.tag_set if store is not None else EMPTY_TAG_SET
        scored.append(
            ScoredCandidate(
                entity=mission,
                k1=user_tags.overlap(store_tags),
                k2=mission.completion_count,
            )
        )
    return scored
