from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .tags import TagSet, build_tag_set

# ── Read-only snapshots supplied by the catalog ──────────────────────────


class _Snapshot(BaseModel):
    model_config = ConfigDict(frozen=True)


class UserProfile(_Snapshot):
    id: int
    nickname: str = ""
    tags: tuple[str, ...] = ()
    completed_mission_ids: tuple[int, ...] = ()

    @property
    def tag_set(self) -> TagSet:
        return build_tag_set(self.tags)


class StoreEntity(_Snapshot):
    id: int
    name: str
    address: str = ""
    description: str = ""
    main_image_url: str | None = None
    tags: tuple[str, ...] = ()

    @property
    def tag_set(self) -> TagSet:
        return build_tag_set(self.tags)


class MissionEntity(_Snapshot):
    id: int
    store_id: int | None = None
    title: str = ""
    description: str = ""
    reward: str = ""
    completion_count: int = Field(default=0, ge=0)


# ── Transient per-request records ────────────────────────────────────────

E = TypeVar("E", StoreEntity, MissionEntity)


@dataclass(frozen=True)
class ScoredCandidate(Generic[E]):
    entity: E
    k1: int
    k2: int

    @property
    def id(self) -> int:
        return self.entity.id


@dataclass(frozen=True)
class RankedCandidate(Generic[E]):
    entity: E
    similarity: float


# ── API responses ────────────────────────────────────────────────────────


class _Response(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StoreRecommendation(_Response):
    id: int
    name: str
    image_url: str | None
    tags: list[str]


class StoreRecommendationResponse(_Response):
    recommendations: list[StoreRecommendation]
    total_candidates: int
    reranked: bool


class MissionRecommendation(_Response):
    mission_id: int
    title: str
    reward: str
    store_name: str | None


class MissionRecommendationResponse(_Response):
    recommendation: MissionRecommendation | None
    total_candidates: int
    reranked: bool
