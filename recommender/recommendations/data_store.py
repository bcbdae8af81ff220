from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pandas as pd

from .config import DEFAULT_CATALOG_CONFIG, CatalogConfig
from .exceptions import EntityNotFoundError, RecommendationErrorCode
from .models import MissionEntity, StoreEntity, UserProfile

logger = logging.getLogger(__name__)

_TABLES: dict[str, list[str]] = {
    "stores.csv": ["id", "name", "address", "description", "main_image_url"],
    "missions.csv": ["id", "store_id", "title", "description", "reward"],
    "hashtags.csv": ["id", "name"],
    "store_hashtags.csv": ["store_id", "hashtag_id"],
    "users.csv": ["id", "nickname"],
    "user_hashtags.csv": ["user_id", "hashtag_id"],
    "user_completed_missions.csv": ["user_id", "mission_id"],
}


@dataclass(frozen=True)
class Catalog:
    """Read-only snapshot of everything the recommender needs."""

    users: dict[int, UserProfile]
    stores: tuple[StoreEntity, ...]
    missions: tuple[MissionEntity, ...]

    def get_user(self, user_id: int) -> UserProfile:
        user = self.users.get(user_id)
        if user is None:
            raise EntityNotFoundError("User", user_id, RecommendationErrorCode.USER_NOT_FOUND)
        return user


def _text(value: Any) -> str:
    return "" if pd.isna(value) else str(value)


def _optional_int(value: Any) -> int | None:
    return None if pd.isna(value) else int(value)


def _read(data_dir: Path, name: str) -> pd.DataFrame:
    path = data_dir / name
    columns = _TABLES[name]
    if not path.exists():
        logger.warning("Catalog table %s missing; treating it as empty", path)
        return pd.DataFrame(columns=columns)
    return pd.read_csv(path, usecols=columns)


def _group_tags(
    links: pd.DataFrame, owner_col: str, tag_names: dict[int, str]
) -> dict[int, list[str]]:
    """Map owner id -> tag names, keeping the association table's row order."""
    grouped: dict[int, list[str]] = {}
    for owner_id, hashtag_id in links[[owner_col, "hashtag_id"]].itertuples(index=False):
        name = tag_names.get(int(hashtag_id))
        if name:
            grouped.setdefault(int(owner_id), []).append(name)
    return grouped


def load_catalog(data_dir: Path) -> Catalog:
    tables = {name: _read(data_dir, name) for name in _TABLES}

    hashtags = tables["hashtags.csv"]
    tag_names = {
        int(tid): _text(name)
        for tid, name in hashtags[["id", "name"]].itertuples(index=False)
    }
    store_tags = _group_tags(tables["store_hashtags.csv"], "store_id", tag_names)
    user_tags = _group_tags(tables["user_hashtags.csv"], "user_id", tag_names)

    completions = tables["user_completed_missions.csv"].drop_duplicates()
    completion_counts: dict[int, int] = {
        int(mid): int(n) for mid, n in completions.groupby("mission_id").size().items()
    }
    completed_by_user: dict[int, list[int]] = {}
    for uid, mid in completions[["user_id", "mission_id"]].itertuples(index=False):
        completed_by_user.setdefault(int(uid), []).append(int(mid))

    stores = tuple(
        StoreEntity(
            id=int(row.id),
            name=_text(row.name),
            address=_text(row.address),
            description=_text(row.description),
            main_image_url=_text(row.main_image_url) or None,
            tags=tuple(store_tags.get(int(row.id), [])),
        )
        for row in tables["stores.csv"].itertuples(index=False)
    )
    missions = tuple(
        MissionEntity(
            id=int(row.id),
            store_id=_optional_int(row.store_id),
            title=_text(row.title),
            description=_text(row.description),
            reward=_text(row.reward),
            completion_count=completion_counts.get(int(row.id), 0),
        )
        for row in tables["missions.csv"].itertuples(index=False)
    )
    users = {
        int(row.id): UserProfile(
            id=int(row.id),
            nickname=_text(row.nickname),
            tags=tuple(user_tags.get(int(row.id), [])),
            completed_mission_ids=tuple(completed_by_user.get(int(row.id), [])),
        )
        for row in tables["users.csv"].itertuples(index=False)
    }

    logger.info(
        "Loaded catalog from %s: %d stores, %d missions, %d users",
        data_dir, len(stores), len(missions), len(users),
    )
    return Catalog(users=users, stores=stores, missions=missions)


_catalog: Catalog | None = None
_catalog_lock = threading.Lock()


def get_catalog(config: CatalogConfig = DEFAULT_CATALOG_CONFIG) -> Catalog:
    """Return the in-memory catalog, loading it on first call."""
    global _catalog
    with _catalog_lock:
        if _catalog is None:
            _catalog = load_catalog(config.data_dir)
    return _catalog
