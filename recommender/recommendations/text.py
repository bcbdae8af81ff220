"""Texts handed to the embedding model for the semantic rerank."""
from __future__ import annotations

from .models import MissionEntity, StoreEntity
from .tags import TagSet


def _join(*parts: str | None) -> str:
    return " ".join(p or "" for p in parts).strip()


def user_text(user_tags: TagSet) -> str:
    return user_tags.words


def store_text(store: StoreEntity) -> str:
    return _join(store.description, store.tag_set.words)


def mission_text(mission: MissionEntity, store: StoreEntity | None) -> str:
    """Title, description and the owning store's tags."""
    store_words = store.tag_set.words if store is not None else ""
    return _join(mission.title, mission.description, store_words)
