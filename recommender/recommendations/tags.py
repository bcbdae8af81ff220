"""Hashtag normalisation.

Tags arrive as free strings such as ``"#Spicy"`` or ``"quiet"``. Matching is
done on the canonical form (marker stripped, case-folded); anything shown to
a user keeps the ``#`` marker.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

TAG_MARKER = "#"


def canonical_tag(raw: str) -> str:
    """Return the comparison key for *raw*: marker-stripped and case-folded."""
    return raw.strip().lstrip(TAG_MARKER).strip().casefold()


def _tag_body(raw: str) -> str:
    return raw.strip().lstrip(TAG_MARKER).strip()


def display_tag(raw: str) -> str:
    body = _tag_body(raw)
    return f"{TAG_MARKER}{body}" if body else ""


@dataclass(frozen=True)
class TagSet:
    canonical: frozenset[str]
    display: tuple[str, ...]
    words: str

    def __len__(self) -> int:
        return len(self.canonical)

    def overlap(self, other: TagSet) -> int:
        return len(self.canonical & other.canonical)


EMPTY_TAG_SET = TagSet(canonical=frozenset(), display=(), words="")


def build_tag_set(raw_tags: Iterable[str] | None) -> TagSet:
    """Normalise a raw tag list.

    Blank tags are dropped and duplicates (by canonical form) keep their first
    occurrence, so ``display`` and ``words`` preserve the original relative
    order.
    """
    if not raw_tags:
        return EMPTY_TAG_SET

    seen: set[str] = set()
    bodies: list[str] = []
    for raw in raw_tags:
        if raw is None:
            continue
        key = canonical_tag(str(raw))
        if not key or key in seen:
            continue
        seen.add(key)
        bodies.append(_tag_body(str(raw)))

    return TagSet(
        canonical=frozenset(seen),
        display=tuple(f"{TAG_MARKER}{b}" for b in bodies),
        words=" ".join(bodies),
    )
