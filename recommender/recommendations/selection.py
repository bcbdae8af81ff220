from __future__ import annotations

from typing import Sequence

from .models import E, ScoredCandidate


def _by_tags_then_engagement(sc: ScoredCandidate) -> tuple[int, int, int]:
    return (-sc.k1, -sc.k2, -sc.id)


def _by_engagement(sc: ScoredCandidate) -> tuple[int, int]:
    return (-sc.k2, -sc.id)


def _by_id(sc: ScoredCandidate) -> int:
    return -sc.id


def select_candidates(scored: Sequence[ScoredCandidate[E]], k: int) -> list[E]:
    """Pick up to *k* candidates in a total, deterministic order.

    1. Tag matches (``k1 > 0``) by ``(k1, k2, id)`` descending.
    2. Backfill with engaged-but-untagged candidates (``k1 == 0, k2 > 0``)
       by ``(k2, id)`` descending.
    3. Backfill with everything else by ``id`` descending.

    The returned order doubles as the fallback order when semantic
    reranking is unavailable.
    """
    if k <= 0 or not scored:
        return []

    picked: list[ScoredCandidate[E]] = sorted(
        (sc for sc in scored if sc.k1 > 0), key=_by_tags_then_engagement
    )[:k]
    taken = {sc.id for sc in picked}

    passes = (
        (lambda sc: sc.k1 == 0 and sc.k2 > 0, _by_engagement),
        (lambda sc: True, _by_id),
    )
    for accept, order in passes:
        if len(picked) >= k:
            break
        remaining = sorted(
            (sc for sc in scored if sc.id not in taken and accept(sc)), key=order
        )
        for sc in remaining[: k - len(picked)]:
            picked.append(sc)
            taken.add(sc.id)

    return [sc.entity for sc in picked]
