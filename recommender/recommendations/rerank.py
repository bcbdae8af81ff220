from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Generic, Sequence

import numpy as np
from sklearn.metrics.pairwise import cosine_similarity

from ..embeddings.config import DEFAULT_EMBEDDING_CONFIG
from ..embeddings.gateway import (
    EmbeddingErr,
    EmbeddingGateway,
    Vector,
    request_embeddings,
)
from .models import E, RankedCandidate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RerankOutcome(Generic[E]):
    order: list[E]
    reranked: bool
    fallback_reason: str | None = None
    ranked: list[RankedCandidate[E]] = field(default_factory=list)


def _fallback(candidates: Sequence[E], reason: str) -> RerankOutcome[E]:
    logger.warning("[Embeddings] fallback to deterministic order: %s", reason)
    return RerankOutcome(order=list(candidates), reranked=False, fallback_reason=reason)


def _malformed(vectors: list[Vector]) -> str | None:
    dims = {len(v) for v in vectors}
    if len(dims) != 1:
        return f"inconsistent dimensions: {sorted(dims)}"
    if 0 in dims:
        return "empty vectors"
    if not np.isfinite(np.asarray(vectors, dtype=float)).all():
        return "non-finite values"
    return None


def _similarities(vectors: list[Vector]) -> np.ndarray:
    matrix = np.asarray(vectors, dtype=float)
    user, items = matrix[:1], matrix[1:]
    sims = cosine_similarity(user, items).ravel()
    # cosine_similarity scores zero vectors as 0.0; they are incomparable here.
    if np.linalg.norm(user) == 0:
        sims[:] = -1.0
    sims[np.linalg.norm(items, axis=1) == 0] = -1.0
    return np.clip(sims, -1.0, 1.0)


def rerank(
    user_text: str,
    candidates: Sequence[E],
    candidate_texts: Sequence[str],
    gateway: EmbeddingGateway | None,
    timeout: float = DEFAULT_EMBEDDING_CONFIG.timeout,
) -> RerankOutcome[E]:
    """Reorder *candidates* by embedding similarity to the user's text.

    One batch ``[user_text, *candidate_texts]`` is embedded. If the gateway is
    disabled, fails, times out, returns the wrong number of vectors or
    malformed ones, the input order is returned unchanged with the reason.
    Equal similarities keep their input order.
    """
    if len(candidates) != len(candidate_texts):
        raise ValueError("candidates and candidate_texts must be the same length")
    if not candidates:
        return RerankOutcome(order=[], reranked=False)
    if gateway is None:
        return _fallback(candidates, "disabled")

    inputs = [user_text, *candidate_texts]
    result = request_embeddings(gateway, inputs, timeout=timeout)
    if isinstance(result, EmbeddingErr):
        return _fallback(candidates, result.reason)

    vectors = result.vectors
    if len(vectors) != len(inputs):
        return _fallback(
            candidates, f"size mismatch: expected={len(inputs)}, got={len(vectors)}"
        )
    problem = _malformed(vectors)
    if problem:
        return _fallback(candidates, f"malformed embeddings: {problem}")

    sims = _similarities(vectors)
    ranked = sorted(
        (RankedCandidate(entity=c, similarity=float(s)) for c, s in zip(candidates, sims)),
        key=lambda r: -r.similarity,
    )
    logger.debug(
        "Reranked %d candidates: %s",
        len(ranked),
        [(r.entity.id, round(r.similarity, 4)) for r in ranked],
    )
    return RerankOutcome(
        order=[r.entity for r in ranked],
        reranked=True,
        ranked=ranked,
    )
