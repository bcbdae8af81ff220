"""
Embedding gateway.

The recommendation pipeline needs exactly one thing from an embedding
provider: turn an ordered batch of texts into the same number of vectors, in
the same order. Any provider can fail or stall, so callers go through
``request_embeddings`` which bounds the wait and returns an explicit
``EmbeddingOk`` / ``EmbeddingErr`` instead of raising.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass
from functools import lru_cache
from typing import Protocol, Sequence, Union

import numpy as np
from openai import OpenAI

from .config import (
    DEFAULT_EMBEDDING_CONFIG,
    OPENAI,
    SENTENCE_TRANSFORMERS,
    EmbeddingConfig,
)
from .encoder import encode_batch, load_model

logger = logging.getLogger(__name__)

Vector = list[float]


class EmbeddingGateway(Protocol):
    def embed_all(self, texts: list[str]) -> list[Vector]:
        ...


class SentenceTransformerGateway:
    """Embeds locally with the configured sentence-transformer model."""

    def __init__(self, config: EmbeddingConfig = DEFAULT_EMBEDDING_CONFIG) -> None:
        self.config = config

    def warm_up(self) -> None:
        load_model(self.config)

    def embed_all(self, texts: list[str]) -> list[Vector]:
        if not texts:
            return []
        return encode_batch(texts, self.config).tolist()


class OpenAIGateway:
    """Embeds through the OpenAI embeddings endpoint (or a compatible server)."""

    def __init__(
        self,
        config: EmbeddingConfig = DEFAULT_EMBEDDING_CONFIG,
        client: OpenAI | None = None,
    ) -> None:
        self.config = config
        self._client = client

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            self._client = OpenAI(
                api_key=self.config.api_key,
                base_url=self.config.base_url,
                timeout=self.config.timeout,
                max_retries=0,
            )
        return self._client

    def embed_all(self, texts: list[str]) -> list[Vector]:
        if not texts:
            return []
        response = self.client.embeddings.create(
            model=self.config.openai_model,
            input=texts,
        )
        data = sorted(response.data, key=lambda d: d.index)
        return [list(d.embedding) for d in data]


# ---------------------------------------------------------------------------
# Call-site result
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EmbeddingOk:
    vectors: list[Vector]


@dataclass(frozen=True)
class EmbeddingErr:
    reason: str


EmbeddingResult = Union[EmbeddingOk, EmbeddingErr]

_executor = ThreadPoolExecutor(max_workers=8, thread_name_prefix="embeddings")


def _call(gateway: EmbeddingGateway, texts: list[str]) -> list[Vector]:
    return [[float(x) for x in vec] for vec in gateway.embed_all(texts)]


def request_embeddings(
    gateway: EmbeddingGateway,
    texts: Sequence[str],
    timeout: float = DEFAULT_EMBEDDING_CONFIG.timeout,
) -> EmbeddingResult:
    """Embed *texts* in a single gateway call, waiting at most *timeout* seconds.

    Never raises: provider errors become ``EmbeddingErr("error: ...")`` and an
    expired wait becomes ``EmbeddingErr("timeout")``. The gateway is not
    retried.

    A gateway exposing ``warm_up()`` is warmed before the clock starts, so a
    one-off model load is never counted against *timeout*.
    """
    batch = list(texts)
    if not batch:
        return EmbeddingOk(vectors=[])

    warm_up = getattr(gateway, "warm_up", None)
    if warm_up is not None:
        try:
            warm_up()
        except Exception as exc:
            return EmbeddingErr(reason=f"error: {type(exc).__name__}: {exc}")

    future = _executor.submit(_call, gateway, batch)
    done, _ = wait([future], timeout=timeout)
    if not done:
        future.cancel()
        return EmbeddingErr(reason="timeout")
    try:
        vectors = future.result()
    except Exception as exc:
        return EmbeddingErr(reason=f"error: {type(exc).__name__}: {exc}")
    return EmbeddingOk(vectors=vectors)


def cosine(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity in [-1, 1].

    Returns -1.0 when the vectors cannot be compared: different or empty
    dimensions, a zero norm, or non-finite components.
    """
    va = np.asarray(a, dtype=float)
    vb = np.asarray(b, dtype=float)
    if va.ndim != 1 or va.shape != vb.shape or va.size == 0:
        return -1.0
    if not (np.isfinite(va).all() and np.isfinite(vb).all()):
        return -1.0
    na = np.linalg.norm(va)
    nb = np.linalg.norm(vb)
    if na == 0 or nb == 0:
        return -1.0
    return float(np.clip(np.dot(va, vb) / (na * nb), -1.0, 1.0))


# ---------------------------------------------------------------------------
# Process-wide gateway
# ---------------------------------------------------------------------------


def build_gateway(config: EmbeddingConfig) -> EmbeddingGateway | None:
    """Return the gateway for *config*, or ``None`` when the semantic stage is off."""
    if not config.enabled:
        return None
    if config.provider == SENTENCE_TRANSFORMERS:
        return SentenceTransformerGateway(config)
    if config.provider == OPENAI:
        if not config.api_key:
            logger.warning("OPENAI_API_KEY is not set; semantic reranking disabled")
            return None
        return OpenAIGateway(config)
    raise ValueError(f"Unknown embedding provider: {config.provider!r}")


@lru_cache(maxsize=1)
def get_gateway() -> EmbeddingGateway | None:
    return build_gateway(DEFAULT_EMBEDDING_CONFIG)
