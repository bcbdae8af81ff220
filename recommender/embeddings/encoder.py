from __future__ import annotations

import logging
import threading

import numpy as np
from sentence_transformers import SentenceTransformer

from .config import DEFAULT_EMBEDDING_CONFIG, EmbeddingConfig

logger = logging.getLogger(__name__)

_model: SentenceTransformer | None = None
_model_lock = threading.Lock()


def load_model(config: EmbeddingConfig = DEFAULT_EMBEDDING_CONFIG) -> SentenceTransformer:
    """Return the process-wide model, loading (and possibly downloading) it once."""
    global _model
    with _model_lock:
        if _model is None:
            logger.info("Loading sentence-transformer model %s", config.model_name)
            _model = SentenceTransformer(config.model_name)
            logger.info("Sentence-transformer model %s ready", config.model_name)
    return _model


def encode_batch(texts: list[str], config: EmbeddingConfig = DEFAULT_EMBEDDING_CONFIG) -> np.ndarray:
    """Encode a list of strings into a 2-D array of shape (N, dim)."""
    return load_model(config).encode(texts, show_progress_bar=False, batch_size=64)
