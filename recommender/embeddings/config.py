from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")

SENTENCE_TRANSFORMERS = "sentence-transformers"
OPENAI = "openai"
DISABLED = "none"


@dataclass(frozen=True)
class EmbeddingConfig:
    provider: str = os.getenv("EMBEDDING_PROVIDER", SENTENCE_TRANSFORMERS)
    model_name: str = os.getenv("EMBEDDING_MODEL", "all-MiniLM-L6-v2")
    openai_model: str = os.getenv("OPENAI_EMBEDDING_MODEL", "text-embedding-3-small")
    api_key: str = os.getenv("OPENAI_API_KEY", "")
    base_url: str | None = os.getenv("OPENAI_BASE_URL") or None
    timeout: float = float(os.getenv("EMBEDDING_TIMEOUT", "5.0"))

    @property
    def enabled(self) -> bool:
        return self.provider != DISABLED


DEFAULT_EMBEDDING_CONFIG = EmbeddingConfig()
