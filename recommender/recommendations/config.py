from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")

_DEFAULT_DATA_DIR = Path(__file__).resolve().parent.parent / "data"


@dataclass(frozen=True)
class RecommendationConfig:
    # Candidate window handed from structured scoring to the semantic stage.
    # The mission variant ranks the same window and keeps only its head.
    window_size: int = 5


@dataclass(frozen=True)
class CatalogConfig:
    data_dir: Path = Path(os.getenv("RECOMMENDER_DATA_DIR", str(_DEFAULT_DATA_DIR)))


DEFAULT_RECOMMENDATION_CONFIG = RecommendationConfig()
DEFAULT_CATALOG_CONFIG = CatalogConfig()
