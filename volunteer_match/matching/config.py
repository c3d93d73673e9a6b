from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

_DEFAULT_DATA_DIR = Path(__file__).resolve().parent.parent / "data"


@dataclass(frozen=True)
class MatchingConfig:
    category: str = "ong_volunteering"
    max_results: int = 5
    data_dir: Path = Path(os.getenv("MATCHING_DATA_DIR", str(_DEFAULT_DATA_DIR)))


DEFAULT_MATCHING_CONFIG = MatchingConfig()
