# Per-page paper thickness (inches) used for spine width.
# Vendors revise these; each table carries a version and its source so a
# cover can always be traced back to the numbers it was built with.

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

from kdp_press.errors import ConfigError


@dataclass(frozen=True)
class PaperTable:
    version: str
    source: str
    per_page_in: Dict[str, float] = field(default_factory=dict)

    def thickness(self, paper: str) -> float:
        if paper not in self.per_page_in:
            raise ConfigError(f"Unknown paper '{paper}'. Use one of {list(self.per_page_in.keys())}")
        return self.per_page_in[paper]


PAPER_TABLES: Dict[str, PaperTable] = {
    "kdp-2023": PaperTable(
        version="kdp-2023",
        source="KDP paperback cover calculator (community transcription)",
        per_page_in={
            "white": 0.002252,
            "cream": 0.0025,
            "color": 0.002347,
            "color_standard": 0.002252,
        },
    ),
}

DEFAULT_PAPER_TABLE = "kdp-2023"


def get_paper_table(version: Optional[str] = None) -> PaperTable:
    version = version or DEFAULT_PAPER_TABLE
    if version not in PAPER_TABLES:
        raise ConfigError(f"Unknown paper table '{version}'. Available: {list(PAPER_TABLES.keys())}")
    return PAPER_TABLES[version]


def load_paper_table(path: str) -> PaperTable:
    """
    Load a paper table from JSON.

    Expected shape: {"version": "...", "source": "...", "per_page_in": {"white": 0.002252, ...}}
    """
    try:
        data = json.loads(Path(path).read_text())
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Could not read paper table {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Paper table {path} must be a JSON object")
    version = data.get("version")
    per_page = data.get("per_page_in") or {}
    if not version or not per_page:
        raise ConfigError(f"Paper table {path} needs 'version' and 'per_page_in'")
    for paper, value in per_page.items():
        if not isinstance(value, (int, float)) or value <= 0:
            raise ConfigError(f"Paper '{paper}' thickness must be a positive number, got {value!r}")

    return PaperTable(
        version=str(version),
        source=str(data.get("source", path)),
        per_page_in={k: float(v) for k, v in per_page.items()},
    )
