# ================================
# FILE: geogrid/ranking.py
# PURPOSE:
# - Map a local-search rank to a marker style (color, label, stacking order)
# - Palettes are plain config; dashboard and map variants ship side by side
# ================================

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

from geogrid.grid_lib import GridInputError

NO_DATA = 0
MAX_LISTED_RANK = 20
NOT_FOUND_LABEL = "20+"

# (upper bound inclusive, tier name)
TIER_BOUNDS = (
    (3, "top"),
    (7, "good"),
    (10, "average"),
    (15, "below_average"),
    (20, "poor"),
)
NOT_FOUND_TIER = "not_found"
TIER_ORDER = tuple(name for _, name in TIER_BOUNDS) + (NOT_FOUND_TIER,)

DASHBOARD_PALETTE: Dict[str, str] = {
    "top": "#059669",
    "good": "#10b981",
    "average": "#f59e0b",
    "below_average": "#f97316",
    "poor": "#ef4444",
    "not_found": "#9E9E9E",
}

MAP_PALETTE: Dict[str, str] = {
    "top": "#4CAF50",
    "good": "#8BC34A",
    "average": "#FFC107",
    "below_average": "#FF9800",
    "poor": "#F44336",
    "not_found": "#9E9E9E",
}

PALETTES: Dict[str, Dict[str, str]] = {"dashboard": DASHBOARD_PALETTE, "map": MAP_PALETTE}
DEFAULT_PALETTE = DASHBOARD_PALETTE

TIER_LABELS = {
    "top": "Top 3",
    "good": "4-7",
    "average": "8-10",
    "below_average": "11-15",
    "poor": "16-20",
    "not_found": "20+",
}


@dataclass(frozen=True)
class RankingStyle:
    color: str
    label: str
    z_order: int
    tier: str


def has_rank(rank: Optional[int]) -> bool:
    """False for the no-data sentinel (None or 0)."""
    return rank is not None and rank != NO_DATA


def tier_for(rank: int) -> str:
    for upper, name in TIER_BOUNDS:
        if rank <= upper:
            return name
    return NOT_FOUND_TIER


def z_order(rank: int) -> int:
    # better rank stacks on top; everything past 20 shares the bottom slot
    return 30 - min(rank, MAX_LISTED_RANK + 1)


def rank_label(rank: int) -> str:
    return str(rank) if rank <= MAX_LISTED_RANK else NOT_FOUND_LABEL


def get_palette(name: str) -> Dict[str, str]:
    try:
        return PALETTES[name]
    except KeyError:
        raise ValueError(f"Unknown palette {name!r}; expected one of {sorted(PALETTES)}") from None


def classify(rank: Optional[int], palette: Optional[Dict[str, str]] = None) -> Optional[RankingStyle]:
    """Style for a rank, or None when the cell has no ranking data."""
    if not has_rank(rank):
        return None
    if isinstance(rank, bool) or int(rank) != rank:
        raise GridInputError(f"Rank must be an integer, got {rank!r}")
    rank = int(rank)
    if rank < 0:
        raise GridInputError(f"Rank must not be negative, got {rank}")
    palette = palette or DEFAULT_PALETTE
    tier = tier_for(rank)
    return RankingStyle(color=palette[tier], label=rank_label(rank), z_order=z_order(rank), tier=tier)
