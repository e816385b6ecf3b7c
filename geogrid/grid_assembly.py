from __future__ import annotations

import logging
import math
from collections import Counter
from typing import Any, Dict, Iterable, List, Optional, Sequence

from geogrid.grid_lib import Coordinate, GridConfig, GridPoint, compute_grid, haversine_km
from geogrid.models import GridResult
from geogrid.ranking import TIER_ORDER, classify, has_rank

logger = logging.getLogger(__name__)

DEFAULT_GRID_SIZE = 13
DEFAULT_DISTANCE_KM = 2.5


def _rank_at(rank_matrix: Optional[Sequence[Sequence[Any]]], row: int, col: int) -> Optional[int]:
    if not rank_matrix or row >= len(rank_matrix):
        return None
    cells = rank_matrix[row]
    if not isinstance(cells, (list, tuple)) or col >= len(cells):
        return None
    return cells[col]


def build_grid(config: GridConfig, rank_matrix: Optional[Sequence[Sequence[int]]] = None,
               palette: Optional[Dict[str, str]] = None) -> List[GridPoint]:
    """Flattened row-major grid; cells with a nonzero rank carry rank + style."""
    points: List[GridPoint] = []
    for row in compute_grid(config.center, config.size, config.spacing_km):
        for point in row:
            rank = _rank_at(rank_matrix, point.row, point.col)
            if has_rank(rank):
                # raw value: fractional ranks raise rather than truncate
                point.style = classify(rank, palette)
                point.rank = int(rank)
            elif rank is not None:
                # keep the zero so CSV export writes it verbatim
                point.rank = rank
            points.append(point)
    return points


def _positive_or(value: Any, default, cast):
    try:
        parsed = cast(value)
    except (TypeError, ValueError, OverflowError):
        return default
    if isinstance(parsed, float) and not math.isfinite(parsed):
        return default
    return parsed if parsed > 0 else default


def grid_config_from_result(result: GridResult, default_size: int = DEFAULT_GRID_SIZE,
                            default_distance_km: float = DEFAULT_DISTANCE_KM) -> GridConfig:
    """Grid config for a stored result, falling back to defaults for unparsable size/distance."""
    size = _positive_or(result.grid_size, None, lambda v: int(float(v)))
    if size is None:
        logger.warning("Result %s has unusable grid_size %r; using %s", result.id, result.grid_size, default_size)
        size = default_size
    distance = _positive_or(result.distance_km, None, float)
    if distance is None:
        logger.warning("Result %s has unusable distance_km %r; using %s", result.id, result.distance_km,
                       default_distance_km)
        distance = default_distance_km
    return GridConfig(center=result.business_info.location, size=size, spacing_km=distance)


def build_result_grid(result: GridResult, palette: Optional[Dict[str, str]] = None) -> List[GridPoint]:
    return build_grid(grid_config_from_result(result), result.grid_data, palette)


def rendered_points(points: Iterable[GridPoint]) -> List[GridPoint]:
    return [p for p in points if p.is_rendered]


def center_point(points: Sequence[GridPoint], size: int) -> GridPoint:
    return points[(size // 2) * size + size // 2]


def nearest_point(points: Iterable[GridPoint], coordinate: Coordinate) -> Optional[GridPoint]:
    best, best_km = None, None
    for p in points:
        d = haversine_km(p.coordinate, coordinate)
        if best_km is None or d < best_km:
            best, best_km = p, d
    return best


def rank_summary(points: Iterable[GridPoint]) -> Dict[str, int]:
    """Count of rendered cells per tier, in tier order (zeros included)."""
    counts = Counter(p.style.tier for p in points if p.is_rendered)
    return {tier: counts.get(tier, 0) for tier in TIER_ORDER}
