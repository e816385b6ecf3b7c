from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional

if TYPE_CHECKING:
    from geogrid.ranking import RankingStyle

# -----------------------------
# Data classes & constants
# -----------------------------

KM_PER_DEG_LAT = 110.574
KM_PER_DEG_LON_EQUATOR = 111.32
KM_PER_MILE = 1.60934
EARTH_RADIUS_KM = 6371.0

UNITS = ("km", "mi")


class GridInputError(ValueError):
    """Raised for malformed grid input (bad coordinates, size, spacing or unit)."""


@dataclass(frozen=True)
class Coordinate:
    lat: float
    lng: float

    def as_tuple(self) -> tuple[float, float]:
        return (self.lat, self.lng)


@dataclass(frozen=True)
class GridConfig:
    center: Coordinate
    size: int
    spacing_km: float

    @property
    def offset(self) -> int:
        return self.size // 2


@dataclass
class GridPoint:
    row: int
    col: int
    coordinate: Coordinate
    rank: Optional[int] = None
    style: Optional["RankingStyle"] = None

    @property
    def is_rendered(self) -> bool:
        return self.style is not None


# -----------------------------
# Validation
# -----------------------------

def _finite(value) -> bool:
    try:
        return math.isfinite(float(value))
    except (TypeError, ValueError):
        return False


def validate_coordinate(coord: Coordinate, *, allow_poles: bool = True) -> Coordinate:
    if not (_finite(coord.lat) and _finite(coord.lng)):
        raise GridInputError(f"Coordinate must be finite, got ({coord.lat}, {coord.lng})")
    if not -90.0 <= coord.lat <= 90.0:
        raise GridInputError(f"Latitude {coord.lat} outside [-90, 90]")
    if not -180.0 <= coord.lng <= 180.0:
        raise GridInputError(f"Longitude {coord.lng} outside [-180, 180]")
    if not allow_poles and abs(coord.lat) == 90.0:
        raise GridInputError("Longitude spacing is undefined at the poles")
    return coord


def validate_grid_args(center: Coordinate, size: int, spacing_km: float) -> None:
    validate_coordinate(center, allow_poles=False)
    if isinstance(size, bool) or not isinstance(size, int):
        raise GridInputError(f"Grid size must be an integer, got {size!r}")
    if size <= 0:
        raise GridInputError(f"Grid size must be positive, got {size}")
    if not _finite(spacing_km) or spacing_km <= 0:
        raise GridInputError(f"Spacing must be a positive finite number, got {spacing_km!r}")

    # every point must stay a valid coordinate; lng gets one wrap at most
    offset = size // 2
    lat_span = offset * spacing_km / KM_PER_DEG_LAT
    if abs(center.lat) + lat_span > 90.0:
        raise GridInputError(
            f"A {size}x{size} grid at {spacing_km} km spacing reaches past the pole from lat {center.lat}"
        )
    if offset * spacing_km / km_per_deg_lon(center.lat) >= 180.0:
        raise GridInputError(f"A {size}x{size} grid at {spacing_km} km spacing wraps the whole globe")


# -----------------------------
# Geometry
# -----------------------------

def spacing_to_km(spacing: float, unit: str = "km") -> float:
    """Convert a grid spacing to kilometres, the unit compute_grid expects."""
    if unit not in UNITS:
        raise GridInputError(f"Unknown spacing unit {unit!r}; expected one of {UNITS}")
    if not _finite(spacing) or spacing <= 0:
        raise GridInputError(f"Spacing must be a positive finite number, got {spacing!r}")
    return float(spacing) * KM_PER_MILE if unit == "mi" else float(spacing)


def km_per_deg_lon(lat_deg: float) -> float:
    return KM_PER_DEG_LON_EQUATOR * math.cos(lat_deg * math.pi / 180)


def _wrap_lng(lng: float) -> float:
    # only touches values that left [-180, 180]; in-range values keep their bits
    if lng > 180.0:
        return lng - 360.0
    if lng < -180.0:
        return lng + 360.0
    return lng


def compute_grid(center: Coordinate, size: int, spacing_km: float) -> List[List[GridPoint]]:
    """Lay out a size x size matrix of points spaced spacing_km apart around center.

    Row i / column j sits (i - size//2) steps north and (j - size//2) steps east
    of the center, so for odd sizes the middle cell is the center itself.
    """
    validate_grid_args(center, size, spacing_km)
    offset = size // 2
    lon_km = km_per_deg_lon(center.lat)

    grid: List[List[GridPoint]] = []
    for i in range(size):
        lat = center.lat + (i - offset) * spacing_km / KM_PER_DEG_LAT
        row: List[GridPoint] = []
        for j in range(size):
            lng = center.lng + (j - offset) * spacing_km / lon_km
            row.append(GridPoint(row=i, col=j, coordinate=Coordinate(lat, _wrap_lng(lng))))
        grid.append(row)
    return grid


def haversine_km(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance in km (R = 6371)."""
    lat1, lat2 = math.radians(a.lat), math.radians(b.lat)
    dlat = math.radians(b.lat - a.lat)
    dlng = math.radians(b.lng - a.lng)
    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlng / 2) ** 2
    h = min(1.0, h)
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
