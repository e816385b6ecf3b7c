# ================================
# FILE: geogrid/models.py
# PURPOSE: GridResult / Competitor records and their Supabase row mapping
# ================================

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from geogrid.grid_lib import Coordinate


def _num(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _iso(value: Any) -> str:
    if isinstance(value, datetime):
        dt = value
    else:
        try:
            dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            return str(value or "")
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.isoformat()


@dataclass
class GridMetrics:
    """AGR / ATGR / SoLV and friends; computed upstream, never recomputed here."""
    agr: float = 0.0
    atgr: float = 0.0
    solv: str = "0"
    average_rank: float = 0.0
    visibility_percentage: float = 0.0
    top20_average_rank: float = 0.0

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "GridMetrics":
        data = data or {}
        return cls(
            agr=_num(data.get("agr")),
            atgr=_num(data.get("atgr")),
            solv=str(data.get("solv") if data.get("solv") is not None else "0"),
            average_rank=_num(data.get("averageRank")),
            visibility_percentage=_num(data.get("visibilityPercentage")),
            top20_average_rank=_num(data.get("top20AverageRank")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "agr": self.agr,
            "atgr": self.atgr,
            "solv": self.solv,
            "averageRank": self.average_rank,
            "visibilityPercentage": self.visibility_percentage,
            "top20AverageRank": self.top20_average_rank,
        }


@dataclass
class BusinessInfo:
    name: str
    address: str
    location: Coordinate
    category: Optional[str] = None
    place_id: Optional[str] = None

    def to_row(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "address": self.address,
            "place_id": self.place_id or None,
            "lat": self.location.lat,
            "lng": self.location.lng,
            "category": self.category or None,
        }

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "BusinessInfo":
        return cls(
            name=row.get("name") or "",
            address=row.get("address") or "",
            location=Coordinate(_num(row.get("lat")), _num(row.get("lng"))),
            category=row.get("category") or None,
            place_id=row.get("place_id") or None,
        )


@dataclass
class GridResult:
    business_info: BusinessInfo
    search_term: str
    created_at: str
    grid_size: str
    grid_data: List[List[int]]
    metrics: GridMetrics = field(default_factory=GridMetrics)
    google_region: str = ""
    distance_km: float = 2.5
    id: Optional[str] = None

    def to_row(self, business_id: Any) -> Dict[str, Any]:
        return {
            "business_id": business_id,
            "search_term": self.search_term,
            "created_at": _iso(self.created_at),
            "grid_size": self.grid_size,
            "grid_data": self.grid_data,
            "metrics": self.metrics.to_dict(),
            "google_region": self.google_region,
            "distance_km": self.distance_km,
        }

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "GridResult":
        """Build from a grid_results row joined with its businesses row."""
        grid_data = row.get("grid_data")
        return cls(
            id=str(row["id"]),
            business_info=BusinessInfo.from_row(row.get("businesses") or {}),
            search_term=row.get("search_term") or "",
            created_at=_iso(row.get("created_at")),
            grid_size=str(row.get("grid_size") or ""),
            grid_data=grid_data if isinstance(grid_data, list) else [],
            metrics=GridMetrics.from_dict(row.get("metrics")),
            google_region=row.get("google_region") or "",
            distance_km=_num(row.get("distance_km"), default=float("nan")),
        )


@dataclass
class Competitor:
    id: str
    name: str
    ranking: int
    distance_km: float
    rating: Optional[float] = None
    address: Optional[str] = None
    user_ratings_total: int = 0
    location: Optional[Coordinate] = None
    category: str = "Business"
    photo_url: Optional[str] = None
    types: List[str] = field(default_factory=list)

    def to_row(self, grid_result_id: str) -> Dict[str, Any]:
        return {
            "grid_result_id": grid_result_id,
            "name": self.name,
            "address": self.address or None,
            "rating": self.rating or None,
            "user_ratings_total": self.user_ratings_total or None,
            "types": self.types or [],
            "lat": self.location.lat if self.location else None,
            "lng": self.location.lng if self.location else None,
        }

    @classmethod
    def from_row(cls, row: Dict[str, Any], ranking: int = 0, distance_km: float = 0.0) -> "Competitor":
        location = None
        if row.get("lat") is not None and row.get("lng") is not None:
            location = Coordinate(_num(row["lat"]), _num(row["lng"]))
        return cls(
            id=str(row["id"]),
            name=row.get("name") or "",
            ranking=ranking,
            distance_km=distance_km,
            rating=row.get("rating"),
            address=row.get("address"),
            user_ratings_total=int(row.get("user_ratings_total") or 0),
            location=location,
            types=list(row.get("types") or []),
        )
