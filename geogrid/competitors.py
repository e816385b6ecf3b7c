from __future__ import annotations

import re
from typing import Any, Dict, Iterable, List, Optional
from urllib.parse import urlencode

from geogrid.grid_lib import Coordinate, haversine_km
from geogrid.models import Competitor

MAX_COMPETITORS = 20
GENERIC_TYPES = {"establishment", "point_of_interest", "business"}
PHOTO_ROUTE = "/api/place-photo"
SORT_KEYS = ("name", "ranking", "distance_km", "rating", "user_ratings_total")


def primary_business_type(types: Optional[Iterable[str]]) -> Optional[str]:
    """First specific Google type, else the first type at all."""
    types = list(types or [])
    if not types:
        return None
    specific = [t for t in types if t not in GENERIC_TYPES]
    return specific[0] if specific else types[0]


def pretty_category(types: Optional[List[str]]) -> str:
    if not types:
        return "Business"
    return re.sub(r"\b\w", lambda m: m.group(0).upper(), types[0].replace("_", " "))


def photo_url(place: Dict[str, Any], size: int = 120) -> Optional[str]:
    photos = place.get("photos") or []
    ref = photos[0].get("photo_reference") if photos else None
    if not ref:
        return None
    return f"{PHOTO_ROUTE}?{urlencode({'reference': ref, 'maxwidth': size, 'maxheight': size})}"


def _place_location(place: Dict[str, Any]) -> Optional[Coordinate]:
    loc = ((place.get("geometry") or {}).get("location") or {})
    if loc.get("lat") is None or loc.get("lng") is None:
        return None
    return Coordinate(float(loc["lat"]), float(loc["lng"]))


def competitors_from_places(places: Iterable[Dict[str, Any]], origin: Coordinate,
                            limit: int = MAX_COMPETITORS) -> List[Competitor]:
    """Competitors in API result order (rank = position), with distance from origin."""
    out: List[Competitor] = []
    for index, place in enumerate(places):
        location = _place_location(place)
        distance = place.get("distance")
        if distance is None:
            distance = haversine_km(origin, location) if location else 0.0
        out.append(Competitor(
            id=place.get("place_id") or str(index),
            name=place.get("name") or "",
            ranking=index + 1,
            distance_km=float(distance),
            rating=place.get("rating") or None,
            address=place.get("vicinity") or "Address unavailable",
            user_ratings_total=int(place.get("user_ratings_total") or 0),
            location=location,
            category=pretty_category(place.get("types")),
            photo_url=photo_url(place),
            types=list(place.get("types") or []),
        ))
    out.sort(key=lambda c: c.ranking)
    return out[:limit]


def with_distances(competitors: Iterable[Competitor], origin: Coordinate) -> List[Competitor]:
    """Fill distance_km for stored competitors, which are saved without one."""
    out = []
    for c in competitors:
        if c.location is not None:
            c.distance_km = haversine_km(origin, c.location)
        out.append(c)
    return out


def sort_by_distance(competitors: Iterable[Competitor]) -> List[Competitor]:
    return sorted(competitors, key=lambda c: c.distance_km)


def sort_competitors(competitors: Iterable[Competitor], key: str = "name",
                     descending: bool = False) -> List[Competitor]:
    if key not in SORT_KEYS:
        raise ValueError(f"Cannot sort competitors by {key!r}")

    def _value(c: Competitor):
        v = getattr(c, key)
        if key == "rating":
            return v or 0
        if key == "name":
            return (v or "").lower()
        return v

    return sorted(competitors, key=_value, reverse=descending)


def filter_competitors(competitors: Iterable[Competitor], query: str) -> List[Competitor]:
    q = (query or "").strip().lower()
    return [c for c in competitors if q in c.name.lower()]
