# ================================
# FILE: geogrid/places_client.py
# PURPOSE: Google Places (nearby / text search, details, photo) with retry/backoff
# ================================

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from geogrid.grid_lib import Coordinate

logger = logging.getLogger(__name__)

PLACES_BASE = "https://maps.googleapis.com/maps/api/place"
DEFAULT_RADIUS_M = 5000
MAX_RADIUS_M = 50000
DEFAULT_DETAIL_FIELDS = "name,rating,reviews,formatted_address,geometry,types,user_ratings_total"

# Places status -> HTTP status surfaced to our callers
STATUS_HTTP = {
    "OVER_QUERY_LIMIT": 429,
    "REQUEST_DENIED": 403,
    "INVALID_REQUEST": 400,
    "UNKNOWN_ERROR": 500,
}
STATUS_MESSAGES = {
    "OVER_QUERY_LIMIT": "API query limit exceeded. Please try again later.",
    "REQUEST_DENIED": "API request was denied. Please check API key configuration.",
    "INVALID_REQUEST": "Invalid request parameters.",
    "UNKNOWN_ERROR": "Google Places API encountered an unknown error. Please try again.",
}


class PlacesApiError(Exception):
    def __init__(self, message: str, status: str = "ERROR", http_status: int = 500):
        super().__init__(message)
        self.status = status
        self.http_status = http_status

    @classmethod
    def from_status(cls, status: str, error_message: Optional[str] = None) -> "PlacesApiError":
        message = STATUS_MESSAGES.get(status, f"Google Places API error: {status}")
        if error_message:
            logger.error("Google Places API returned status %s: %s", status, error_message)
        return cls(message, status=status, http_status=STATUS_HTTP.get(status, 500))


# ---- HTTP session with retries/backoff ----
def _requests_session() -> requests.Session:
    s = requests.Session()
    retry = Retry(
        total=4,
        read=4,
        connect=3,
        backoff_factor=1.2,
        status_forcelist=[429, 500, 502, 503, 504],
        allowed_methods=frozenset(["GET"]),
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retry)
    s.mount("https://", adapter)
    s.mount("http://", adapter)
    return s


def valid_radius(radius: Any) -> int:
    """Radius in metres within (0, 50000]; anything else becomes 5000."""
    if isinstance(radius, bool) or not isinstance(radius, (int, float)):
        return DEFAULT_RADIUS_M
    if 0 < radius <= MAX_RADIUS_M:
        return int(radius)
    return DEFAULT_RADIUS_M


def summarize_place(place: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "name": place.get("name"),
        "place_id": place.get("place_id"),
        "rating": place.get("rating"),
        "user_ratings_total": place.get("user_ratings_total"),
        "vicinity": place.get("vicinity") or place.get("formatted_address"),
        "types": place.get("types") or [],
        "geometry": place.get("geometry"),
        "photos": place.get("photos") or [],
    }


class PlacesClient:
    def __init__(self, api_key: str, session: Optional[requests.Session] = None, timeout: float = 30):
        if not api_key:
            raise ValueError("A Google Places API key is required")
        self.api_key = api_key
        self.session = session or _requests_session()
        self.timeout = timeout

    def _get(self, endpoint: str, params: Dict[str, Any], **kwargs) -> requests.Response:
        url = f"{PLACES_BASE}/{endpoint}"
        try:
            return self.session.get(url, params={**params, "key": self.api_key}, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.error("Google Places API request failed: %s", e)
            raise PlacesApiError("Failed to connect to Google Places API", status="TRANSPORT", http_status=502) from e

    def _get_json(self, endpoint: str, params: Dict[str, Any]) -> Dict[str, Any]:
        r = self._get(endpoint, params)
        try:
            return r.json()
        except ValueError as e:
            raise PlacesApiError("Google Places API returned invalid JSON", status="BAD_RESPONSE",
                                 http_status=502) from e

    def _results(self, data: Dict[str, Any]) -> List[Dict[str, Any]]:
        status = data.get("status")
        if status == "ZERO_RESULTS":
            return []
        if status != "OK":
            raise PlacesApiError.from_status(status or "UNKNOWN_ERROR", data.get("error_message"))
        return [summarize_place(p) for p in data.get("results", []) or []]

    def nearby_search(self, query: Optional[str], location: Coordinate, radius_m: Any = DEFAULT_RADIUS_M,
                      place_type: Optional[str] = "establishment", rank_by: Optional[str] = None) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {"location": f"{location.lat},{location.lng}"}
        if rank_by == "distance":
            # Google rejects radius together with rankby=distance
            params["rankby"] = "distance"
        else:
            params["radius"] = valid_radius(radius_m)
        if query:
            params["keyword"] = query
        if place_type:
            params["type"] = place_type
        logger.info('Searching for "%s" at %s (%s)', query, params["location"],
                    "rankby=distance" if rank_by == "distance" else f"radius={params['radius']}m")
        return self._results(self._get_json("nearbysearch/json", params))

    def text_search(self, query: str, location: Optional[Coordinate] = None,
                    radius_m: Optional[int] = None) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {"query": query}
        if location is not None:
            params["location"] = f"{location.lat},{location.lng}"
            params["radius"] = valid_radius(radius_m)
        return self._results(self._get_json("textsearch/json", params))

    def place_details(self, place_id: str, fields: str = DEFAULT_DETAIL_FIELDS) -> Dict[str, Any]:
        if not place_id:
            raise PlacesApiError("Place ID is required", status="INVALID_REQUEST", http_status=400)
        data = self._get_json("details/json", {"place_id": place_id, "fields": fields})
        if data.get("status") != "OK":
            raise PlacesApiError(data.get("error_message") or "Failed to fetch place details",
                                 status=data.get("status") or "UNKNOWN_ERROR", http_status=400)
        return data

    def place_photo(self, reference: str, max_width: Any = 400, max_height: Any = 400) -> Tuple[bytes, str]:
        r = self._get("photo", {"photoreference": reference, "maxwidth": max_width, "maxheight": max_height})
        if not r.ok:
            logger.error("Error fetching photo: %s %s", r.status_code, r.reason)
            raise PlacesApiError("Failed to fetch photo", status="PHOTO_ERROR", http_status=r.status_code)
        return r.content, r.headers.get("content-type", "image/jpeg")
