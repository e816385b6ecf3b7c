from __future__ import annotations

import logging
from typing import Optional

from flask import Blueprint, Flask, Response, current_app, jsonify, redirect, request

from geogrid.grid_lib import Coordinate
from geogrid.places_client import PlacesApiError, PlacesClient

logger = logging.getLogger(__name__)

PLACEHOLDER_IMAGE = "https://via.placeholder.com/150?text=No+Image"

api = Blueprint("places_api", __name__, url_prefix="/api")


def _client() -> Optional[PlacesClient]:
    return current_app.extensions.get("places_client")


def _location_from(payload) -> Optional[Coordinate]:
    loc = payload.get("location")
    if not isinstance(loc, dict) or "lat" not in loc or "lng" not in loc:
        return None
    try:
        return Coordinate(float(loc["lat"]), float(loc["lng"]))
    except (TypeError, ValueError):
        return None


@api.route("/places-search", methods=["POST"])
def places_search():
    """Nearby search around {lat, lng}, trimmed to the fields the dashboard uses."""
    payload = request.get_json(silent=True) or {}
    client = _client()
    if client is None:
        logger.error("Missing Google Places API key in environment variables")
        return jsonify({"error": "API configuration error"}), 500

    location = _location_from(payload)
    if location is None:
        return jsonify({"error": "Invalid location format. Must provide {lat, lng} object"}), 400

    try:
        results = client.nearby_search(
            payload.get("query"),
            location,
            radius_m=payload.get("radius"),
            place_type=payload.get("type") or "establishment",
            rank_by=payload.get("rankBy"),
        )
    except PlacesApiError as e:
        return jsonify({"error": str(e)}), e.http_status
    return jsonify({"results": results})


@api.route("/place-details", methods=["POST"])
def place_details():
    payload = request.get_json(silent=True) or {}
    place_id = payload.get("placeId")
    if not place_id:
        return jsonify({"error": "Place ID is required"}), 400
    client = _client()
    if client is None:
        return jsonify({"error": "API configuration error"}), 500
    try:
        return jsonify(client.place_details(place_id))
    except PlacesApiError as e:
        return jsonify({"error": str(e)}), e.http_status


@api.route("/place-photo", methods=["GET"])
def place_photo():
    reference = request.args.get("reference")
    if not reference:
        return jsonify({"error": "Missing photo reference"}), 400
    client = _client()
    if client is None:
        return jsonify({"error": "Missing API key"}), 500
    try:
        data, content_type = client.place_photo(
            reference,
            max_width=request.args.get("maxwidth", "400"),
            max_height=request.args.get("maxheight", "400"),
        )
    except PlacesApiError:
        return redirect(PLACEHOLDER_IMAGE)
    return Response(data, headers={"Content-Type": content_type, "Cache-Control": "public, max-age=86400"})


def create_app(places_client: Optional[PlacesClient] = None) -> Flask:
    app = Flask(__name__)
    app.extensions["places_client"] = places_client
    app.register_blueprint(api)
    return app
