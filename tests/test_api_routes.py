from unittest.mock import MagicMock

import pytest

from geogrid.api_routes import PLACEHOLDER_IMAGE, create_app
from geogrid.places_client import PlacesApiError


@pytest.fixture
def places():
    return MagicMock()


@pytest.fixture
def client(places):
    app = create_app(places)
    app.testing = True
    return app.test_client()


def test_places_search_forwards_to_nearby_search(client, places):
    places.nearby_search.return_value = [{"name": "A", "place_id": "p1"}]
    resp = client.post("/api/places-search", json={
        "query": "car wash", "location": {"lat": 40.0, "lng": -74.0}, "radius": 1500,
    })
    assert resp.status_code == 200
    assert resp.get_json() == {"results": [{"name": "A", "place_id": "p1"}]}
    args, kwargs = places.nearby_search.call_args
    assert args[0] == "car wash"
    assert args[1].as_tuple() == (40.0, -74.0)
    assert kwargs["radius_m"] == 1500
    assert kwargs["place_type"] == "establishment"


@pytest.mark.parametrize("payload", [{}, {"location": "40,-74"}, {"location": {"lat": 40.0}},
                                     {"location": {"lat": "north", "lng": 1}}])
def test_places_search_rejects_bad_location(client, payload):
    resp = client.post("/api/places-search", json=payload)
    assert resp.status_code == 400
    assert "Invalid location" in resp.get_json()["error"]


def test_places_search_maps_api_errors(client, places):
    places.nearby_search.side_effect = PlacesApiError("quota", status="OVER_QUERY_LIMIT", http_status=429)
    resp = client.post("/api/places-search", json={"location": {"lat": 1, "lng": 2}})
    assert resp.status_code == 429
    assert resp.get_json() == {"error": "quota"}


def test_missing_key_is_configuration_error():
    client = create_app(None).test_client()
    resp = client.post("/api/places-search", json={"location": {"lat": 1, "lng": 2}})
    assert resp.status_code == 500
    assert resp.get_json() == {"error": "API configuration error"}


def test_place_details(client, places):
    places.place_details.return_value = {"status": "OK", "result": {"types": ["car_wash"]}}
    resp = client.post("/api/place-details", json={"placeId": "p1"})
    assert resp.status_code == 200
    assert resp.get_json()["result"]["types"] == ["car_wash"]
    places.place_details.assert_called_once_with("p1")


def test_place_details_requires_id(client):
    resp = client.post("/api/place-details", json={})
    assert resp.status_code == 400


def test_place_photo_streams_with_cache_header(client, places):
    places.place_photo.return_value = (b"\xff\xd8jpeg", "image/jpeg")
    resp = client.get("/api/place-photo?reference=abc&maxwidth=120&maxheight=120")
    assert resp.status_code == 200
    assert resp.data == b"\xff\xd8jpeg"
    assert resp.headers["Content-Type"] == "image/jpeg"
    assert resp.headers["Cache-Control"] == "public, max-age=86400"
    places.place_photo.assert_called_once_with("abc", max_width="120", max_height="120")


def test_place_photo_requires_reference(client):
    assert client.get("/api/place-photo").status_code == 400


def test_place_photo_falls_back_to_placeholder(client, places):
    places.place_photo.side_effect = PlacesApiError("gone", http_status=404)
    resp = client.get("/api/place-photo?reference=abc")
    assert resp.status_code == 302
    assert resp.headers["Location"] == PLACEHOLDER_IMAGE
