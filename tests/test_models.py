import math

from geogrid.models import BusinessInfo, GridMetrics, GridResult


def test_metrics_use_camel_case_keys():
    metrics = GridMetrics.from_dict({"agr": "4.5", "atgr": 2, "solv": 35, "visibilityPercentage": 80})
    assert metrics.agr == 4.5
    assert metrics.solv == "35"
    assert metrics.visibility_percentage == 80.0
    assert metrics.to_dict()["visibilityPercentage"] == 80.0
    assert GridMetrics.from_dict(None) == GridMetrics()


def test_grid_result_from_joined_row():
    result = GridResult.from_row({
        "id": 12,
        "search_term": "car wash",
        "created_at": "2024-05-01T15:30:00Z",
        "grid_size": 13,
        "grid_data": [[0, 1]],
        "metrics": {"agr": 1},
        "distance_km": "oops",
        "businesses": {"name": "Joe's", "lat": "40.5", "lng": -74, "place_id": ""},
    })
    assert result.id == "12"
    assert result.grid_size == "13"
    assert result.created_at == "2024-05-01T15:30:00+00:00"
    assert result.business_info.location.as_tuple() == (40.5, -74.0)
    assert result.business_info.place_id is None
    assert math.isnan(result.distance_km)


def test_grid_result_row_for_insert(grid_result):
    row = grid_result.to_row(business_id=3)
    assert row["business_id"] == 3
    assert row["grid_size"] == "5"
    assert row["metrics"]["solv"] == "40%"
    assert "id" not in row


def test_business_row():
    info = BusinessInfo(name="A", address="B", location=BusinessInfo.from_row({"lat": 1, "lng": 2}).location)
    assert info.to_row() == {"name": "A", "address": "B", "place_id": None, "lat": 1.0, "lng": 2.0,
                             "category": None}
