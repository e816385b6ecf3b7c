import pytest

from geogrid.grid_lib import Coordinate
from geogrid.models import BusinessInfo, GridMetrics, GridResult


def make_matrix(size, fill=0):
    return [[fill for _ in range(size)] for _ in range(size)]


@pytest.fixture
def business():
    return BusinessInfo(
        name="Joe's Car Wash",
        address="1 Main St, Springfield",
        location=Coordinate(40.0, -74.0),
        category="car_wash",
        place_id="ChIJ-joes",
    )


@pytest.fixture
def grid_result(business):
    data = make_matrix(5)
    data[2][2] = 1
    data[0][0] = 21
    data[4][4] = 12
    return GridResult(
        id="42",
        business_info=business,
        search_term="car wash",
        created_at="2024-05-01T15:30:00+00:00",
        grid_size="5",
        grid_data=data,
        metrics=GridMetrics(agr=12.34, atgr=3.456, solv="40%", visibility_percentage=60.0),
        google_region="us",
        distance_km=2.5,
    )
