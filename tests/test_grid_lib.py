import math

import pytest

from geogrid.grid_lib import (
    KM_PER_DEG_LAT,
    Coordinate,
    GridInputError,
    compute_grid,
    haversine_km,
    km_per_deg_lon,
    spacing_to_km,
)

CENTER = Coordinate(40.0, -74.0)


def test_center_cell_is_exactly_the_center():
    grid = compute_grid(CENTER, 13, 2.5)
    assert len(grid) == 13 and all(len(row) == 13 for row in grid)
    assert grid[6][6].coordinate == CENTER
    assert (grid[6][6].row, grid[6][6].col) == (6, 6)


def test_offsets_mirror_through_center():
    grid = compute_grid(CENTER, 13, 2.5)
    for i in range(13):
        for j in range(13):
            a = grid[i][j].coordinate
            b = grid[12 - i][12 - j].coordinate
            assert a.lat - CENTER.lat == pytest.approx(-(b.lat - CENTER.lat), abs=1e-12)
            assert a.lng - CENTER.lng == pytest.approx(-(b.lng - CENTER.lng), abs=1e-12)


def test_rows_go_north_and_columns_go_east():
    grid = compute_grid(CENTER, 3, 2.5)
    assert grid[2][1].coordinate.lat > grid[1][1].coordinate.lat > grid[0][1].coordinate.lat
    assert grid[1][2].coordinate.lng > grid[1][1].coordinate.lng > grid[1][0].coordinate.lng
    assert grid[1][2].coordinate.lat == grid[1][1].coordinate.lat


def test_step_sizes_follow_km_per_degree():
    grid = compute_grid(CENTER, 3, 2.5)
    assert grid[2][1].coordinate.lat - CENTER.lat == pytest.approx(2.5 / KM_PER_DEG_LAT)
    assert grid[1][2].coordinate.lng - CENTER.lng == pytest.approx(2.5 / km_per_deg_lon(40.0))


def test_formula_is_reproducible_bit_for_bit():
    a = compute_grid(CENTER, 13, 2.5)
    b = compute_grid(CENTER, 13, 2.5)
    assert [[p.coordinate for p in row] for row in a] == [[p.coordinate for p in row] for row in b]
    expected_lat = 40.0 + (0 - 6) * 2.5 / 110.574
    expected_lng = -74.0 + (12 - 6) * 2.5 / (111.32 * math.cos(40.0 * math.pi / 180))
    assert a[0][12].coordinate == Coordinate(expected_lat, expected_lng)


def test_adjacent_points_are_about_spacing_apart():
    grid = compute_grid(CENTER, 3, 2.5)
    assert haversine_km(grid[1][1].coordinate, grid[1][2].coordinate) == pytest.approx(2.5, rel=0.01)
    assert haversine_km(grid[1][1].coordinate, grid[2][1].coordinate) == pytest.approx(2.5, rel=0.01)


def test_even_size_has_no_exact_center():
    grid = compute_grid(CENTER, 4, 1.0)
    assert len(grid) == 4
    assert grid[2][2].coordinate == CENTER


def test_longitudes_wrap_at_the_antimeridian():
    grid = compute_grid(Coordinate(0.0, 179.99), 5, 5.0)
    for row in grid:
        for p in row:
            assert -180.0 <= p.coordinate.lng <= 180.0
    assert grid[2][4].coordinate.lng < 0


def test_miles_convert_to_km():
    assert spacing_to_km(1, "mi") == pytest.approx(1.60934)
    assert spacing_to_km(2.5) == 2.5


@pytest.mark.parametrize(
    "center,size,spacing",
    [
        (Coordinate(float("nan"), -74.0), 13, 2.5),
        (Coordinate(40.0, float("inf")), 13, 2.5),
        (Coordinate(95.0, -74.0), 13, 2.5),
        (Coordinate(40.0, -190.0), 13, 2.5),
        (Coordinate(90.0, 0.0), 13, 2.5),
        (CENTER, 0, 2.5),
        (CENTER, -3, 2.5),
        (CENTER, 2.5, 2.5),
        (CENTER, True, 2.5),
        (CENTER, 13, 0),
        (CENTER, 13, -1.0),
        (CENTER, 13, float("nan")),
        (Coordinate(89.9, 0.0), 13, 2.5),
        (Coordinate(-89.9, 0.0), 13, 2.5),
        (Coordinate(40.0, 0.0), 13, 1000.0),
    ],
)
def test_malformed_input_is_rejected(center, size, spacing):
    with pytest.raises(GridInputError):
        compute_grid(center, size, spacing)


@pytest.mark.parametrize("center", [Coordinate(89.0, 10.0), Coordinate(-89.0, 179.9), Coordinate(0.0, -180.0)])
def test_accepted_grids_keep_every_point_in_range(center):
    for row in compute_grid(center, 13, 2.5):
        for p in row:
            assert -90.0 <= p.coordinate.lat <= 90.0
            assert -180.0 <= p.coordinate.lng <= 180.0


@pytest.mark.parametrize("spacing,unit",[(1.0, "ft"), (0, "km"), (float("inf"), "mi")])
def test_bad_spacing_units_are_rejected(spacing, unit):
    with pytest.raises(GridInputError):
        spacing_to_km(spacing, unit)


def test_haversine_identity_and_symmetry():
    a = Coordinate(40.7128, -74.0060)
    b = Coordinate(39.9526, -75.1652)
    assert haversine_km(a, a) == 0
    assert haversine_km(a, b) == pytest.approx(haversine_km(b, a))


def test_haversine_reference_distances():
    # one degree of latitude along a meridian: 6371 * pi / 180
    assert haversine_km(Coordinate(40.0, -74.0), Coordinate(41.0, -74.0)) == pytest.approx(111.19, rel=0.01)
    # New York -> Philadelphia
    assert haversine_km(Coordinate(40.7128, -74.0060), Coordinate(39.9526, -75.1652)) == pytest.approx(129.6, rel=0.01)
