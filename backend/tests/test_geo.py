import pytest

from floodwatch import geo

SQUARE = {
    "type": "Polygon",
    "coordinates": [[[105.80, 21.00], [105.82, 21.00], [105.82, 21.02], [105.80, 21.02], [105.80, 21.00]]],
}


def test_area_of_small_square():
    # about 2.08 km east-west by 2.21 km north-south at this latitude
    assert geo.area_km2(SQUARE) == pytest.approx(4.6, rel=0.05)


def test_area_of_point_is_zero():
    assert geo.area_km2({"type": "Point", "coordinates": [105.8, 21.0]}) == 0


def test_centroid_is_lat_lng():
    lat, lng = geo.centroid(SQUARE)
    assert lat == pytest.approx(21.01)
    assert lng == pytest.approx(105.81)


def test_distance_one_degree_latitude():
    assert geo.distance_km(21.0, 105.8, 22.0, 105.8) == pytest.approx(110.7, rel=0.01)


@pytest.mark.parametrize("geometry", [
    None,
    {"type": "Circle", "coordinates": [0, 0]},
    {"type": "Polygon", "coordinates": [[[0, 0], [1, 1], [1, 0], [0, 1], [0, 0]]]},
    {"type": "Point", "coordinates": []},
])
def test_unusable_geometry_raises_value_error(geometry):
    with pytest.raises(ValueError):
        geo.shape_from_geojson(geometry)
