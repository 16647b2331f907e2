"""GeoJSON helpers for ward boundaries and infrastructure geometry.

Coordinates are WGS84 longitude/latitude as in GeoJSON. Areas and distances
are geodesic (pyproj ``Geod``), centroids are planar in lon/lat which is close
enough for ward-sized shapes.
"""
import pyproj
from shapely.errors import ShapelyError
from shapely.geometry import shape

GEOMETRY_TYPES = ("Point", "LineString", "Polygon", "MultiPoint", "MultiLineString", "MultiPolygon")

_geod = pyproj.Geod(ellps="WGS84")


def shape_from_geojson(geometry):
    """Build a shapely geometry, raising ValueError for anything unusable."""
    if not isinstance(geometry, dict):
        raise ValueError("Geometry must be a GeoJSON object")
    if geometry.get("type") not in GEOMETRY_TYPES:
        raise ValueError("Invalid geometry type")
    try:
        geom = shape(geometry)
    except (ShapelyError, ValueError, TypeError, IndexError, AttributeError) as e:
        raise ValueError(f"Invalid geometry coordinates: {e}") from e
    if geom.is_empty:
        raise ValueError("Geometry cannot be empty")
    if not geom.is_valid:
        raise ValueError("Geometry is not valid")
    return geom


def area_km2(geometry):
    """Geodesic area in square kilometres; 0 for points and lines."""
    geom = shape_from_geojson(geometry)
    area_m2, _ = _geod.geometry_area_perimeter(geom)
    return abs(area_m2) / 1_000_000


def centroid(geometry):
    """(latitude, longitude) of the geometry centroid."""
    point = shape_from_geojson(geometry).centroid
    return point.y, point.x


def distance_km(lat1, lng1, lat2, lng2):
    _, _, meters = _geod.inv(lng1, lat1, lng2, lat2)
    return meters / 1000