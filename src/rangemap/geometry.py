"""Geometry helpers: bounds, buffering, validity repair, centroids, intersection."""

from __future__ import annotations

import math
from typing import Any, Iterable, Sequence

import shapely
from shapely.geometry import GeometryCollection, MultiPolygon, Polygon, box
from shapely.ops import unary_union

from .errors import InvalidGeometryError
from .models import Extent


def is_usable_geometry(geometry: Any) -> bool:
    if geometry is None:
        return False
    if hasattr(geometry, "is_empty") and bool(geometry.is_empty):
        return False
    return True


def bounding_box(geometry: Any) -> tuple[float, float, float, float]:
    """Return ``(xmin, ymin, xmax, ymax)`` or raise for empty/NaN bounds."""
    if not is_usable_geometry(geometry):
        raise InvalidGeometryError("Range geometry is empty", stage="extent")
    xmin, ymin, xmax, ymax = (float(value) for value in geometry.bounds)
    if any(math.isnan(value) for value in (xmin, ymin, xmax, ymax)):
        raise InvalidGeometryError("Range geometry has NaN bounds", stage="extent")
    return (xmin, ymin, xmax, ymax)


def buffer_bounds(
    bounds: tuple[float, float, float, float],
    distance: float,
) -> tuple[float, float, float, float]:
    xmin, ymin, xmax, ymax = bounds
    return (xmin - distance, ymin - distance, xmax + distance, ymax + distance)


def repair(geometry: Any) -> Any:
    """Return a valid copy of ``geometry``; valid inputs are returned as-is."""
    if not is_usable_geometry(geometry):
        return geometry
    if geometry.is_valid:
        return geometry
    return shapely.make_valid(geometry)


def polygonal_part(geometry: Any) -> Any:
    """Drop point/line debris that validity repair or clipping can leave behind."""
    polygons = explode_polygons(geometry)
    if not polygons:
        return Polygon()
    if len(polygons) == 1:
        return polygons[0]
    return MultiPolygon(polygons)


def explode_polygons(geometry: Any) -> list[Any]:
    if not is_usable_geometry(geometry):
        return []
    geom_type = getattr(geometry, "geom_type", "")
    if geom_type == "Polygon":
        return [geometry]
    if geom_type == "MultiPolygon":
        return [part for part in geometry.geoms if is_usable_geometry(part)]
    if geom_type == "GeometryCollection":
        out: list[Any] = []
        for part in geometry.geoms:
            out.extend(explode_polygons(part))
        return out
    return []


def merge_geometries(geometries: Iterable[Any]) -> Any:
    parts = [geometry for geometry in geometries if is_usable_geometry(geometry)]
    if not parts:
        return GeometryCollection()
    return unary_union(parts)


def extent_box(extent: Extent) -> Any:
    return box(extent.xmin, extent.ymin, extent.xmax, extent.ymax)


def clip_to_extent(geometry: Any, extent: Extent) -> Any:
    return shapely.clip_by_rect(geometry, extent.xmin, extent.ymin, extent.xmax, extent.ymax)


def centroid_xy(geometry: Any) -> tuple[float, float] | None:
    """Centroid coordinates, or ``None`` when the centroid is undefined."""
    if not is_usable_geometry(geometry):
        return None
    centroid = geometry.centroid
    if centroid.is_empty:
        return None
    x, y = float(centroid.x), float(centroid.y)
    if math.isnan(x) or math.isnan(y):
        return None
    return (x, y)


def intersects_any(geometry: Any, others: Sequence[Any]) -> bool:
    return any(bool(geometry.intersects(other)) for other in others if is_usable_geometry(other))
