"""Geographic utilities: distances and screen projections.

A `Projection` pairs a pyproj transformer (lon/lat to a projected plane on the
unit sphere) with the scale and translation into screen pixels (y grows
downwards). Boundary geometry is handled as shapely shapes built from GeoJSON.
"""

from __future__ import annotations

import math
from typing import Iterator, Optional

import numpy as np
import pyproj
from shapely.geometry import GeometryCollection, shape
from shapely.geometry.base import BaseGeometry
from shapely.ops import transform

EARTH_RADIUS_KM = 6371.0

WGS84 = pyproj.CRS("EPSG:4326")

# Unit-sphere PROJ definitions; projected units are radians of arc
NATURAL_EARTH = "+proj=natearth +R=1"
MERCATOR = "+proj=merc +R=1"
MERCATOR_MAX_LAT = 85.05112878

Point = tuple[float, float]
Bounds = tuple[Point, Point]


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points on Earth in kilometers.

    Uses the Haversine formula. Inputs are WGS84 decimal degrees.
    """
    rlat1, rlon1 = math.radians(lat1), math.radians(lon1)
    rlat2, rlon2 = math.radians(lat2), math.radians(lon2)

    dlat = rlat2 - rlat1
    dlon = rlon2 - rlon1

    a = math.sin(dlat / 2) ** 2 + math.cos(rlat1) * math.cos(rlat2) * math.sin(dlon / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def albers(parallels: tuple[float, float], origin: Point) -> str:
    """Conic equal-area definition with standard parallels and a (lon, lat) origin."""
    return (
        f"+proj=aea +lat_1={parallels[0]} +lat_2={parallels[1]}"
        f" +lat_0={origin[1]} +lon_0={origin[0]} +R=1"
    )


# ── GeoJSON → shapely ────────────────────────────────────────────────────


def to_geometry(geojson: Optional[dict]) -> Optional[BaseGeometry]:
    """Shapely geometry for a GeoJSON geometry, Feature or FeatureCollection."""
    if not geojson:
        return None
    kind = geojson.get("type")
    if kind == "FeatureCollection":
        parts = [to_geometry(f) for f in geojson.get("features", [])]
        return GeometryCollection([p for p in parts if p is not None and not p.is_empty])
    if kind == "Feature":
        return to_geometry(geojson.get("geometry"))
    return shape(geojson)


def _lines(geom: BaseGeometry) -> Iterator[list[Point]]:
    if hasattr(geom, "geoms"):
        for part in geom.geoms:
            yield from _lines(part)
    elif geom.geom_type == "Polygon":
        yield list(geom.exterior.coords)
        for ring in geom.interiors:
            yield list(ring.coords)
    elif geom.geom_type in ("LineString", "LinearRing"):
        yield list(geom.coords)


def iter_outlines(geojson: Optional[dict]) -> Iterator[list[Point]]:
    """Yield every polygon ring and line of a GeoJSON object as (lon, lat) lists.

    Points carry no outline and are skipped.
    """
    geom = to_geometry(geojson)
    if geom is not None:
        yield from _lines(geom)


# ── Projection ───────────────────────────────────────────────────────────


class Projection:
    """Longitude/latitude (degrees) → screen pixels."""

    def __init__(
        self,
        proj: str,
        scale: float = 150.0,
        translate: Point = (480.0, 250.0),
        center: Point = (0.0, 0.0),
        max_lat: float = 90.0,
    ):
        self.proj = proj
        self.scale = scale
        self.translate = translate
        self.center = center
        self.max_lat = max_lat      # latitudes are clipped to ±max_lat first
        self._transformer = pyproj.Transformer.from_crs(WGS84, pyproj.CRS(proj), always_xy=True)

    def raw(self, lon, lat):
        """Projected plane coordinates; accepts scalars or arrays."""
        return self._transformer.transform(lon, np.clip(lat, -self.max_lat, self.max_lat))

    def __call__(self, lon: float, lat: float) -> Point:
        return self.to_screen(*self.raw(lon, lat))

    def to_screen(self, x: float, y: float) -> Point:
        """Projected plane → pixels, with the centre landing on `translate`."""
        cx, cy = self.raw(*self.center)
        tx, ty = self.translate
        return float(tx + self.scale * (x - cx)), float(ty - self.scale * (y - cy))

    def raw_bounds(self, geojson: Optional[dict]) -> Optional[tuple[float, float, float, float]]:
        """(minx, miny, maxx, maxy) of the projected geometry, or None if there is none."""
        geom = to_geometry(geojson)
        if geom is None or geom.is_empty:
            return None
        bounds = transform(self.raw, geom).bounds
        if not all(math.isfinite(v) for v in bounds):
            return None
        return bounds

    def fit_size(self, width: float, height: float, geojson: dict) -> Projection:
        """Scale and translate so the features fill a width×height box."""
        bounds = self.raw_bounds(geojson)
        if bounds is None:
            return self
        x0, y0, x1, y1 = bounds
        if x1 <= x0 or y1 <= y0:
            return self
        k = min(width / (x1 - x0), height / (y1 - y0))
        cx, cy = self.raw(*self.center)
        self.scale = k
        self.translate = (
            width / 2 - k * ((x0 + x1) / 2 - cx),
            height / 2 + k * ((y0 + y1) / 2 - cy),
        )
        return self


def projected_bounds(projection: Projection, geojson: Optional[dict]) -> Optional[Bounds]:
    """Screen-space bounding box of the projected geometry."""
    bounds = projection.raw_bounds(geojson)
    if bounds is None:
        return None
    x0, y0, x1, y1 = bounds
    # Screen y grows downwards, so the raw top edge has the smaller screen y
    left, top = projection.to_screen(x0, y1)
    right, bottom = projection.to_screen(x1, y0)
    return (left, top), (right, bottom)


def squared_distance(lon1: float, lat1: float, lon2: float, lat2: float) -> float:
    """Planar squared distance in degree space; fine for nearby points."""
    return (lon1 - lon2) ** 2 + (lat1 - lat2) ** 2
