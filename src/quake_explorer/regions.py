"""Basemap region registry."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from quake_explorer.geo import (
    MERCATOR, MERCATOR_MAX_LAT, NATURAL_EARTH, Projection, albers, projected_bounds,
)

logger = logging.getLogger(__name__)


class RegionError(KeyError):
    """Raised for an unknown basemap region."""


@dataclass
class RegionConfig:
    """Configuration for a single basemap region."""

    name: str
    label: str
    projection: str             # "natural_earth1", "albers" or "mercator"
    boundary: str               # which boundary set to draw: "world" or "na"
    center: tuple[float, float] = (0.0, 0.0)   # lon, lat placed at the viewport centre
    scale: Optional[float] = None   # None = fit the boundary to the viewport
    parallels: tuple[float, float] = (29.5, 45.5)
    fit_shrink: float = 0.85        # fitted regions keep some breathing room


REGIONS: dict[str, RegionConfig] = {
    "world": RegionConfig(
        name="world",
        label="World",
        projection="natural_earth1",
        boundary="world",
    ),
    "na": RegionConfig(
        name="na",
        label="North America",
        projection="albers",
        boundary="na",
        center=(-98.0, 38.0),
    ),
    "indo": RegionConfig(
        name="indo",
        label="Indonesia",
        projection="mercator",
        boundary="world",
        center=(120.0, -3.0),
        scale=1450.0,
    ),
    "japan": RegionConfig(
        name="japan",
        label="Japan",
        projection="mercator",
        boundary="world",
        center=(138.0, 38.0),
        scale=2000.0,
    ),
    "andes": RegionConfig(
        name="andes",
        label="Andes",
        projection="mercator",
        boundary="world",
        center=(-72.0, -23.0),
        scale=1650.0,
    ),
    "nz": RegionConfig(
        name="nz",
        label="New Zealand",
        projection="mercator",
        boundary="world",
        center=(172.0, -41.0),
        scale=2700.0,
    ),
}

DEFAULT_REGION = "world"


def _projection_for(config: RegionConfig, width: float, height: float) -> Projection:
    translate = (width / 2, height / 2)
    if config.projection == "natural_earth1":
        return Projection(NATURAL_EARTH, center=config.center, translate=translate)
    if config.projection == "albers":
        return Projection(albers(config.parallels, config.center), center=config.center, translate=translate)
    if config.projection == "mercator":
        return Projection(
            MERCATOR, center=config.center, translate=translate, max_lat=MERCATOR_MAX_LAT,
        )
    raise ValueError(f"unknown projection '{config.projection}' for region {config.name}")


class BasemapRegion:
    """A region's fitted projection plus the boundary geometry it draws."""

    def __init__(self, config: RegionConfig, boundaries: dict[str, dict], width: float, height: float):
        self.config = config
        self.feature = boundaries.get(config.boundary)
        self.projection = _projection_for(config, width, height)
        if config.scale is not None:
            self.projection.scale = config.scale
        elif self.feature:
            self.projection.fit_size(width, height, self.feature)
            self.projection.scale *= config.fit_shrink
        else:
            logger.warning("Region '%s' has no boundary data; using default scale", config.name)

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def label(self) -> str:
        return self.config.label

    def bounds(self):
        """Screen bounding box of the boundary geometry, None without one."""
        return projected_bounds(self.projection, self.feature)


def build_region(
    name: str, boundaries: dict[str, dict], width: float, height: float,
) -> BasemapRegion:
    try:
        config = REGIONS[name]
    except KeyError:
        raise RegionError(f"unknown region '{name}' (expected one of {sorted(REGIONS)})") from None
    return BasemapRegion(config, boundaries, width, height)
