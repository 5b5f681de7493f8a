"""Runtime configuration, read from QUAKE_EXPLORER_* environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from quake_explorer.timeline import Granularity
from quake_explorer.tour import FLIGHT_MS
from quake_explorer.viewport import RADIUS_ZOOM_EXP, ZOOM_MAX, ZOOM_MIN

ENV_PREFIX = "QUAKE_EXPLORER_"

PLAY_INTERVAL_MS = 900


@dataclass
class ExplorerConfig:
    """Settings for one explorer session."""

    catalog_path: str = "data/earthquake_data_tsunami.csv"
    world_boundary_path: Optional[str] = "data/world_lowres.json"
    na_boundary_path: Optional[str] = "data/NA_lowres.json"
    plates_path: Optional[str] = None

    viewport_width: float = 960.0
    viewport_height: float = 600.0

    radius_zoom_exp: float = RADIUS_ZOOM_EXP
    zoom_min: float = ZOOM_MIN
    zoom_max: float = ZOOM_MAX

    granularity: Granularity = Granularity.YEAR
    flight_ms: float = FLIGHT_MS
    play_interval_ms: float = PLAY_INTERVAL_MS

    @classmethod
    def from_env(cls) -> ExplorerConfig:
        defaults = cls()

        def env(name: str, default):
            return os.getenv(ENV_PREFIX + name, default)

        def env_path(name: str, default: Optional[str]) -> Optional[str]:
            value = env(name, default)
            return value or None

        return cls(
            catalog_path=env("CATALOG", defaults.catalog_path),
            world_boundary_path=env_path("WORLD", defaults.world_boundary_path),
            na_boundary_path=env_path("NA", defaults.na_boundary_path),
            plates_path=env_path("PLATES", defaults.plates_path),
            viewport_width=float(env("WIDTH", defaults.viewport_width)),
            viewport_height=float(env("HEIGHT", defaults.viewport_height)),
            radius_zoom_exp=float(env("RADIUS_ZOOM_EXP", defaults.radius_zoom_exp)),
            zoom_min=float(env("ZOOM_MIN", defaults.zoom_min)),
            zoom_max=float(env("ZOOM_MAX", defaults.zoom_max)),
            granularity=Granularity(env("GRANULARITY", defaults.granularity.value)),
            flight_ms=float(env("FLIGHT_MS", defaults.flight_ms)),
            play_interval_ms=float(env("PLAY_INTERVAL_MS", defaults.play_interval_ms)),
        )

    def boundary_paths(self) -> dict[str, str]:
        paths = {
            "world": self.world_boundary_path,
            "na": self.na_boundary_path,
            "plates": self.plates_path,
        }
        return {name: path for name, path in paths.items() if path}


@dataclass
class FeedConfig:
    """FDSN event service used by `quake-explorer fetch`."""

    name: str = "usgs"
    base_url: str = "https://earthquake.usgs.gov/fdsnws/event/1/query"
    max_retries: int = 3
    retry_backoff_base: float = 2.0
    timeout_seconds: int = 30

    @classmethod
    def from_env(cls) -> FeedConfig:
        defaults = cls()
        return cls(
            base_url=os.getenv(ENV_PREFIX + "FEED_URL", defaults.base_url),
            max_retries=int(os.getenv(ENV_PREFIX + "FEED_RETRIES", defaults.max_retries)),
            timeout_seconds=int(os.getenv(ENV_PREFIX + "FEED_TIMEOUT", defaults.timeout_seconds)),
        )
