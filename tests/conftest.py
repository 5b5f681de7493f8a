"""Shared fixtures: a coarse world outline and a small dated catalog."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from quake_explorer.animation import FrameScheduler
from quake_explorer.models import QuakeRecord, make_event_id
from quake_explorer.regions import build_region


def quake(lat, lon, year=None, month=None, **kw) -> QuakeRecord:
    time = kw.pop("time", None)
    return QuakeRecord(
        event_id=make_event_id(lat, lon, year, month, time),
        latitude=lat,
        longitude=lon,
        year=year,
        month=month,
        time=time,
        **kw,
    )


@pytest.fixture
def world_boundaries() -> dict:
    ring = (
        [[lon, -60.0] for lon in range(-180, 181, 30)]
        + [[lon, 80.0] for lon in range(180, -181, -30)]
    )
    ring.append(ring[0])
    return {
        "world": {
            "type": "FeatureCollection",
            "features": [{
                "type": "Feature",
                "properties": {"name": "land"},
                "geometry": {"type": "Polygon", "coordinates": [ring]},
            }],
        },
    }


@pytest.fixture
def scheduler() -> FrameScheduler:
    return FrameScheduler()


@pytest.fixture
def world_region(world_boundaries):
    return build_region("world", world_boundaries, 960, 600)


@pytest.fixture
def catalog() -> list[QuakeRecord]:
    utc = timezone.utc
    return [
        quake(38.30, 142.37, 2011, 3, mag=9.1, cdi=9.0, mmi=9.0, sig=2910, depth=29.0,
              tsunami=True, place="near the east coast of Honshu, Japan",
              time=datetime(2011, 3, 11, 5, 46, tzinfo=utc)),
        quake(3.30, 95.98, 2004, 12, mag=9.1, cdi=None, mmi=8.6, sig=1400, depth=30.0,
              tsunami=True, place="off the west coast of northern Sumatra"),
        quake(-35.85, -72.72, 2010, 2, mag=8.8, cdi=8.2, mmi=8.5, sig=2243, depth=22.9,
              tsunami=True, place="offshore Bio-Bio, Chile"),
        quake(18.44, -72.57, 2010, 1, mag=7.0, cdi=9.1, mmi=9.0, sig=2426, depth=13.0,
              place="Haiti region"),
        quake(28.23, 84.73, 2015, 4, mag=7.8, cdi=8.6, mmi=8.4, sig=2302, depth=8.2,
              place="36 km E of Khudi, Nepal"),
        quake(-42.74, 173.05, 2016, 11, mag=7.8, cdi=7.7, mmi=8.6, sig=2260, depth=15.1,
              tsunami=True, place="Kaikoura, New Zealand"),
        quake(36.10, 140.10, 2011, 4, mag=6.6, cdi=6.0, mmi=6.1, sig=700, depth=320.0,
              place="eastern Honshu, Japan"),
    ]
