"""Data models for the earthquake explorer catalog."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, asdict
from datetime import datetime
from enum import Enum
from typing import Optional


class Metric(str, Enum):
    """Intensity metrics carried by every event."""

    MAG = "mag"     # primary: magnitude (Richter)
    CDI = "cdi"     # felt intensity
    MMI = "mmi"     # structural intensity
    SIG = "sig"     # composite: overall significance


METRIC_LABELS = {
    Metric.MAG: "Magnitude (Richter Scale)",
    Metric.CDI: "CDI (Felt Intensity)",
    Metric.MMI: "MMI (Structural Intensity)",
    Metric.SIG: "Overall Significance",
}

KM_PER_DEGREE = 111.32


@dataclass(frozen=True)
class QuakeRecord:
    """One earthquake, immutable for the lifetime of a loaded catalog."""

    event_id: str
    latitude: float             # WGS84, [-90, 90]
    longitude: float            # WGS84, [-180, 180]

    year: Optional[int] = None
    month: Optional[int] = None
    time: Optional[datetime] = None

    depth: Optional[float] = None   # Kilometers

    mag: Optional[float] = None
    cdi: Optional[float] = None
    mmi: Optional[float] = None
    sig: Optional[float] = None

    tsunami: bool = False
    place: str = ""
    dmin: Optional[float] = None    # Degrees to nearest station

    def metric(self, metric: Metric) -> Optional[float]:
        return getattr(self, Metric(metric).value)

    @property
    def nearest_station_km(self) -> Optional[float]:
        if self.dmin is None:
            return None
        return self.dmin * KM_PER_DEGREE


def make_event_id(
    latitude: float,
    longitude: float,
    year: Optional[int] = None,
    month: Optional[int] = None,
    time: Optional[datetime] = None,
) -> str:
    """Generate a stable event ID from coordinates and available time fields.

    Coordinates are rounded to 4 decimals (~11 m) so that re-parsing the same
    source never changes an event's identity.
    """
    parts = [
        f"{latitude:.4f}",
        f"{longitude:.4f}",
        "" if year is None else str(year),
        "" if month is None else str(month),
        "" if time is None else time.isoformat(),
    ]
    content = "|".join(parts)
    return "EQ-" + hashlib.sha256(content.encode()).hexdigest()[:16]


@dataclass(frozen=True)
class EventDescription:
    """Read-only view of an event for tooltips and detail panels."""

    record: QuakeRecord
    display_radius: float
    visible: bool

    @property
    def event_id(self) -> str:
        return self.record.event_id

    @property
    def nearest_station_km(self) -> Optional[float]:
        return self.record.nearest_station_km

    def as_dict(self) -> dict:
        d = asdict(self.record)
        if d["time"] is not None:
            d["time"] = d["time"].isoformat()
        d["display_radius"] = self.display_radius
        d["nearest_station_km"] = self.nearest_station_km
        d["visible"] = self.visible
        return d
