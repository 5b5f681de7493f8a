"""Parser for USGS GeoJSON earthquake feed."""

from __future__ import annotations

import json
from datetime import datetime, timezone

from quake_explorer.models import QuakeRecord, make_event_id
from quake_explorer.parsers.base import CatalogParser, safe_float


class USGSGeoJSONParser(CatalogParser):
    """Parse USGS GeoJSON response → list of QuakeRecord."""

    def parse(self, raw_payload: str) -> list[QuakeRecord]:
        data = json.loads(raw_payload)
        features = data.get("features", [])
        records: list[QuakeRecord] = []

        for feature in features:
            try:
                records.append(self._parse_feature(feature))
            except (KeyError, TypeError, ValueError, IndexError):
                continue

        return records

    @staticmethod
    def _parse_feature(feature: dict) -> QuakeRecord:
        props = feature["properties"]
        coords = feature["geometry"]["coordinates"]

        time_ms = props.get("time")
        origin_time = (
            datetime.fromtimestamp(time_ms / 1000, tz=timezone.utc)
            if time_ms is not None else None
        )

        # Longitude normalization to [-180, 180]
        longitude = float(coords[0])
        if longitude > 180:
            longitude -= 360
        elif longitude < -180:
            longitude += 360
        latitude = float(coords[1])

        year = origin_time.year if origin_time else None
        month = origin_time.month if origin_time else None

        return QuakeRecord(
            event_id=make_event_id(latitude, longitude, year, month, origin_time),
            latitude=latitude,
            longitude=longitude,
            year=year,
            month=month,
            time=origin_time,
            depth=safe_float(coords[2]) if len(coords) > 2 else None,
            mag=safe_float(props.get("mag")),
            cdi=safe_float(props.get("cdi")),
            mmi=safe_float(props.get("mmi")),
            sig=safe_float(props.get("sig")),
            tsunami=safe_float(props.get("tsunami")) == 1,
            place=props.get("place") or "",
            dmin=safe_float(props.get("dmin")),
        )
