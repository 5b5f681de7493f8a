"""Parser for the tabular earthquake/tsunami catalog (CSV)."""

from __future__ import annotations

import io
import logging

import pandas as pd

from quake_explorer.models import QuakeRecord, make_event_id
from quake_explorer.parsers.base import CatalogParser, safe_float, safe_int

logger = logging.getLogger(__name__)

# Column aliases seen across catalog exports, first match wins
_COLUMNS = {
    "mag": ("magnitude", "mag"),
    "year": ("Year", "year"),
    "month": ("Month", "month"),
    "time": ("time", "date_time"),
}


def _pick(row: dict, names: tuple[str, ...]):
    for name in names:
        value = row.get(name)
        if value is not None and not (isinstance(value, float) and pd.isna(value)):
            return value
    return None


class CSVCatalogParser(CatalogParser):
    """Parse a CSV catalog → list of QuakeRecord.

    Non-numeric or missing values become None; rows without finite
    coordinates are dropped.
    """

    def parse(self, raw_payload: str) -> list[QuakeRecord]:
        if not raw_payload.strip():
            return []
        df = pd.read_csv(io.StringIO(raw_payload))
        records: list[QuakeRecord] = []
        skipped = 0

        for row in df.to_dict(orient="records"):
            record = self._parse_row(row)
            if record is None:
                skipped += 1
                continue
            records.append(record)

        if skipped:
            logger.warning("Skipped %d row(s) without usable coordinates", skipped)
        return records

    @staticmethod
    def _parse_row(row: dict) -> QuakeRecord | None:
        latitude = safe_float(row.get("latitude"))
        longitude = safe_float(row.get("longitude"))
        if latitude is None or longitude is None:
            return None

        origin_time = None
        raw_time = _pick(row, _COLUMNS["time"])
        if raw_time is not None:
            parsed = pd.to_datetime(raw_time, utc=True, errors="coerce")
            origin_time = None if pd.isna(parsed) else parsed.to_pydatetime()

        year = safe_int(_pick(row, _COLUMNS["year"]))
        month = safe_int(_pick(row, _COLUMNS["month"]))
        if origin_time is not None:
            year = year if year is not None else origin_time.year
            month = month if month is not None else origin_time.month

        return QuakeRecord(
            event_id=make_event_id(latitude, longitude, year, month, origin_time),
            latitude=latitude,
            longitude=longitude,
            year=year,
            month=month,
            time=origin_time,
            depth=safe_float(row.get("depth")),
            mag=safe_float(_pick(row, _COLUMNS["mag"])),
            cdi=safe_float(row.get("cdi")),
            mmi=safe_float(row.get("mmi")),
            sig=safe_float(row.get("sig")),
            tsunami=safe_float(row.get("tsunami")) == 1,
            place=str(_pick(row, ("place", "location")) or ""),
            dmin=safe_float(row.get("dmin")),
        )
