"""Abstract base parser with validation logic."""

from __future__ import annotations

import abc
import math
from typing import Optional

from quake_explorer.models import QuakeRecord


class ValidationError(Exception):
    """Raised when an event fails validation."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__(f"Validation failed: {'; '.join(errors)}")


class CatalogParser(abc.ABC):
    """Abstract parser that converts raw catalog data → list of QuakeRecord."""

    @abc.abstractmethod
    def parse(self, raw_payload: str) -> list[QuakeRecord]:
        """Parse a raw catalog into records.

        Args:
            raw_payload: The raw file or response body (text).

        Returns:
            List of QuakeRecord instances. Event ids are provisional; the
            loader makes them unique across the catalog.
        """

    @staticmethod
    def validate(record: QuakeRecord) -> list[str]:
        """Validate a QuakeRecord. Returns list of error messages (empty = valid)."""
        errors: list[str] = []

        # Latitude: [-90, 90]
        if not -90 <= record.latitude <= 90:
            errors.append(f"latitude {record.latitude} out of range [-90, 90]")

        # Longitude: [-180, 180]
        if not -180 <= record.longitude <= 180:
            errors.append(f"longitude {record.longitude} out of range [-180, 180]")

        # Depth: shallow events can sit slightly above sea level
        if record.depth is not None and record.depth < -10:
            errors.append(f"depth {record.depth} unreasonably negative")

        if record.depth is not None and record.depth > 800:
            errors.append(f"depth {record.depth} exceeds 800 km")

        # Magnitude: typically -2 to 10
        if record.mag is not None and not -2.0 <= record.mag <= 10.0:
            errors.append(f"mag {record.mag} out of range [-2, 10]")

        # Intensities are non-negative
        for name in ("cdi", "mmi", "sig"):
            value = getattr(record, name)
            if value is not None and value < 0:
                errors.append(f"{name} {value} is negative")

        if record.month is not None and not 1 <= record.month <= 12:
            errors.append(f"month {record.month} out of range [1, 12]")

        if record.time is not None and record.time.tzinfo is None:
            errors.append("time is not timezone-aware")

        if not record.event_id:
            errors.append("event_id is empty")

        return errors

    @classmethod
    def ensure_valid(cls, record: QuakeRecord) -> QuakeRecord:
        """Return `record` unchanged, or raise ValidationError listing every problem."""
        errors = cls.validate(record)
        if errors:
            raise ValidationError(errors)
        return record


def safe_float(val) -> Optional[float]:
    if val is None:
        return None
    try:
        f = float(val)
    except (TypeError, ValueError):
        return None
    return f if math.isfinite(f) else None


def safe_int(val) -> Optional[int]:
    f = safe_float(val)
    if f is None or f != int(f):
        return None
    return int(f)
