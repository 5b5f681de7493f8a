"""Temporal bucketing of the event catalog.

Events are grouped into chronologically ordered buckets by year or by
year-month. Index -1 is the "All times" sentinel and selects the whole
catalog.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from quake_explorer.models import QuakeRecord

logger = logging.getLogger(__name__)

ALL_TIMES = -1
ALL_TIMES_LABEL = "All times"

MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]


class Granularity(str, Enum):
    YEAR = "year"
    MONTH = "month"


@dataclass(frozen=True)
class TimeBucket:
    """Group of events sharing a year or year-month key."""

    key: str
    label: str
    members: tuple[QuakeRecord, ...]

    def __len__(self) -> int:
        return len(self.members)


def has_valid_time(event: QuakeRecord, granularity: Granularity) -> bool:
    if event.year is None:
        return False
    if granularity == Granularity.MONTH:
        return event.month is not None and 1 <= event.month <= 12
    return True


def _period(event: QuakeRecord, granularity: Granularity) -> tuple[int, int]:
    if granularity == Granularity.MONTH:
        return event.year, event.month
    return event.year, 0


def _bucket_key(period: tuple[int, int], granularity: Granularity) -> str:
    year, month = period
    if granularity == Granularity.MONTH:
        return f"{year}-{month:02d}"
    return str(year)


def _label(period: tuple[int, int], granularity: Granularity) -> str:
    year, month = period
    if granularity == Granularity.MONTH:
        return f"{MONTH_NAMES[month - 1]} {year}"
    return str(year)


def bucket_by_time(
    events: Sequence[QuakeRecord],
    granularity: Granularity | str = Granularity.YEAR,
) -> list[TimeBucket]:
    """Partition events with valid time fields into ordered buckets.

    Events missing the fields required by the granularity are left out of
    every bucket. An empty catalog yields an empty list.
    """
    granularity = Granularity(granularity)
    groups: dict[tuple[int, int], list[QuakeRecord]] = {}

    for event in events:
        if not has_valid_time(event, granularity):
            continue
        groups.setdefault(_period(event, granularity), []).append(event)

    return [
        TimeBucket(
            key=_bucket_key(period, granularity),
            label=_label(period, granularity),
            members=tuple(groups[period]),
        )
        for period in sorted(groups)
    ]


class Timeline:
    """Bucketed view of a catalog plus the currently selected bucket."""

    def __init__(
        self,
        events: Sequence[QuakeRecord],
        granularity: Granularity | str = Granularity.YEAR,
    ):
        self._events = tuple(events)
        self.granularity = Granularity(granularity)
        self.buckets = bucket_by_time(self._events, self.granularity)
        self.index = ALL_TIMES
        logger.debug(
            "Bucketed %d events into %d %s bucket(s)",
            len(self._events), len(self.buckets), self.granularity.value,
        )

    @property
    def navigable(self) -> bool:
        """Timeline controls are enabled only with more than one bucket."""
        return len(self.buckets) > 1

    @property
    def events(self) -> tuple[QuakeRecord, ...]:
        return self._events

    def set_granularity(self, granularity: Granularity | str) -> None:
        self.granularity = Granularity(granularity)
        self.buckets = bucket_by_time(self._events, self.granularity)
        self.select(0)

    def select(self, index: int) -> int:
        """Select a bucket, clamping into range; negative means all times."""
        if index < 0 or not self.buckets:
            self.index = ALL_TIMES
        else:
            self.index = min(index, len(self.buckets) - 1)
        return self.index

    def show_all(self) -> None:
        self.index = ALL_TIMES

    def step_back(self) -> bool:
        if self.index > 0:
            self.index -= 1
            return True
        return False

    def step_forward(self) -> bool:
        """Advance one bucket, wrapping to the first after the last."""
        if not self.buckets:
            return False
        if self.index < len(self.buckets) - 1:
            self.index += 1
        else:
            self.index = 0
        return True

    @property
    def selected(self) -> TimeBucket | None:
        if self.index < 0 or not self.buckets:
            return None
        return self.buckets[self.index]

    @property
    def members(self) -> tuple[QuakeRecord, ...]:
        bucket = self.selected
        return self._events if bucket is None else bucket.members

    @property
    def label(self) -> str:
        bucket = self.selected
        return ALL_TIMES_LABEL if bucket is None else bucket.label
