"""Readiness calendar.

Every instant belongs to an *operational day*: the 24 hours starting at
the cutoff (07:30 by default) on that day's calendar date.  Operational
days rotate through exactly three readiness states, counted from a fixed
epoch day whose state is the first in the cycle.

Naive datetimes are read as local wall-clock time.  Aware datetimes are
converted into the calendar's zone first (or read on their own wall
clock when the calendar has no zone).  A plain :class:`~datetime.date`
is already an operational day key and is used as-is.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable, Sequence
from datetime import UTC, date, datetime, time, timedelta, tzinfo

from fleetcheck._constants import DEFAULT_READINESS_HEX, DEFAULT_READINESS_LABELS, EPOCH_DAY, SHIFT_CUTOFF

Instant = datetime | date | str

_ONE_DAY = timedelta(days=1)


@dataclasses.dataclass(frozen=True)
class ReadinessState:
    """One of the three rotating readiness states."""

    key: str
    label: str
    hex: str
    index: int


DEFAULT_CYCLE: tuple[ReadinessState, ...] = tuple(
    ReadinessState(key=label.upper(), label=label, hex=hex_color, index=index)
    for index, (label, hex_color) in enumerate(zip(DEFAULT_READINESS_LABELS, DEFAULT_READINESS_HEX))
)


def _coerce_instant(value: Instant) -> datetime | date:
    if isinstance(value, (datetime, date)):
        return value
    text = value.strip()
    if "T" not in text and " " not in text:
        return date.fromisoformat(text)
    return datetime.fromisoformat(text)


class ReadinessCalendar:
    """Map instants to operational days and readiness states.

    All methods are pure: the same input always yields the same output,
    and every instant of one operational day yields the same state.
    """

    def __init__(
        self,
        *,
        epoch_day: date = EPOCH_DAY,
        cutoff: time = SHIFT_CUTOFF,
        states: Sequence[ReadinessState] = DEFAULT_CYCLE,
        tz: tzinfo | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        if len(states) != 3:
            raise ValueError(f"readiness cycle must have exactly 3 states, got {len(states)}")
        self._epoch_day = epoch_day
        self._cutoff = cutoff.replace(second=0, microsecond=0, tzinfo=None)
        self._states = tuple(states)
        self._tz = tz
        self._clock = clock

    @property
    def states(self) -> tuple[ReadinessState, ...]:
        return self._states

    @property
    def cutoff(self) -> time:
        return self._cutoff

    @property
    def tz(self) -> tzinfo | None:
        return self._tz

    def now(self) -> datetime:
        if self._clock is not None:
            return self._clock()
        return datetime.now(self._tz) if self._tz is not None else datetime.now()

    def _local(self, instant: datetime) -> datetime:
        if instant.tzinfo is None or self._tz is None:
            return instant
        return instant.astimezone(self._tz)

    def _is_before_cutoff(self, local: datetime) -> bool:
        # Seconds are ignored: 07:29:59 is still the previous day, 07:30:00 is not.
        return (local.hour, local.minute) < (self._cutoff.hour, self._cutoff.minute)

    def shift_reference_date(self, instant: Instant) -> date:
        """Return the operational day *instant* belongs to."""
        value = _coerce_instant(instant)
        if not isinstance(value, datetime):
            return value
        local = self._local(value)
        if self._is_before_cutoff(local):
            return local.date() - _ONE_DAY
        return local.date()

    def shift_key(self, instant: Instant) -> str:
        """Return the operational day as a ``YYYY-MM-DD`` key."""
        return self.shift_reference_date(instant).isoformat()

    def shift_start(self, day: date) -> datetime:
        """Instant at which operational *day* begins."""
        return datetime.combine(day, self._cutoff, tzinfo=self._tz)

    def operational_day_bounds(self, day: date) -> tuple[datetime, datetime]:
        """Half-open ``[start, end)`` interval covered by operational *day*."""
        return self.shift_start(day), self.shift_start(day + _ONE_DAY)

    def day_index(self, day: date) -> int:
        """Whole operational days between the epoch and *day* (negative before it)."""
        start = self.shift_start(day)
        epoch = self.shift_start(self._epoch_day)
        if self._tz is not None:
            start = start.astimezone(UTC)
            epoch = epoch.astimezone(UTC)
        # Rounded, not truncated: a DST change makes some days 23 or 25 hours long.
        return round((start - epoch) / _ONE_DAY)

    def readiness_state(self, instant: Instant) -> ReadinessState:
        """Return the readiness state of the operational day containing *instant*."""
        day = self.shift_reference_date(instant)
        # Python's modulo is non-negative for negative indexes, so pre-epoch days wrap too.
        return self._states[self.day_index(day) % len(self._states)]

    def state_by_label(self, label: str) -> ReadinessState | None:
        wanted = label.strip().casefold()
        for state in self._states:
            if state.label.casefold() == wanted or state.key.casefold() == wanted:
                return state
        return None

    def current_operational_day(self) -> date:
        return self.shift_reference_date(self.now())

    def is_current_operational_day(self, day: date, now: datetime | None = None) -> bool:
        reference = now if now is not None else self.now()
        return self.shift_reference_date(day) == self.shift_reference_date(reference)


_DEFAULT_CALENDAR = ReadinessCalendar()


def readiness_state(instant: Instant) -> ReadinessState:
    """Readiness state of *instant* on the default calendar."""
    return _DEFAULT_CALENDAR.readiness_state(instant)


def shift_reference_date(instant: Instant) -> date:
    """Operational day of *instant* on the default calendar."""
    return _DEFAULT_CALENDAR.shift_reference_date(instant)
