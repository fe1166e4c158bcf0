"""Library configuration for fleetcheck."""

from __future__ import annotations

import dataclasses
import os
from datetime import date, time
from pathlib import Path
from typing import TYPE_CHECKING, Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fleetcheck._constants import (
    DEFAULT_READINESS_HEX,
    DEFAULT_READINESS_LABELS,
    EPOCH_DAY,
    SHIFT_CUTOFF,
    UNKNOWN_CITY,
    UNKNOWN_STATION_CLASSIFICATION,
    UNKNOWN_SUBUNIT,
    UNKNOWN_UNIT,
)
from fleetcheck.exceptions import FleetCheckConfigError

if TYPE_CHECKING:
    from fleetcheck.calendar import ReadinessCalendar


def _parse_time(value: str) -> time:
    try:
        hour, minute = value.strip().split(":", 1)
        return time(int(hour), int(minute))
    except ValueError as exc:
        raise FleetCheckConfigError(f"invalid cutoff time {value!r}, expected HH:MM") from exc


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value.strip())
    except ValueError as exc:
        raise FleetCheckConfigError(f"invalid epoch day {value!r}, expected YYYY-MM-DD") from exc


def _split_csv(value: str) -> tuple[str, ...]:
    return tuple(part.strip() for part in value.split(",") if part.strip())


@dataclasses.dataclass(frozen=True)
class HeaderConfig:
    """Fixed lines printed on every check header, plus lookup placeholders.

    The agency lines are the same for every check.  The placeholders
    are used when a vehicle's station, subunit or unit cannot be
    resolved at submission time.
    """

    secretariat: str = ""
    department: str = ""
    fire_corps: str = ""
    unit_placeholder: str = UNKNOWN_UNIT
    subunit_placeholder: str = UNKNOWN_SUBUNIT
    station_classification_placeholder: str = UNKNOWN_STATION_CLASSIFICATION
    city_placeholder: str = UNKNOWN_CITY


@dataclasses.dataclass(frozen=True)
class FleetCheckConfig:
    """Library configuration.

    Parameters
    ----------
    operational_url : str
        Remote store endpoint for the bulk read and record writes.
    audit_url : str
        Remote store endpoint for audit-log entries.  Defaults to
        ``operational_url`` when empty.
    cache_path : Path or None
        File holding the last known-good dataset.  ``None`` keeps the
        cache in memory only.
    request_timeout : float
        Total HTTP timeout in seconds.
    time_zone : str
        IANA zone the operational day is computed in.
    epoch_day : date
        Operational day with readiness index 0.
    cutoff : time
        Wall-clock time at which a new operational day begins.
    readiness_labels : tuple of str
        Labels of the three readiness states, in cycle order.
    readiness_hex : tuple of str
        Display colors matching ``readiness_labels``.
    header : HeaderConfig
        Default check header lines and placeholders.
    """

    operational_url: str = ""
    audit_url: str = ""
    cache_path: Path | None = None
    request_timeout: float = 30.0
    time_zone: str = "America/Sao_Paulo"
    epoch_day: date = EPOCH_DAY
    cutoff: time = SHIFT_CUTOFF
    readiness_labels: tuple[str, ...] = DEFAULT_READINESS_LABELS
    readiness_hex: tuple[str, ...] = DEFAULT_READINESS_HEX
    header: HeaderConfig = dataclasses.field(default_factory=HeaderConfig)

    def __post_init__(self) -> None:
        if len(self.readiness_labels) != 3:
            raise FleetCheckConfigError(
                f"exactly 3 readiness labels are required, got {len(self.readiness_labels)}"
            )
        if len(self.readiness_hex) != len(self.readiness_labels):
            raise FleetCheckConfigError("readiness_hex must match readiness_labels in length")
        if self.request_timeout <= 0:
            raise FleetCheckConfigError("request_timeout must be positive")
        self.zone()

    @property
    def effective_audit_url(self) -> str:
        return self.audit_url or self.operational_url

    def zone(self) -> ZoneInfo:
        try:
            return ZoneInfo(self.time_zone)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise FleetCheckConfigError(f"unknown time zone {self.time_zone!r}") from exc

    def calendar(self) -> ReadinessCalendar:
        """Build the readiness calendar described by this configuration."""
        from fleetcheck.calendar import ReadinessCalendar, ReadinessState

        states = tuple(
            ReadinessState(key=label.upper(), label=label, hex=hex_color, index=index)
            for index, (label, hex_color) in enumerate(zip(self.readiness_labels, self.readiness_hex))
        )
        return ReadinessCalendar(
            epoch_day=self.epoch_day,
            cutoff=self.cutoff,
            states=states,
            tz=self.zone(),
        )

    @classmethod
    def from_env(cls, **overrides: Any) -> FleetCheckConfig:
        """Create configuration from environment variables.

        Reads ``FLEETCHECK_*`` variables.  Explicit keyword arguments
        override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        FleetCheckConfig
            Populated configuration.
        """
        env = os.environ

        header_kwargs: dict[str, str] = {}
        _ENV_HEADER_MAP = {
            "FLEETCHECK_HEADER_SECRETARIAT": "secretariat",
            "FLEETCHECK_HEADER_DEPARTMENT": "department",
            "FLEETCHECK_HEADER_FIRE_CORPS": "fire_corps",
        }
        for env_key, field_name in _ENV_HEADER_MAP.items():
            val = env.get(env_key)
            if val is not None:
                header_kwargs[field_name] = val

        header_overrides = overrides.pop("header", None)
        if isinstance(header_overrides, dict):
            header_kwargs.update(header_overrides)
        elif isinstance(header_overrides, HeaderConfig):
            header_kwargs = dataclasses.asdict(header_overrides)

        header = HeaderConfig(**header_kwargs) if header_kwargs else HeaderConfig()

        _ENV_CONFIG_MAP = {
            "FLEETCHECK_OPERATIONAL_URL": "operational_url",
            "FLEETCHECK_AUDIT_URL": "audit_url",
            "FLEETCHECK_TIME_ZONE": "time_zone",
        }
        config_kwargs: dict[str, Any] = {"header": header}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        cache_env = env.get("FLEETCHECK_CACHE_PATH")
        if cache_env and "cache_path" not in overrides:
            config_kwargs["cache_path"] = Path(cache_env).expanduser()

        timeout_env = env.get("FLEETCHECK_REQUEST_TIMEOUT")
        if timeout_env is not None and "request_timeout" not in overrides:
            try:
                config_kwargs["request_timeout"] = float(timeout_env)
            except ValueError as exc:
                raise FleetCheckConfigError(f"invalid FLEETCHECK_REQUEST_TIMEOUT {timeout_env!r}") from exc

        epoch_env = env.get("FLEETCHECK_EPOCH_DAY")
        if epoch_env is not None and "epoch_day" not in overrides:
            config_kwargs["epoch_day"] = _parse_date(epoch_env)

        cutoff_env = env.get("FLEETCHECK_CUTOFF")
        if cutoff_env is not None and "cutoff" not in overrides:
            config_kwargs["cutoff"] = _parse_time(cutoff_env)

        labels_env = env.get("FLEETCHECK_READINESS_LABELS")
        if labels_env is not None and "readiness_labels" not in overrides:
            config_kwargs["readiness_labels"] = _split_csv(labels_env)

        hex_env = env.get("FLEETCHECK_READINESS_HEX")
        if hex_env is not None and "readiness_hex" not in overrides:
            config_kwargs["readiness_hex"] = _split_csv(hex_env)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
