"""Audit-log entries."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import Field, field_validator

from fleetcheck.models._base import FleetBaseModel


class AuditAction(StrEnum):
    """Actions this library writes to the audit log.

    Management screens write their own action names; :class:`LogEntry`
    keeps ``action`` as plain text so those read back unchanged.
    """

    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"
    CHECKLIST = "CHECKLIST"


class LogEntry(FleetBaseModel):
    id: str
    user_id: str = ""
    user_name: str = "System"
    action: str = "INFO"
    details: str = ""
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @field_validator("timestamp")
    @classmethod
    def _ensure_tz_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value
