"""Remotely stored system settings."""

from __future__ import annotations

from typing import Any

from pydantic import Field, field_validator

from fleetcheck.models._base import FleetBaseModel, decode_json_list, decode_json_object


class AgencyHeader(FleetBaseModel):
    """Agency lines printed at the top of every check."""

    secretariat: str = ""
    department: str = ""
    fire_corps: str = ""


class SystemSettings(FleetBaseModel):
    """Settings shared by every user of one deployment.

    ``role_permissions`` overrides the built-in capability matrix per
    role; roles missing from it keep their defaults.
    """

    role_permissions: dict[str, tuple[str, ...]] = Field(default_factory=dict)
    header_config: AgencyHeader | None = None

    @field_validator("role_permissions", mode="before")
    @classmethod
    def _decode_matrix(cls, value: Any) -> dict[str, tuple[str, ...]]:
        decoded = decode_json_object(value)
        if not isinstance(decoded, dict):
            return {}
        return {
            str(role).strip().upper(): tuple(str(p) for p in decode_json_list(perms))
            for role, perms in decoded.items()
        }

    @field_validator("header_config", mode="before")
    @classmethod
    def _decode_header(cls, value: Any) -> Any:
        return decode_json_object(value)
