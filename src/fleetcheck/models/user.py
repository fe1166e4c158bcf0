"""User model: role (what a user may do) and scope (what a user may see)."""

from __future__ import annotations

from typing import Any

from pydantic import Field, field_validator, model_validator

from fleetcheck.models._base import FleetBaseModel, FleetEnum, decode_json_list


class Role(FleetEnum):
    BASIC = "BASIC"
    ADMIN = "ADMIN"
    SUPER = "SUPER"


class ScopeLevel(FleetEnum):
    """Tier of the organizational tree a user is restricted to."""

    GLOBAL = "GLOBAL"
    UNIT = "UNIT"
    SUBUNIT = "SUBUNIT"
    STATION = "STATION"


class User(FleetBaseModel):
    """An account as stored remotely.

    Credentials are never modeled.  ``scope_id`` names a node of tier
    ``scope_level`` and is cleared for GLOBAL scopes.
    """

    id: str
    username: str = ""
    name: str = ""
    role: Role = Role.BASIC
    scope_level: ScopeLevel = ScopeLevel.GLOBAL
    scope_id: str | None = None
    custom_permissions: tuple[str, ...] = Field(default_factory=tuple)
    """Capabilities granted on top of the role's defaults."""

    @model_validator(mode="before")
    @classmethod
    def _strip_credentials(cls, values: Any) -> Any:
        if isinstance(values, dict) and "password" in values:
            values = {k: v for k, v in values.items() if k != "password"}
        return values

    @field_validator("custom_permissions", mode="before")
    @classmethod
    def _decode_permissions(cls, value: Any) -> tuple[str, ...]:
        return tuple(str(item) for item in decode_json_list(value))

    @model_validator(mode="after")
    def _clear_global_scope_id(self) -> User:
        if self.scope_level is ScopeLevel.GLOBAL and self.scope_id is not None:
            object.__setattr__(self, "scope_id", None)
        return self

    @property
    def is_global(self) -> bool:
        return self.scope_level is ScopeLevel.GLOBAL
