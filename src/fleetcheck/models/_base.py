"""Base model and enum for fleetcheck records.

Every record model inherits from :class:`FleetBaseModel` which provides:

* ``alias_generator=to_camel`` so the remote store's camelCase keys map
  automatically to snake_case fields, and :meth:`FleetBaseModel.to_wire`
  writes them back the same way.
* A ``model_validator(mode="before")`` that strips placeholder values
  (``None``, ``""``, ``"undefined"``, ``"null"``) so the field default is
  used.

Spreadsheet-backed rows store nested lists and objects as JSON text.
:func:`decode_json_list` and :func:`decode_json_object` read those back
for field validators.

String enums inherit from :class:`FleetEnum`, which accepts values
regardless of case or surrounding whitespace.
"""

from __future__ import annotations

import enum
import json
from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel

# Placeholder strings the spreadsheet backend writes for "no value".
_SENTINELS = frozenset({"", "undefined", "null"})


def decode_json_list(value: Any) -> Any:
    """Decode a JSON-encoded list, returning ``[]`` when it cannot be read."""
    if value is None:
        return []
    if isinstance(value, str):
        if value.strip() in _SENTINELS:
            return []
        try:
            value = json.loads(value)
        except json.JSONDecodeError:
            return []
    if isinstance(value, (list, tuple)):
        return value
    return []


def decode_json_object(value: Any) -> Any:
    """Decode a JSON-encoded object, returning ``None`` when it cannot be read."""
    if isinstance(value, str):
        if value.strip() in _SENTINELS:
            return None
        try:
            value = json.loads(value)
        except json.JSONDecodeError:
            return None
    if isinstance(value, (dict, BaseModel)):
        return value
    return None


class FleetEnum(enum.StrEnum):
    """Base for string enums read from the remote store.

    ``" operating "`` and ``"OPERATING"`` resolve to the same member.
    """

    @classmethod
    def _missing_(cls, value: object) -> FleetEnum | None:
        if not isinstance(value, str):
            return None
        wanted = value.strip().upper()
        for member in cls:
            if member.value.upper() == wanted or member.name == wanted:
                return member
        return None


class FleetBaseModel(BaseModel):
    """Base for fleetcheck record models.

    Handles:
    * camelCase ↔ snake_case via ``alias_generator=to_camel``
    * placeholder values → dropped so the field default is used
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_placeholders(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        cleaned: dict[str, Any] = {}
        for key, value in values.items():
            if value is None:
                continue
            if isinstance(value, str) and value.strip() in _SENTINELS:
                continue
            cleaned[key] = value
        return cleaned

    def to_wire(self) -> dict[str, Any]:
        """JSON-safe dict with camelCase keys, as the remote store expects."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
