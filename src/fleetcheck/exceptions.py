"""Custom exception hierarchy for fleetcheck."""

from __future__ import annotations

from collections.abc import Sequence


class FleetCheckError(Exception):
    """Base exception for all fleetcheck errors."""


class FleetCheckConfigError(FleetCheckError):
    """Invalid or missing configuration."""


class ChecklistError(FleetCheckError):
    """Base for checklist workflow errors."""


class ChecklistStateError(ChecklistError):
    """Operation not allowed in the session's current phase."""


class ChecklistValidationError(ChecklistError):
    """A checklist cannot be submitted as-is.

    Always recoverable: the caller fixes the reported problem and
    submits again.  Nothing reaches persistence while one of these
    is outstanding.
    """


class IncompleteChecklistError(ChecklistValidationError):
    """One or more snapshot items have no answer yet."""

    def __init__(self, missing_item_ids: Sequence[str]) -> None:
        self.missing_item_ids = tuple(missing_item_ids)
        self.missing_count = len(self.missing_item_ids)
        noun = "item" if self.missing_count == 1 else "items"
        super().__init__(f"{self.missing_count} {noun} not yet checked")


class MissingObservationError(ChecklistValidationError):
    """An entry with a non-OK status carries no observation."""

    def __init__(self, item_id: str) -> None:
        self.item_id = item_id
        super().__init__(f"observation required for item {item_id!r}")


class MissingJustificationError(ChecklistValidationError):
    """Justification required for an out-of-day or repeated check."""

    def __init__(self, message: str = "justification is required for this check") -> None:
        super().__init__(message)


class MissingSignatoriesError(ChecklistValidationError):
    """Commander or responsible names missing."""


class UnknownItemError(ChecklistValidationError):
    """Entry references an item that is not in the session snapshot."""

    def __init__(self, item_id: str) -> None:
        self.item_id = item_id
        super().__init__(f"item {item_id!r} is not part of this checklist")


class PersistenceError(FleetCheckError):
    """Remote store read or write failed.

    Retryable.  Reads fall back to the cached dataset when one exists;
    this is raised only when no fallback is available.
    """

    def __init__(self, message: str, *, operation: str = "") -> None:
        self.operation = operation
        super().__init__(message)


class TransportError(PersistenceError):
    """HTTP-level failure (network, non-2xx, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        url: str = "",
        operation: str = "",
    ) -> None:
        self.status_code = status_code
        self.url = url
        super().__init__(message, operation=operation)


class NotSignedInError(FleetCheckError):
    """The operation needs a signed-in user."""


class HierarchyIntegrityError(FleetCheckError):
    """An organizational node cannot be removed while it has dependents."""

    def __init__(self, message: str, *, dependents: Sequence[str] = ()) -> None:
        self.dependents = tuple(dependents)
        super().__init__(message)


class CapabilityError(FleetCheckError):
    """The user's role does not grant the requested action."""

    def __init__(self, permission: str, *, user_id: str = "") -> None:
        self.permission = permission
        self.user_id = user_id
        super().__init__(f"user {user_id!r} lacks permission {permission!r}")
