"""Last known-good copy of the remote store's bulk read."""

from __future__ import annotations

import copy
import json
import logging
import os
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

_logger = logging.getLogger(__name__)


class DatasetCache:
    """Keep the most recent successful bulk-read payload.

    The payload lives in memory and, when *path* is given, in a JSON file
    so a restarted client can still work while the remote store is down.
    Cache I/O problems are logged and never raised: a broken cache only
    means there is nothing to fall back to.
    """

    def __init__(self, path: Path | None = None) -> None:
        self._path = path
        self._payload: dict[str, Any] | None = None
        self._stored_at: datetime | None = None

    @property
    def path(self) -> Path | None:
        return self._path

    def store(self, payload: dict[str, Any], *, now: datetime | None = None) -> None:
        stored_at = now or datetime.now(UTC)
        self._payload = copy.deepcopy(payload)
        self._stored_at = stored_at
        if self._path is None:
            return
        document = {"storedAt": stored_at.isoformat(), "payload": payload}
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(document, ensure_ascii=False), encoding="utf-8")
            os.replace(tmp_path, self._path)
        except OSError:
            _logger.warning("Could not write dataset cache to %s", self._path, exc_info=True)

    def load(self) -> tuple[dict[str, Any], datetime | None] | None:
        """Return ``(payload, stored_at)`` or ``None`` when nothing is cached."""
        if self._payload is not None:
            return copy.deepcopy(self._payload), self._stored_at
        if self._path is None or not self._path.is_file():
            return None
        try:
            document = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            _logger.warning("Could not read dataset cache from %s", self._path, exc_info=True)
            return None
        payload = document.get("payload") if isinstance(document, dict) else None
        if not isinstance(payload, dict):
            return None
        stored_at: datetime | None = None
        raw_stored_at = document.get("storedAt")
        if isinstance(raw_stored_at, str):
            try:
                stored_at = datetime.fromisoformat(raw_stored_at)
            except ValueError:
                stored_at = None
        self._payload = payload
        self._stored_at = stored_at
        return copy.deepcopy(payload), stored_at

    def clear(self) -> None:
        self._payload = None
        self._stored_at = None
        if self._path is not None:
            try:
                self._path.unlink(missing_ok=True)
            except OSError:
                _logger.warning("Could not remove dataset cache %s", self._path, exc_info=True)
