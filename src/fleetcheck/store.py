"""Client for the spreadsheet-backed remote store."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from typing import Any

import aiohttp
from pydantic import ValidationError

from fleetcheck._cache import DatasetCache
from fleetcheck._transport import HttpTransport, Transport
from fleetcheck.config import FleetCheckConfig
from fleetcheck.exceptions import FleetCheckConfigError, PersistenceError, TransportError
from fleetcheck.models.audit import LogEntry
from fleetcheck.models.check import InventoryCheck
from fleetcheck.models.dataset import Dataset

_logger = logging.getLogger(__name__)

# Older audit sheets use these column names.
_LEGACY_LOG_KEYS: Mapping[str, str] = {
    "acao": "action",
    "logAction": "action",
    "detalhes": "details",
    "operador": "userName",
    "data": "timestamp",
}


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _cache_buster() -> dict[str, str]:
    return {"t": str(int(time.time() * 1000))}


def _normalize_log_row(row: Mapping[str, Any]) -> dict[str, Any]:
    normalized = dict(row)
    for legacy, current in _LEGACY_LOG_KEYS.items():
        if legacy in normalized and not normalized.get(current):
            normalized[current] = normalized.pop(legacy)
    if not normalized.get("id"):
        normalized["id"] = str(normalized.get("timestamp") or "")
    return normalized


class RemoteStore:
    """Async access to the remote store.

    Usage::

        async with RemoteStore(config) as store:
            dataset = await store.fetch_all()

    A *transport* may be injected (tests pass an in-memory fake); without
    one, entering the context opens an :class:`aiohttp.ClientSession`
    unless *session* is supplied.  The store satisfies
    :class:`fleetcheck.checklist.CheckRepository`.
    """

    def __init__(
        self,
        config: FleetCheckConfig,
        transport: Transport | None = None,
        *,
        cache: DatasetCache | None = None,
        session: aiohttp.ClientSession | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if not config.operational_url:
            raise FleetCheckConfigError("operational_url is not configured")
        self._config = config
        self._transport = transport
        self._cache = cache if cache is not None else DatasetCache(config.cache_path)
        self._external_session = session is not None
        self._http_session = session
        self._clock = clock
        self._pending: asyncio.Task[Dataset] | None = None

    async def __aenter__(self) -> RemoteStore:
        if self._transport is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._transport = HttpTransport(self._http_session, timeout=self._config.request_timeout)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        pending = self._pending
        if pending is not None and not pending.done():
            pending.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await pending
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
            self._transport = None

    @property
    def cache(self) -> DatasetCache:
        return self._cache

    def _require_transport(self) -> Transport:
        if self._transport is None:
            raise FleetCheckConfigError("RemoteStore has no transport; use 'async with RemoteStore(...)'")
        return self._transport

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def fetch_all(self, *, force_refresh: bool = False) -> Dataset:
        """Read every table in one request.

        Concurrent callers share the in-flight request unless
        *force_refresh* is set.  When the request fails the last cached
        payload is returned with ``from_cache=True``.

        Raises
        ------
        PersistenceError
            The request failed and nothing is cached.
        """
        pending = self._pending
        if pending is None or force_refresh:
            pending = asyncio.ensure_future(self._fetch_all())
            pending.add_done_callback(self._fetch_done)
            self._pending = pending
        # Cancelling one caller leaves the shared read running.
        return await asyncio.shield(pending)

    def _fetch_done(self, task: asyncio.Task[Dataset]) -> None:
        if self._pending is task:
            self._pending = None
        if not task.cancelled() and task.exception() is not None:
            _logger.debug("Bulk read finished with %r", task.exception())

    async def _fetch_all(self) -> Dataset:
        transport = self._require_transport()
        url = self._config.operational_url
        try:
            payload = await transport.get_json(url, _cache_buster())
            if not isinstance(payload, dict):
                raise TransportError(
                    f"Bulk read returned {type(payload).__name__}, expected an object",
                    url=url,
                )
        except TransportError as exc:
            cached = self._cache.load()
            if cached is None:
                raise PersistenceError(
                    f"Bulk read failed and no cached data is available: {exc}",
                    operation="fetch_all",
                ) from exc
            cached_payload, stored_at = cached
            _logger.warning("Bulk read failed (%s); using cached data from %s", exc, stored_at or "unknown time")
            return Dataset.from_payload(cached_payload, fetched_at=stored_at, from_cache=True)

        fetched_at = self._clock()
        self._cache.store(payload, now=fetched_at)
        dataset = Dataset.from_payload(payload, fetched_at=fetched_at)
        _logger.info(
            "Fetched dataset: %d vehicles, %d checks, %d stations",
            len(dataset.vehicles),
            len(dataset.checks),
            len(dataset.stations),
        )
        return dataset

    async def fetch_logs(self) -> tuple[LogEntry, ...]:
        """Read the audit log, newest entries last as the sheet stores them."""
        transport = self._require_transport()
        url = self._config.effective_audit_url
        params = {"type": "LOGS", **_cache_buster()}
        try:
            data = await transport.get_json(url, params)
        except TransportError as exc:
            raise PersistenceError(f"Audit log read failed: {exc}", operation="fetch_logs") from exc

        rows = data if isinstance(data, list) else (data.get("data") if isinstance(data, dict) else None)
        entries: list[LogEntry] = []
        for position, row in enumerate(rows or ()):
            if not isinstance(row, Mapping):
                continue
            try:
                entries.append(LogEntry.model_validate(_normalize_log_row(row)))
            except ValidationError as exc:
                _logger.warning("Skipping unreadable log row %d: %s", position, exc.errors()[:1])
        return tuple(entries)

    async def test_connection(self, url: str | None = None) -> float:
        """Issue a bulk-read probe and return its latency in seconds.

        Raises
        ------
        TransportError
            The endpoint is unreachable or does not answer with JSON.
        """
        transport = self._require_transport()
        started = time.perf_counter()
        await transport.get_json(url or self._config.operational_url, _cache_buster())
        return time.perf_counter() - started

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def save_check(self, check: InventoryCheck) -> None:
        await self._send(self._config.operational_url, "CHECK", "SAVE", check.to_row())
        _logger.debug("Saved check %s for vehicle %s", check.id, check.vehicle_id)

    async def save_log(self, entry: LogEntry) -> None:
        row = entry.to_wire()
        # "action" is taken by the request envelope.
        row["logAction"] = row.pop("action")
        await self._send(self._config.effective_audit_url, "LOG", "SAVE", row)

    async def _send(self, url: str, record_type: str, action: str, payload: Mapping[str, Any]) -> None:
        transport = self._require_transport()
        body = {**payload, "type": record_type, "action": action}
        operation = f"{record_type}:{action}"
        try:
            await transport.post_json(url, body)
        except TransportError as exc:
            exc.operation = operation
            raise
