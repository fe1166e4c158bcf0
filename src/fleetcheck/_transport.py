"""HTTP transport for the spreadsheet-backed remote store."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from fleetcheck._constants import JSON_CONTENT_TYPE, USER_AGENT
from fleetcheck._redact import redact_for_log
from fleetcheck.exceptions import TransportError

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural transport interface used by :class:`~fleetcheck.store.RemoteStore`.

    Having a protocol here makes it easy to pass test doubles while
    keeping the production implementation (`HttpTransport`) concrete.
    """

    async def get_json(self, url: str, params: Mapping[str, str] | None = None) -> Any:
        ...

    async def post_json(self, url: str, payload: Mapping[str, Any]) -> Any:
        ...


class HttpTransport:
    """aiohttp transport speaking plain JSON to the web-app backend.

    POST bodies are sent as ``text/plain`` so the backend never sees a
    CORS preflight it cannot answer; the body is still JSON.
    """

    def __init__(self, http_session: aiohttp.ClientSession, *, timeout: float = 30.0) -> None:
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    async def get_json(self, url: str, params: Mapping[str, str] | None = None) -> Any:
        headers = {"accept": "application/json", "cache-control": "no-store", "user-agent": USER_AGENT}
        _logger.debug("GET %s params=%s", url, dict(params or {}))
        text = await self._request("GET", url, headers=headers, params=params)
        try:
            result = json.loads(text)
        except json.JSONDecodeError as exc:
            raise TransportError(f"Invalid JSON from {url}: {text[:200]}", url=url) from exc
        _logger.debug("GET %s -> %s", url, redact_for_log(result, max_items=3))
        return result

    async def post_json(self, url: str, payload: Mapping[str, Any]) -> Any:
        """POST *payload*; return the decoded reply, or ``None`` if it is not JSON.

        The backend answers writes through a redirect whose body is not
        always JSON; only an explicit ``error`` field counts as a failure.
        """
        headers = {"content-type": JSON_CONTENT_TYPE, "user-agent": USER_AGENT}
        body = json.dumps(payload, ensure_ascii=False, separators=(",", ":"))
        _logger.debug("POST %s %s", url, redact_for_log(payload))
        text = await self._request("POST", url, headers=headers, data=body.encode("utf-8"))
        if not text.strip():
            return None
        try:
            result = json.loads(text)
        except json.JSONDecodeError:
            _logger.debug("POST %s returned a non-JSON body", url)
            return None
        if isinstance(result, dict) and result.get("error"):
            raise TransportError(f"Remote store rejected write: {result['error']}", url=url)
        return result

    async def _request(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str],
        params: Mapping[str, str] | None = None,
        data: bytes | None = None,
    ) -> str:
        try:
            async with self._http.request(
                method,
                url,
                headers=dict(headers),
                params=dict(params) if params else None,
                data=data,
                timeout=self._timeout,
            ) as resp:
                text = await resp.text()
                if not 200 <= resp.status < 300:
                    raise TransportError(
                        f"HTTP {resp.status} from {url}: {text[:200]}",
                        status_code=resp.status,
                        url=url,
                    )
        except TransportError:
            raise
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise TransportError(f"{method} {url} failed: {exc!r}", url=url) from exc
        return text
