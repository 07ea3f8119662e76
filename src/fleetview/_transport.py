"""HTTP transport for the Firestore REST API."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from fleetview._constants import USER_AGENT
from fleetview._redact import redact_for_log
from fleetview.config import FleetConfig
from fleetview.exceptions import FleetTransportError

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural transport interface used by the Firestore store.

    Having a protocol here makes it easy to pass test doubles while
    keeping the production implementation (`RestTransport`) concrete.
    """

    async def request_json(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        body: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]: ...


class RestTransport:
    """JSON-over-HTTPS transport with bearer auth and API key handling."""

    def __init__(self, config: FleetConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session

    def _headers(self) -> dict[str, str]:
        headers = {
            "accept": "application/json",
            "content-type": "application/json; charset=UTF-8",
            "user-agent": USER_AGENT,
        }
        if self._config.auth_token:
            headers["authorization"] = f"Bearer {self._config.auth_token}"
        return headers

    async def request_json(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        body: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Send a request to ``{base_url}/v1/{path}`` and return the JSON object reply."""
        url = f"{self._config.base_url.rstrip('/')}/v1/{path}"
        query: dict[str, Any] = {k: v for k, v in (params or {}).items() if v is not None}
        if self._config.api_key:
            query["key"] = self._config.api_key

        _logger.debug("%s %s params=%s body=%s", method, url, redact_for_log(query), redact_for_log(body))

        timeout = aiohttp.ClientTimeout(total=self._config.request_timeout)
        try:
            async with self._http.request(
                method,
                url,
                params=query,
                json=body,
                headers=self._headers(),
                timeout=timeout,
            ) as resp:
                text = await resp.text()
                if resp.status < 200 or resp.status >= 300:
                    raise FleetTransportError(
                        f"HTTP {resp.status} from {path}: {text[:200]}",
                        status_code=resp.status,
                        endpoint=path,
                    )
        except FleetTransportError:
            raise
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise FleetTransportError(
                f"Request to {path} failed: {exc!r}",
                endpoint=path,
            ) from exc

        if not text.strip():
            return {}
        try:
            result = json.loads(text)
        except json.JSONDecodeError as exc:
            raise FleetTransportError(
                f"Invalid JSON from {path}: {text[:200]}",
                endpoint=path,
            ) from exc
        if not isinstance(result, dict):
            raise FleetTransportError(f"Expected a JSON object from {path}", endpoint=path)
        return result
