"""Blocking HTTP client for the host application's ``/api/v1`` API.

One ``requests.Session`` per run; every call carries the API-key header
and a fixed timeout. Errors map onto the gate taxonomy:

- non-2xx status or a body that is not JSON -> ``ApiError``
- ``requests.Timeout``                      -> ``GateTimeoutError``
- any other ``requests.RequestException``   -> ``ApiError``

Polling helpers use a fixed interval and a hard deadline. Only the
readiness probe backs off exponentially (capped).
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any

import requests

from gatecheck.core.errors import ApiError, GateTimeoutError, HostNotReadyError
from gatecheck.core.redaction import redact_text
from gatecheck.models.components import ComponentKind

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-Api-Key"
API_PREFIX = "/api/v1"

COMMAND_DONE_STATES = frozenset({"completed"})
COMMAND_FAILED_STATES = frozenset({"failed", "aborted", "cancelled", "orphaned"})


def _response_text(response: Any, limit: int = 512) -> str:
    text = getattr(response, "text", "") or ""
    return text[:limit]


class HostApiClient:
    """Thin synchronous client over the host HTTP API.

    Parameters
    ----------
    base_url:
        Host root URL, e.g. ``http://localhost:8686``.
    api_key:
        Sent as ``X-Api-Key`` on every request.
    timeout_seconds:
        Per-call timeout.
    session:
        Injected ``requests.Session`` (or a stub with the same surface).
    sleep / monotonic:
        Injectable for tests of the polling loops.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        *,
        timeout_seconds: float = 30.0,
        session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._session = session or requests.Session()
        self._headers = {API_KEY_HEADER: api_key} if api_key else {}
        self._sleep = sleep
        self._monotonic = monotonic

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: Any = None,
    ) -> Any:
        """Issue one request and return the decoded JSON body."""
        url = f"{self.base_url}{API_PREFIX}{path}"
        try:
            response = self._session.request(
                method,
                url,
                params=params,
                json=json_body,
                headers=self._headers,
                timeout=self.timeout_seconds,
            )
        except requests.Timeout as exc:
            raise GateTimeoutError(
                f"{method} {path} timed out after {self.timeout_seconds:.0f}s"
            ) from exc
        except requests.RequestException as exc:
            raise ApiError(f"{method} {path} failed: {exc}", method=method, path=path) from exc

        status = response.status_code
        if status < 200 or status >= 300:
            raise ApiError(
                f"{method} {path} returned HTTP {status}: {_response_text(response)}",
                status_code=status,
                method=method,
                path=path,
            )
        if status == 204 or not (getattr(response, "text", "") or "").strip():
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise ApiError(
                f"{method} {path} returned a malformed body: {_response_text(response, 128)}",
                status_code=status,
                method=method,
                path=path,
            ) from exc

    def get(self, path: str, **params: Any) -> Any:
        return self.request("GET", path, params=params or None)

    def post(self, path: str, body: Any = None) -> Any:
        return self.request("POST", path, json_body=body)

    def _expect_list(self, payload: Any, path: str) -> list[dict[str, Any]]:
        if not isinstance(payload, list):
            raise ApiError(f"GET {path} returned {type(payload).__name__}, expected a list", path=path)
        return [item for item in payload if isinstance(item, dict)]

    # ------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------

    def system_status(self) -> dict[str, Any]:
        payload = self.get("/system/status")
        if not isinstance(payload, dict):
            raise ApiError("GET /system/status returned a non-object body", path="/system/status")
        return payload

    def list_schema(self, kind: ComponentKind) -> list[dict[str, Any]]:
        path = f"/{kind.api_resource}/schema"
        return self._expect_list(self.get(path), path)

    def list_components(self, kind: ComponentKind) -> list[dict[str, Any]]:
        path = f"/{kind.api_resource}"
        return self._expect_list(self.get(path), path)

    def create_component(self, kind: ComponentKind, body: dict[str, Any]) -> dict[str, Any]:
        payload = self.post(f"/{kind.api_resource}", body)
        if not isinstance(payload, dict):
            raise ApiError(f"POST /{kind.api_resource} returned a non-object body")
        return payload

    def run_command(self, name: str, **body: Any) -> dict[str, Any]:
        payload = self.post("/command", {"name": name, **body})
        if not isinstance(payload, dict) or "id" not in payload:
            raise ApiError(f"POST /command {name} returned no command id", path="/command")
        return payload

    def get_command(self, command_id: int) -> dict[str, Any]:
        payload = self.get(f"/command/{command_id}")
        if not isinstance(payload, dict):
            raise ApiError(f"GET /command/{command_id} returned a non-object body")
        return payload

    def releases(self, album_id: int) -> list[dict[str, Any]]:
        return self._expect_list(self.get("/release", albumId=album_id), "/release")

    def grab_release(self, guid: str, indexer_id: int) -> dict[str, Any]:
        payload = self.post("/release", {"guid": guid, "indexerId": indexer_id})
        return payload if isinstance(payload, dict) else {}

    def queue(self) -> list[dict[str, Any]]:
        payload = self.get("/queue", includeUnknownArtistItems="true")
        # Paged shape: {"records": [...]}; older hosts return the bare list.
        if isinstance(payload, dict):
            payload = payload.get("records", [])
        return self._expect_list(payload, "/queue")

    # ------------------------------------------------------------------
    # Bounded waits
    # ------------------------------------------------------------------

    def wait_for_command(
        self,
        command_id: int,
        *,
        timeout_seconds: float,
        interval_seconds: float,
    ) -> dict[str, Any]:
        """Poll a command at a fixed interval until it finishes.

        Returns the final command body. A failed command raises
        ``ApiError``; running past *timeout_seconds* raises
        ``GateTimeoutError``.
        """
        deadline = self._monotonic() + timeout_seconds
        while True:
            command = self.get_command(command_id)
            status = str(command.get("status", "")).lower()
            if status in COMMAND_DONE_STATES:
                return command
            if status in COMMAND_FAILED_STATES:
                message = command.get("message") or command.get("exception") or status
                raise ApiError(f"Command {command_id} ({command.get('name')}) {status}: {message}")
            if self._monotonic() >= deadline:
                raise GateTimeoutError(
                    f"Command {command_id} still {status or 'pending'} after {timeout_seconds:.0f}s"
                )
            self._sleep(interval_seconds)

    def poll_until(
        self,
        fetch: Callable[[], Any],
        predicate: Callable[[Any], Any],
        *,
        timeout_seconds: float,
        interval_seconds: float,
        description: str,
    ) -> Any:
        """Call *fetch* at a fixed interval until *predicate* returns truthy.

        Returns the predicate's value.
        """
        deadline = self._monotonic() + timeout_seconds
        while True:
            found = predicate(fetch())
            if found:
                return found
            if self._monotonic() >= deadline:
                raise GateTimeoutError(f"Timed out after {timeout_seconds:.0f}s waiting for {description}")
            self._sleep(interval_seconds)

    def wait_until_ready(
        self,
        *,
        timeout_seconds: float,
        initial_delay_seconds: float = 1.0,
        max_delay_seconds: float = 10.0,
    ) -> dict[str, Any]:
        """Probe ``/system/status`` with capped exponential backoff.

        Raises ``HostNotReadyError`` when the budget runs out.
        """
        deadline = self._monotonic() + timeout_seconds
        delay = initial_delay_seconds
        attempt = 0
        while True:
            attempt += 1
            try:
                status = self.system_status()
            except (ApiError, GateTimeoutError) as exc:
                last_error = redact_text(str(exc))
                logger.debug("Host not ready (attempt %d): %s", attempt, last_error)
            else:
                logger.info(
                    "Host ready after %d attempt(s): version %s",
                    attempt,
                    status.get("version", "unknown"),
                )
                return status
            if self._monotonic() + delay > deadline:
                raise HostNotReadyError(
                    f"Host API not ready after {attempt} attempt(s) in {timeout_seconds:.0f}s: {last_error}"
                )
            self._sleep(delay)
            delay = min(delay * 2, max_delay_seconds)
