"""Shared test fixtures for gatecheck."""

from __future__ import annotations

import json
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import pytest

from gatecheck.config import GateCheckSettings
from gatecheck.host.client import HostApiClient
from gatecheck.host.probes import CredentialProbe
from gatecheck.models.plugins import PluginTarget

HOST_URL = "http://lidarr.test:8686"


# ---------------------------------------------------------------------------
# Stub HTTP layer
# ---------------------------------------------------------------------------


class _StubResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, text: str | None = None) -> None:
        self.status_code = status_code
        self._payload = payload
        if text is None:
            text = "" if payload is None else json.dumps(payload)
        self.text = text

    def json(self) -> Any:
        return json.loads(self.text)


class _Sequence:
    """Successive responses for one route; the last one repeats."""

    def __init__(self, *items: Any) -> None:
        self.items = list(items)

    def next(self) -> Any:
        return self.items.pop(0) if len(self.items) > 1 else self.items[0]


class _StubSession:
    """Routes ``(METHOD, path)`` to canned payloads and records every call.

    A route value may be a payload, a ``_StubResponse``, an exception to
    raise, a ``_Sequence`` of those, or a callable taking the request
    keyword arguments and returning one of those.
    """

    def __init__(self, routes: dict[tuple[str, str], Any] | None = None) -> None:
        # Shared with the ``routes`` fixture so tests can override after setup.
        self.routes: dict[tuple[str, str], Any] = routes if routes is not None else {}
        self.calls: list[dict[str, Any]] = []

    def request(self, method, url, *, params=None, json=None, headers=None, timeout=None):
        path = url.split("/api/v1", 1)[1]
        self.calls.append({
            "method": method,
            "path": path,
            "params": params,
            "json": json,
            "headers": headers,
            "timeout": timeout,
        })
        route = self.routes.get((method, path))
        if route is None:
            return _StubResponse(404, text=f"no route for {method} {path}")
        if isinstance(route, _Sequence):
            route = route.next()
        if callable(route) and not isinstance(route, type):
            route = route(params=params, json=json)
        if isinstance(route, BaseException):
            raise route
        if isinstance(route, _StubResponse):
            return route
        return _StubResponse(200, route)

    def paths(self, method: str | None = None) -> list[str]:
        return [c["path"] for c in self.calls if method is None or c["method"] == method]


class FakeMonotonic:
    """Monotonic clock advanced only by the paired ``sleep``."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class StepClock:
    """UTC clock that advances a fixed step on every call."""

    def __init__(self, start: datetime | None = None, step_ms: int = 250) -> None:
        self.current = start or datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)
        self.step = timedelta(milliseconds=step_ms)

    def __call__(self) -> datetime:
        value = self.current
        self.current = value + self.step
        return value


# ---------------------------------------------------------------------------
# Host fixtures
# ---------------------------------------------------------------------------


def healthy_routes() -> dict[tuple[str, str], Any]:
    """A host where Qobuzarr and Brainarr pass every gate."""
    return {
        ("GET", "/system/status"): {"version": "2.9.6.4552", "branch": "plugins"},
        ("GET", "/indexer/schema"): [
            {"implementation": "Newznab", "implementationName": "Newznab"},
            {
                "implementation": "Qobuzarr",
                "implementationName": "Qobuzarr",
                "fields": [{"name": "authToken", "value": ""}],
            },
        ],
        ("GET", "/downloadclient/schema"): [
            {"implementation": "QobuzarrDownloadClient", "implementationName": "Qobuzarr"},
        ],
        ("GET", "/importlist/schema"): [
            {"implementation": "Brainarr", "implementationName": "Brainarr"},
        ],
        ("GET", "/indexer"): [
            {"id": 4, "implementation": "Newznab", "implementationName": "Newznab"},
            {"id": 12, "implementation": "Qobuzarr", "implementationName": "Qobuzarr"},
        ],
        ("GET", "/downloadclient"): [
            {"id": 3, "implementation": "QobuzarrDownloadClient", "implementationName": "Qobuzarr"},
        ],
        ("GET", "/importlist"): [
            {"id": 8, "implementation": "Brainarr", "implementationName": "Brainarr"},
        ],
        ("POST", "/command"): lambda params, json: {"id": 100, "name": json["name"], "status": "queued"},
        ("GET", "/command/100"): _Sequence(
            {"id": 100, "status": "started"},
            {"id": 100, "status": "completed"},
        ),
        ("GET", "/release"): [
            {"guid": "nzb-9", "title": "Other - Album", "indexerId": 4},
            {"guid": "qobuz-1", "title": "Artist - Album", "indexerId": 12},
        ],
        ("POST", "/release"): {},
        ("GET", "/queue"): _Sequence(
            {"records": []},
            {"records": [{"id": 55, "title": "Artist - Album", "downloadClient": "Qobuzarr", "status": "downloading"}]},
        ),
    }


@pytest.fixture
def routes() -> dict[tuple[str, str], Any]:
    return healthy_routes()


@pytest.fixture
def stub_session(routes: dict[tuple[str, str], Any]) -> _StubSession:
    return _StubSession(routes)


@pytest.fixture
def fake_monotonic() -> FakeMonotonic:
    return FakeMonotonic()


@pytest.fixture
def client(stub_session: _StubSession, fake_monotonic: FakeMonotonic) -> HostApiClient:
    return HostApiClient(
        HOST_URL,
        "test-api-key",
        timeout_seconds=5,
        session=stub_session,
        sleep=fake_monotonic.sleep,
        monotonic=fake_monotonic,
    )


@pytest.fixture
def clock() -> StepClock:
    return StepClock()


@pytest.fixture
def probe() -> CredentialProbe:
    return CredentialProbe({"QOBUZARR_AUTH_TOKEN": "qz-token"})


@pytest.fixture
def test_settings(tmp_path: Path) -> GateCheckSettings:
    return GateCheckSettings(
        host_url=HOST_URL,
        api_key="test-api-key",
        poll_interval_seconds=1,
        search_timeout_seconds=10,
        grab_timeout_seconds=10,
        import_list_timeout_seconds=10,
        ready_timeout_seconds=5,
        component_ids_path=tmp_path / "component-ids.json",
        manifest_path=tmp_path / "run-manifest.json",
        diagnostics_dir=tmp_path / "diagnostics",
        _env_file=None,
    )


# ---------------------------------------------------------------------------
# Plugin targets
# ---------------------------------------------------------------------------


@pytest.fixture
def qobuzarr() -> PluginTarget:
    return PluginTarget(
        name="Qobuzarr",
        indexer_implementation="Qobuzarr",
        download_client_implementation="QobuzarrDownloadClient",
        credential_env_vars=["QOBUZARR_AUTH_TOKEN"],
        search_album_id=7,
    )


@pytest.fixture
def brainarr() -> PluginTarget:
    return PluginTarget(name="Brainarr", import_list_implementation="Brainarr")


@pytest.fixture
def make_target() -> Callable[..., PluginTarget]:
    def _factory(name: str = "Qobuzarr", **overrides: Any) -> PluginTarget:
        fields: dict[str, Any] = {
            "indexer_implementation": "Qobuzarr",
            "download_client_implementation": "QobuzarrDownloadClient",
            "credential_env_vars": ["QOBUZARR_AUTH_TOKEN"],
            "search_album_id": 7,
        }
        fields.update(overrides)
        return PluginTarget(name=name, **fields)

    return _factory
