"""Tests for HostApiClient transport, error mapping and bounded waits."""

from __future__ import annotations

import pytest
import requests

from conftest import HOST_URL, _Sequence, _StubResponse
from gatecheck.core.errors import ApiError, GateTimeoutError, HostNotReadyError
from gatecheck.host.client import HostApiClient
from gatecheck.models.components import ComponentKind


class TestTransport:
    def test_headers_timeout_and_url(self, client, stub_session):
        client.system_status()
        call = stub_session.calls[0]
        assert call["method"] == "GET"
        assert call["path"] == "/system/status"
        assert call["headers"] == {"X-Api-Key": "test-api-key"}
        assert call["timeout"] == 5
        assert call["params"] is None

    def test_no_key_no_header(self, stub_session):
        HostApiClient(HOST_URL + "/", session=stub_session).system_status()
        assert stub_session.calls[0]["headers"] == {}

    def test_non_2xx_is_api_error(self, client, routes):
        routes[("GET", "/indexer")] = _StubResponse(401, text="Unauthorized")
        with pytest.raises(ApiError, match="HTTP 401") as info:
            client.list_components(ComponentKind.INDEXER)
        assert info.value.status_code == 401
        assert info.value.path == "/indexer"

    def test_malformed_body_is_api_error(self, client, routes):
        routes[("GET", "/system/status")] = _StubResponse(200, text="<html>starting</html>")
        with pytest.raises(ApiError, match="malformed body"):
            client.system_status()

    def test_empty_body_is_none(self, client, routes):
        routes[("GET", "/system/status")] = _StubResponse(204)
        assert client.get("/system/status") is None

    def test_timeout_maps_to_gate_timeout(self, client, routes):
        routes[("GET", "/release")] = requests.Timeout("read timed out")
        with pytest.raises(GateTimeoutError, match="timed out after 5s"):
            client.releases(7)

    def test_connection_error_is_api_error(self, client, routes):
        routes[("GET", "/indexer/schema")] = requests.ConnectionError("refused")
        with pytest.raises(ApiError, match="failed: refused"):
            client.list_schema(ComponentKind.INDEXER)

    def test_list_endpoint_rejects_object(self, client, routes):
        routes[("GET", "/importlist")] = {"records": []}
        with pytest.raises(ApiError, match="expected a list"):
            client.list_components(ComponentKind.IMPORT_LIST)


class TestEndpoints:
    def test_schema_path_per_kind(self, client, stub_session):
        client.list_schema(ComponentKind.DOWNLOAD_CLIENT)
        assert stub_session.paths() == ["/downloadclient/schema"]

    def test_run_command_body(self, client, stub_session):
        command = client.run_command("AlbumSearch", albumIds=[7])
        assert command["id"] == 100
        assert stub_session.calls[0]["json"] == {"name": "AlbumSearch", "albumIds": [7]}

    def test_run_command_without_id(self, client, routes):
        routes[("POST", "/command")] = {"status": "queued"}
        with pytest.raises(ApiError, match="no command id"):
            client.run_command("ImportListSync", definitionId=8)

    def test_releases_params(self, client, stub_session):
        releases = client.releases(7)
        assert [r["guid"] for r in releases] == ["nzb-9", "qobuz-1"]
        assert stub_session.calls[0]["params"] == {"albumId": 7}

    def test_grab_body(self, client, stub_session):
        client.grab_release("qobuz-1", 12)
        assert stub_session.calls[0]["json"] == {"guid": "qobuz-1", "indexerId": 12}

    def test_queue_paged_shape(self, client, routes):
        routes[("GET", "/queue")] = {"records": [{"id": 1}, "junk"]}
        assert client.queue() == [{"id": 1}]

    def test_queue_bare_list(self, client, routes, stub_session):
        routes[("GET", "/queue")] = [{"id": 2}]
        assert client.queue() == [{"id": 2}]
        assert stub_session.calls[0]["params"] == {"includeUnknownArtistItems": "true"}


class TestWaits:
    def test_wait_for_command_completes(self, client, fake_monotonic):
        command = client.wait_for_command(100, timeout_seconds=10, interval_seconds=2)
        assert command["status"] == "completed"
        assert fake_monotonic.sleeps == [2]

    def test_wait_for_command_failed(self, client, routes):
        routes[("GET", "/command/100")] = {
            "id": 100, "name": "AlbumSearch", "status": "failed", "message": "Indexer error",
        }
        with pytest.raises(ApiError, match="failed: Indexer error"):
            client.wait_for_command(100, timeout_seconds=10, interval_seconds=1)

    def test_wait_for_command_deadline(self, client, routes, fake_monotonic):
        routes[("GET", "/command/100")] = {"id": 100, "status": "started"}
        with pytest.raises(GateTimeoutError, match="still started after 5s"):
            client.wait_for_command(100, timeout_seconds=5, interval_seconds=1)
        assert fake_monotonic.sleeps == [1, 1, 1, 1, 1]

    def test_poll_until_returns_predicate_value(self, client, fake_monotonic):
        found = client.poll_until(
            client.queue,
            lambda items: items[0] if items else None,
            timeout_seconds=10,
            interval_seconds=3,
            description="queue item",
        )
        assert found["id"] == 55
        assert fake_monotonic.sleeps == [3]

    def test_poll_until_deadline(self, client, routes):
        routes[("GET", "/queue")] = {"records": []}
        with pytest.raises(GateTimeoutError, match="waiting for queue item"):
            client.poll_until(
                client.queue, bool, timeout_seconds=4, interval_seconds=2, description="queue item",
            )

    def test_ready_backoff_is_capped(self, client, routes, fake_monotonic):
        routes[("GET", "/system/status")] = _StubResponse(503, text="starting")
        with pytest.raises(HostNotReadyError, match="HTTP 503"):
            client.wait_until_ready(timeout_seconds=30, initial_delay_seconds=1, max_delay_seconds=4)
        assert fake_monotonic.sleeps == [1, 2, 4, 4, 4, 4, 4, 4]

    def test_ready_after_transient_failures(self, client, routes, fake_monotonic):
        routes[("GET", "/system/status")] = _Sequence(
            _StubResponse(503, text="starting"),
            requests.ConnectionError("refused"),
            {"version": "2.9.6.4552"},
        )
        status = client.wait_until_ready(timeout_seconds=30, initial_delay_seconds=1, max_delay_seconds=8)
        assert status["version"] == "2.9.6.4552"
        assert fake_monotonic.sleeps == [1, 2]
