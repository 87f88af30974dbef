"""Tests for the diagnostics bundle."""

from __future__ import annotations

import json
import zipfile

from gatecheck.core.diagnostics import write_diagnostics_bundle
from gatecheck.core.hasher import sha256_file
from gatecheck.models.manifest import ManifestResult, RunManifest


def _manifest() -> RunManifest:
    return RunManifest(
        run_id="gc-20260301-120000-abcdef",
        results=[
            ManifestResult(gate="Schema", plugin="Qobuzarr", outcome="success"),
            ManifestResult(
                gate="Search",
                plugin="Qobuzarr",
                outcome="failed",
                errors=["HTTP 401 from http://[PRIVATE-IP]:8686"],
                error_code="E2E_AUTH_MISSING",
            ),
        ],
    )


def test_bundle_contents(tmp_path):
    bundle = write_diagnostics_bundle(_manifest(), tmp_path / "diag")

    assert bundle.created is True
    assert bundle.path.endswith("gatecheck-gc-20260301-120000-abcdef.zip")
    assert bundle.files == ["errors/Qobuzarr-Search.log", "run-manifest.json"]
    assert bundle.sha256 == sha256_file(bundle.path)

    with zipfile.ZipFile(bundle.path) as zf:
        manifest = json.loads(zf.read("run-manifest.json"))
        log = zf.read("errors/Qobuzarr-Search.log").decode()
    assert manifest["runId"] == "gc-20260301-120000-abcdef"
    assert "# errorCode: E2E_AUTH_MISSING" in log
    assert "HTTP 401" in log


def test_no_errors_only_manifest(tmp_path):
    bundle = write_diagnostics_bundle(RunManifest(run_id="gc-1"), tmp_path)
    assert bundle.files == ["run-manifest.json"]
