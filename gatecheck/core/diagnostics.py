"""Diagnostics bundle: a zip of the redacted manifest and per-gate error logs.

Only redacted text ever goes into the bundle. The metadata returned
(path, sha256, member list) is recorded in the manifest.
"""

from __future__ import annotations

import logging
import zipfile
from pathlib import Path

from gatecheck.core.hasher import sha256_file
from gatecheck.models.manifest import DiagnosticsBundle, RunManifest

logger = logging.getLogger(__name__)


def _error_log(manifest: RunManifest) -> dict[str, str]:
    """``errors/<plugin>-<gate>.log`` -> redacted error text, failed gates only."""
    logs: dict[str, str] = {}
    for result in manifest.results:
        if not result.errors:
            continue
        name = f"errors/{result.plugin}-{result.gate}.log".replace(" ", "_")
        lines = [f"# {result.plugin} {result.gate} {result.outcome.value}"]
        if result.error_code:
            lines.append(f"# errorCode: {result.error_code}")
        lines.extend(result.errors)
        logs[name] = "\n".join(lines) + "\n"
    return logs


def write_diagnostics_bundle(manifest: RunManifest, directory: Path) -> DiagnosticsBundle:
    """Write ``gatecheck-<run id>.zip`` under *directory*."""
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"gatecheck-{manifest.run_id or 'run'}.zip"

    members = {"run-manifest.json": manifest.to_json() + "\n", **_error_log(manifest)}
    with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for name in sorted(members):
            zf.writestr(name, members[name])

    logger.info("Diagnostics bundle written to %s (%d files)", path, len(members))
    return DiagnosticsBundle(
        created=True,
        skipped=False,
        path=str(path),
        sha256=sha256_file(path),
        files=sorted(members),
    )
