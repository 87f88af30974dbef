"""Manifest schema versions and the upgrade chain between them.

Each schema version is an explicit step. ``UPGRADES`` maps a version to
the function that lifts a raw manifest dict from it to the next version;
``parse_manifest`` applies them in order and validates the result as the
current ``RunManifest``. Fields a version did not have are filled with
``None`` / ``False`` / ``[]`` by the upgrade, never probed for at read
sites.
"""

from __future__ import annotations

import copy
import json
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

from gatecheck.core.errors import ManifestVersionError
from gatecheck.core.resolver import resolve_components
from gatecheck.models.fields import coerce_array
from gatecheck.models.manifest import (
    SCHEMA_ID,
    SCHEMA_VERSION_CURRENT,
    RunManifest,
)

logger = logging.getLogger(__name__)

RawManifest = dict[str, Any]

_LEGACY_VERSION = "1.0"


def _version_tuple(version: str) -> tuple[int, int]:
    major, _, minor = version.partition(".")
    try:
        return int(major), int(minor or 0)
    except ValueError:
        raise ManifestVersionError(f"Unparseable schemaVersion {version!r}") from None


def _fill(block: dict[str, Any], key: str, default: Any) -> None:
    """Set *key* when it is absent or null; ``setdefault`` keeps a null."""
    if block.get(key) is None:
        block[key] = default


def upgrade_1_0_to_1_1(raw: RawManifest) -> RawManifest:
    """1.1 added provenance, component-id policy, host-bug flag and redaction."""
    _fill(raw, "sources", [])
    _fill(raw, "componentIds", {
        "path": None,
        "instanceKey": None,
        "instanceKeySource": None,
        "lockPolicy": None,
        "persistence": {
            "enabled": False,
            "eligible": False,
            "attempted": False,
            "updated": False,
            "reason": "unknown",
        },
    })
    _fill(raw, "hostBugSuspected", {"detected": False})
    _fill(raw, "redaction", {"applied": False, "rules": []})
    summary = raw.get("summary")
    if isinstance(summary, dict) and "totalGates" not in summary:
        summary["totalGates"] = sum(
            int(summary.get(key) or 0) for key in ("passed", "failed", "skipped")
        )
    _fill(raw, "effectiveGates", coerce_array(raw.get("requestedGates")))
    _fill(raw, "effectivePlugins", coerce_array(raw.get("requestedPlugins")))
    raw["schemaVersion"] = "1.1"
    return raw


def upgrade_1_1_to_1_2(raw: RawManifest) -> RawManifest:
    """1.2 added per-result timing, error codes and derived resolutions."""
    results = coerce_array(raw.get("results"))
    upgraded: list[Any] = []
    for result in results:
        if not isinstance(result, dict):
            upgraded.append(result)
            continue
        _fill(result, "startedAt", None)
        _fill(result, "endedAt", None)
        _fill(result, "durationMs", None)
        _fill(result, "errorCode", None)
        _fill(result, "classification", None)
        if result.get("componentResolution") is None:
            resolutions = resolve_components(result.get("details"))
            result["componentResolution"] = {
                kind: r.model_dump(mode="json", by_alias=True)
                for kind, r in resolutions.items()
            }
        upgraded.append(result)
    raw["results"] = upgraded
    _fill(raw, "diagnostics", {"created": False, "skipped": False, "files": []})
    _fill(raw, "schemaId", SCHEMA_ID)
    raw["schemaVersion"] = "1.2"
    return raw


UPGRADES: dict[str, Callable[[RawManifest], RawManifest]] = {
    "1.0": upgrade_1_0_to_1_1,
    "1.1": upgrade_1_1_to_1_2,
}


def upgrade_manifest(raw: RawManifest) -> RawManifest:
    """Lift *raw* to the current schema version. Does not modify *raw*."""
    data = copy.deepcopy(raw)
    version = str(data.get("schemaVersion") or _LEGACY_VERSION)
    current = _version_tuple(SCHEMA_VERSION_CURRENT)
    found = _version_tuple(version)

    if found[0] != current[0]:
        raise ManifestVersionError(
            f"Manifest schemaVersion {version} is not readable by schema "
            f"{SCHEMA_VERSION_CURRENT} readers"
        )
    if found > current:
        # Newer minor: same major promises additive changes only.
        logger.info("Reading newer manifest %s as %s.", version, SCHEMA_VERSION_CURRENT)
        return data

    data["schemaVersion"] = f"{found[0]}.{found[1]}"
    while data["schemaVersion"] != SCHEMA_VERSION_CURRENT:
        step = UPGRADES.get(data["schemaVersion"])
        if step is None:
            raise ManifestVersionError(
                f"No upgrade path from schemaVersion {data['schemaVersion']}"
            )
        data = step(data)
    return data


def parse_manifest(raw: RawManifest | str | bytes) -> RunManifest:
    """Parse a manifest of any supported version into a ``RunManifest``."""
    if isinstance(raw, (str, bytes)):
        raw = json.loads(raw)
    if not isinstance(raw, dict):
        raise ManifestVersionError("Manifest root must be a JSON object")
    return RunManifest.model_validate(upgrade_manifest(raw))


def load_manifest(path: Path) -> RunManifest:
    return parse_manifest(Path(path).read_text(encoding="utf-8"))
