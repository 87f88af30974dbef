"""Search gate: an album search returns releases from the plugin's indexer."""

from __future__ import annotations

import logging
from typing import Any

from gatecheck.core.errors import ConfigError, GateAssertionError
from gatecheck.gates.base import (
    BaseGate,
    PriorResults,
    configured_component_id,
    matches_implementation,
)
from gatecheck.models.components import ComponentKind
from gatecheck.models.gates import GateName
from gatecheck.models.plugins import PluginTarget

logger = logging.getLogger(__name__)


def _field_value(component: dict[str, Any], name: str) -> Any:
    for field in component.get("fields", []) or []:
        if isinstance(field, dict) and field.get("name") == name:
            return field.get("value")
    return None


class SearchGate(BaseGate):
    """Run ``AlbumSearch`` and assert releases are attributed to the indexer.

    Skipped, not failed, when the plugin has no indexer, no indexer is
    configured on the host, or its credentials are absent.
    """

    @property
    def gate_name(self) -> GateName:
        return GateName.SEARCH

    def execute(self, target: PluginTarget, prior: PriorResults) -> dict[str, Any]:
        indexer = self._indexer(target, prior)
        indexer_id = indexer["id"]
        self._probe_credentials(target, indexer)

        if target.search_album_id is None:
            raise ConfigError(f"{target.name}: no search album id configured")
        album_id = target.search_album_id

        command = self.client.run_command("AlbumSearch", albumIds=[album_id])
        self.client.wait_for_command(
            command["id"],
            timeout_seconds=self.settings.search_timeout_seconds,
            interval_seconds=self.settings.poll_interval_seconds,
        )

        releases = self.client.releases(album_id)
        attributed = [r for r in releases if r.get("indexerId") == indexer_id]
        details: dict[str, Any] = {
            "indexerId": indexer_id,
            "albumId": album_id,
            "commandId": command["id"],
            "releaseCount": len(releases),
            "attributedCount": len(attributed),
        }
        if not attributed:
            raise GateAssertionError(
                f"No releases attributed to {target.name} indexer {indexer_id} "
                f"({len(releases)} releases from other indexers)",
                details=details,
            )

        first = attributed[0]
        details["firstRelease"] = {
            "guid": first.get("guid"),
            "title": first.get("title"),
            "indexerId": indexer_id,
        }
        logger.info(
            "%s: %d of %d releases attributed to indexer %d",
            target.name, len(attributed), len(releases), indexer_id,
        )
        return details

    def _indexer(self, target: PluginTarget, prior: PriorResults) -> dict[str, Any]:
        implementation = target.indexer_implementation
        if not implementation:
            raise ConfigError(f"{target.name} declares no indexer")

        configured = [
            e for e in self.client.list_components(ComponentKind.INDEXER)
            if matches_implementation(e, implementation)
        ]
        selected = configured_component_id(prior, ComponentKind.INDEXER)
        if selected is not None:
            configured = [e for e in configured if e.get("id") == selected] or configured
        if not configured or not isinstance(configured[0].get("id"), int):
            raise ConfigError(f"No configured {implementation} indexer found")
        return configured[0]

    def _probe_credentials(self, target: PluginTarget, indexer: dict[str, Any]) -> None:
        missing = self.probe.missing_env_vars(target.credential_env_vars)
        if missing:
            raise ConfigError(
                f"{target.name} credentials not configured: missing env vars {', '.join(missing)}"
            )
        if target.credential_file_field:
            path = _field_value(indexer, target.credential_file_field)
            if not self.probe.file_exists(path):
                raise ConfigError(
                    f"{target.name} credential file missing at {path or '<unset>'} "
                    f"({target.credential_file_field})"
                )
