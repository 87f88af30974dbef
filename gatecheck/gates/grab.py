"""Grab gate: a found release can be sent to the download queue."""

from __future__ import annotations

import logging
from typing import Any

from gatecheck.core.errors import ConfigError
from gatecheck.gates.base import BaseGate, PriorResults
from gatecheck.models.gates import GateName, GateOutcome
from gatecheck.models.plugins import PluginTarget

logger = logging.getLogger(__name__)


def _correlates(item: dict[str, Any], release: dict[str, Any]) -> bool:
    guid = release.get("guid")
    if guid and guid in (item.get("releaseGuid"), item.get("downloadId")):
        return True
    title = release.get("title")
    return bool(title) and str(item.get("title", "")).strip().lower() == str(title).strip().lower()


class GrabGate(BaseGate):

    @property
    def gate_name(self) -> GateName:
        return GateName.GRAB

    def execute(self, target: PluginTarget, prior: PriorResults) -> dict[str, Any]:
        search = prior.get(GateName.SEARCH)
        if search is None or search.outcome != GateOutcome.SUCCESS:
            raise ConfigError("search gate did not produce a release to grab")
        release = search.details.get("firstRelease") or {}
        if not release.get("guid"):
            raise ConfigError("search gate recorded no release guid")

        self.client.grab_release(release["guid"], release["indexerId"])
        logger.info("%s: grabbed %s", target.name, release.get("title"))

        item = self.client.poll_until(
            self.client.queue,
            lambda queue: next((q for q in queue if _correlates(q, release)), None),
            timeout_seconds=self.settings.grab_timeout_seconds,
            interval_seconds=self.settings.poll_interval_seconds,
            description=f"'{release.get('title')}' in the download queue",
        )
        return {
            "releaseGuid": release["guid"],
            "releaseTitle": release.get("title"),
            "queueItemId": item.get("id"),
            "downloadClient": item.get("downloadClient"),
            "queueStatus": item.get("status"),
        }
