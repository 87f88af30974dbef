"""ImportList gate: the plugin's import list syncs without error."""

from __future__ import annotations

import logging
from typing import Any

from gatecheck.core.errors import ConfigError
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


class ImportListGate(BaseGate):

    @property
    def gate_name(self) -> GateName:
        return GateName.IMPORT_LIST

    def execute(self, target: PluginTarget, prior: PriorResults) -> dict[str, Any]:
        implementation = target.import_list_implementation
        if implementation is None:
            raise ConfigError(f"{target.name} declares no import list")

        list_id = configured_component_id(prior, ComponentKind.IMPORT_LIST)
        if list_id is None:
            configured = [
                e for e in self.client.list_components(ComponentKind.IMPORT_LIST)
                if matches_implementation(e, implementation) and isinstance(e.get("id"), int)
            ]
            if not configured:
                raise ConfigError(f"No configured {implementation} import list found")
            list_id = configured[0]["id"]

        command = self.client.run_command("ImportListSync", definitionId=list_id)
        final = self.client.wait_for_command(
            command["id"],
            timeout_seconds=self.settings.import_list_timeout_seconds,
            interval_seconds=self.settings.poll_interval_seconds,
        )
        logger.info("%s: import list %d synced", target.name, list_id)
        return {
            "importListId": list_id,
            "commandId": command["id"],
            "commandStatus": final.get("status"),
            "message": final.get("message"),
        }
