"""Schema gate: the host has loaded the plugin and lists its components."""

from __future__ import annotations

import logging
from typing import Any

from gatecheck.core.errors import GateAssertionError
from gatecheck.gates.base import BaseGate, PriorResults, matches_implementation
from gatecheck.models.gates import GateName
from gatecheck.models.plugins import PluginTarget

logger = logging.getLogger(__name__)


class SchemaGate(BaseGate):
    """Assert every implementation the plugin contributes is in the host schema.

    A plugin that contributes nothing cannot be checked and fails here.
    """

    @property
    def gate_name(self) -> GateName:
        return GateName.SCHEMA

    def execute(self, target: PluginTarget, prior: PriorResults) -> dict[str, Any]:
        components = target.components
        if not components:
            raise GateAssertionError(
                f"Plugin {target.name} declares no indexer, download client or import list"
            )

        found: dict[str, str] = {}
        missing: list[str] = []
        available: dict[str, list[str]] = {}
        for kind, implementation in components:
            schema = self.client.list_schema(kind)
            match = next(
                (entry for entry in schema if matches_implementation(entry, implementation)),
                None,
            )
            if match is None:
                missing.append(f"{kind.display_name} '{implementation}'")
                available[kind.value] = sorted(
                    str(entry.get("implementation")) for entry in schema
                )
                continue
            found[kind.value] = str(match.get("implementation") or implementation)
            logger.debug("%s: %s schema entry %s present", target.name, kind.value, implementation)

        if missing:
            raise GateAssertionError(
                f"{target.name} not found in host schema: {', '.join(missing)}",
                details={"found": found, "available": available},
            )
        return {"found": found}
