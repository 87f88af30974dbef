"""Configure gate: find, or create, the configured instance of each component.

Resolution order per component kind:

1. preferred id remembered from an earlier run, if it still exists
2. instances whose ``implementationName`` matches
3. instances whose ``implementation`` matches
4. nothing configured: create one from the schema template

More than one match at a step is ambiguous. The gate still passes, but
the raw facts it records (strategy ``ambiguous:<basis>`` plus every
candidate id) resolve to ``safeToPersist=false`` downstream.
"""

from __future__ import annotations

import copy
import logging
from typing import Any

from gatecheck.core.errors import AmbiguousSelectionError, GateAssertionError
from gatecheck.core.error_codes import ERROR_CODE_DETAIL_KEY, E2EErrorCode
from gatecheck.gates.base import BaseGate, PriorResults, matches_implementation
from gatecheck.models.components import ComponentKind
from gatecheck.models.gates import GateName
from gatecheck.models.plugins import PluginTarget

logger = logging.getLogger(__name__)


def _ids(entries: list[dict[str, Any]]) -> list[int]:
    return sorted(e["id"] for e in entries if isinstance(e.get("id"), int))


def _by_field(entries: list[dict[str, Any]], field: str, wanted: str) -> list[dict[str, Any]]:
    wanted = wanted.strip().lower()
    return [
        e for e in entries
        if isinstance(e.get(field), str) and e[field].strip().lower() == wanted
    ]


def _apply_settings(template: dict[str, Any], settings: dict[str, object]) -> dict[str, Any]:
    """Fill schema ``fields`` values from *settings* (by field name)."""
    body = copy.deepcopy(template)
    body.pop("id", None)
    for field in body.get("fields", []) or []:
        if isinstance(field, dict) and field.get("name") in settings:
            field["value"] = settings[field["name"]]
    body["enable"] = True
    return body


class ConfigureGate(BaseGate):

    @property
    def gate_name(self) -> GateName:
        return GateName.CONFIGURE

    def execute(self, target: PluginTarget, prior: PriorResults) -> dict[str, Any]:
        components: dict[str, dict[str, Any]] = {}
        ambiguous: list[str] = []
        for kind, implementation in target.components:
            try:
                components[kind.value] = self._resolve(target, kind, implementation)
            except AmbiguousSelectionError as exc:
                components[kind.value] = {
                    "strategy": f"ambiguous:{exc.basis}",
                    "selectedId": exc.candidate_ids[0],
                    "candidateIds": exc.candidate_ids,
                    "implementation": implementation,
                }
                ambiguous.append(str(exc))
                logger.warning("%s: %s", target.name, exc)

        details: dict[str, Any] = {"components": components}
        if ambiguous:
            details[ERROR_CODE_DETAIL_KEY] = E2EErrorCode.COMPONENT_AMBIGUOUS.value
            details["ambiguities"] = ambiguous
        return details

    def _resolve(
        self, target: PluginTarget, kind: ComponentKind, implementation: str
    ) -> dict[str, Any]:
        configured = [
            e for e in self.client.list_components(kind)
            if matches_implementation(e, implementation)
        ]

        preferred = target.preferred_ids.get(kind.value)
        if preferred is not None:
            hits = [e for e in configured if e.get("id") == preferred]
            if hits:
                return self._facts("preferredId", preferred, [preferred], implementation)
            logger.info(
                "%s: preferred %s id %d no longer configured", target.name, kind.value, preferred
            )

        for basis in ("implementationName", "implementation"):
            hits = _by_field(configured, basis, implementation)
            ids = _ids(hits)
            if len(ids) > 1:
                raise AmbiguousSelectionError(kind.value, ids, basis=basis)
            if len(ids) == 1:
                return self._facts(basis, ids[0], ids, implementation)

        created = self._create(target, kind, implementation)
        return self._facts("created", created, [created], implementation)

    def _create(self, target: PluginTarget, kind: ComponentKind, implementation: str) -> int:
        template = next(
            (e for e in self.client.list_schema(kind) if matches_implementation(e, implementation)),
            None,
        )
        if template is None:
            raise GateAssertionError(
                f"Cannot create {kind.display_name.lower()} for {target.name}: "
                f"'{implementation}' missing from host schema"
            )
        body = _apply_settings(template, target.component_settings.get(kind.value, {}))
        body["name"] = f"{target.name} (gatecheck)"
        created = self.client.create_component(kind, body)
        component_id = created.get("id")
        if not isinstance(component_id, int):
            raise GateAssertionError(
                f"Host did not return an id for the created {kind.display_name.lower()}"
            )
        logger.info("%s: created %s id %d", target.name, kind.value, component_id)
        return component_id

    @staticmethod
    def _facts(
        strategy: str, selected_id: int, candidate_ids: list[int], implementation: str
    ) -> dict[str, Any]:
        return {
            "strategy": strategy,
            "selectedId": selected_id,
            "candidateIds": candidate_ids,
            "implementation": implementation,
        }
