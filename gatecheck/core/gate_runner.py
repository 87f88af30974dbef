"""Gate runner: the ordered gate sequence per plugin, with skip cascade.

The GateRunner wires the GateMachine and the gate handlers into one
sequential execution. Plugins run in list order; each plugin's gates run
strictly in ``GATE_ORDER``. Nothing is accumulated globally: every gate
receives the immutable results of the plugin's earlier gates, and ``run``
returns a fresh ``RunOutcome``.

Cascade rules, per plugin:

- A Failed gate halts the plugin. Every remaining gate is Skipped with
  ``"upstream gate failed: <Gate>"``.
- A Skipped gate skips only the gates that depend on it. Grab behind a
  skipped Search carries ``"search gate skipped due to missing credentials"``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import datetime, timezone
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict

from gatecheck.config import GateCheckSettings
from gatecheck.core.gate_machine import GateMachine
from gatecheck.gates import get_gate
from gatecheck.gates.base import BaseGate
from gatecheck.host.client import HostApiClient
from gatecheck.host.probes import CredentialProbe
from gatecheck.models.gates import (
    GATE_DEPENDENCIES,
    GATE_ORDER,
    SEARCH_SKIPPED_REASON,
    UPSTREAM_FAILED_REASON,
    GateName,
    GateOutcome,
    GateResult,
    GateState,
    GateTransition,
)
from gatecheck.models.plugins import PluginTarget

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def compute_effective_gates(requested: Iterable[GateName] | None) -> list[GateName]:
    """Requested gates plus Schema plus prerequisite closure, in GATE_ORDER."""
    wanted: set[GateName] = {GateName.SCHEMA, *(requested or [])}
    pending = list(wanted)
    while pending:
        for dependency in GATE_DEPENDENCIES[pending.pop()]:
            if dependency not in wanted:
                wanted.add(dependency)
                pending.append(dependency)
    return [gate for gate in GATE_ORDER if gate in wanted]


class RunOutcome(BaseModel):
    """Everything one ``GateRunner.run`` produced."""

    model_config = ConfigDict(frozen=True)

    effective_gates: list[GateName]
    results: list[GateResult]
    transitions: list[GateTransition]

    @property
    def failed(self) -> bool:
        return any(r.outcome == GateOutcome.FAILED for r in self.results)

    def results_for(self, plugin: str) -> list[GateResult]:
        return [r for r in self.results if r.plugin == plugin]


class GateRunner:
    """Runs the effective gates for every plugin target against one host.

    Parameters
    ----------
    client:
        Host API client for the run.
    settings:
        Timing configuration handed to every gate.
    probe:
        Credential probe handed to every gate.
    clock:
        UTC clock for result timestamps.
    gate_factory:
        Builds a handler for a gate; defaults to the registry.
    """

    def __init__(
        self,
        client: HostApiClient,
        settings: GateCheckSettings | None = None,
        *,
        probe: CredentialProbe | None = None,
        clock: Callable[[], datetime] = _utcnow,
        gate_factory: Callable[..., BaseGate] = get_gate,
    ) -> None:
        self.client = client
        self.settings = settings or GateCheckSettings()
        self.probe = probe or CredentialProbe()
        self._clock = clock
        self._gate_factory = gate_factory

    # ------------------------------------------------------------------
    # Run lifecycle
    # ------------------------------------------------------------------

    def run(
        self,
        plugins: list[PluginTarget],
        requested_gates: Iterable[GateName] | None = None,
    ) -> RunOutcome:
        gates = compute_effective_gates(requested_gates)
        machine = GateMachine(gates)
        handlers = {
            gate: self._gate_factory(
                gate, self.client, self.settings, probe=self.probe, clock=self._clock
            )
            for gate in gates
        }
        logger.info(
            "Running gates %s for plugins %s",
            [g.value for g in gates],
            [p.name for p in plugins],
        )

        results: list[GateResult] = []
        for target in plugins:
            results.extend(self._run_plugin(target, gates, handlers, machine))
        return RunOutcome(
            effective_gates=gates,
            results=results,
            transitions=machine.transitions,
        )

    def _run_plugin(
        self,
        target: PluginTarget,
        gates: list[GateName],
        handlers: dict[GateName, BaseGate],
        machine: GateMachine,
    ) -> list[GateResult]:
        machine.initialize_plugin(target.name)
        prior: dict[GateName, GateResult] = {}
        halted_by: GateName | None = None

        for gate in gates:
            reason = self._skip_reason(gate, prior, halted_by)
            if reason is not None:
                machine.transition(target.name, gate, GateState.SKIPPED, reason=reason)
                logger.info("%s [%s] skipped: %s", target.name, gate.value, reason)
                now = self._clock()
                prior[gate] = GateResult(
                    gate=gate,
                    plugin=target.name,
                    outcome=GateOutcome.SKIPPED,
                    started_at=now,
                    ended_at=now,
                    skip_reason=reason,
                )
                continue

            machine.transition(target.name, gate, GateState.RUNNING)
            result = handlers[gate].run_gate(target, MappingProxyType(dict(prior)))
            machine.transition(
                target.name,
                gate,
                GateState(result.outcome.value),
                reason=result.skip_reason,
            )
            prior[gate] = result
            if result.outcome == GateOutcome.FAILED:
                halted_by = gate

        return [prior[gate] for gate in gates]

    @staticmethod
    def _skip_reason(
        gate: GateName,
        prior: dict[GateName, GateResult],
        halted_by: GateName | None,
    ) -> str | None:
        if halted_by is not None:
            return f"{UPSTREAM_FAILED_REASON}: {halted_by.value}"
        for dependency in GATE_DEPENDENCIES[gate]:
            upstream = prior.get(dependency)
            if upstream is None or upstream.outcome != GateOutcome.SKIPPED:
                continue
            if gate == GateName.GRAB and dependency == GateName.SEARCH:
                return SEARCH_SKIPPED_REASON
            return f"upstream gate skipped: {dependency.value}"
        return None
