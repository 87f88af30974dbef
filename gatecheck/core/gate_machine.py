"""Per-plugin gate state machine.

Enforces:
- Valid state transitions only (VALID_TRANSITIONS table)
- Terminal states are final
- Every transition recorded as a GateTransition, in order
"""

from __future__ import annotations

import logging

from gatecheck.models.gates import (
    VALID_TRANSITIONS,
    GateName,
    GateState,
    GateTransition,
)

logger = logging.getLogger(__name__)


class InvalidTransitionError(RuntimeError):
    """Raised when a requested state transition is not valid."""


class GateMachine:
    """Tracks the state of every (plugin, gate) pair in one run.

    Parameters
    ----------
    gates:
        The effective gates of the run, in execution order.
    """

    def __init__(self, gates: list[GateName]) -> None:
        self._gates = list(gates)
        # plugin -> {gate -> GateState}
        self._states: dict[str, dict[GateName, GateState]] = {}
        self._transitions: list[GateTransition] = []

    # ------------------------------------------------------------------
    # State management
    # ------------------------------------------------------------------

    def initialize_plugin(self, plugin: str) -> dict[GateName, GateState]:
        """Set every effective gate of *plugin* to NOT_RUN."""
        states = {gate: GateState.NOT_RUN for gate in self._gates}
        self._states[plugin] = states
        return dict(states)

    def get_state(self, plugin: str, gate: GateName) -> GateState:
        return self._states.get(plugin, {}).get(gate, GateState.NOT_RUN)

    @property
    def transitions(self) -> list[GateTransition]:
        """Every transition so far, oldest first."""
        return list(self._transitions)

    # ------------------------------------------------------------------
    # Transition logic
    # ------------------------------------------------------------------

    def transition(
        self,
        plugin: str,
        gate: GateName,
        target_state: GateState,
        *,
        reason: str | None = None,
    ) -> GateTransition:
        """Move (*plugin*, *gate*) to *target_state* and record it."""
        current = self.get_state(plugin, gate)
        allowed = VALID_TRANSITIONS.get(current, set())
        if target_state not in allowed:
            raise InvalidTransitionError(
                f"Cannot transition {plugin}/{gate.value} from {current.value} "
                f"to {target_state.value}. Allowed: {sorted(s.value for s in allowed)}"
            )

        record = GateTransition(
            plugin=plugin,
            gate=gate,
            from_state=current,
            to_state=target_state,
            reason=reason,
        )
        self._states.setdefault(plugin, {})[gate] = target_state
        self._transitions.append(record)
        logger.debug(
            "%s/%s %s -> %s", plugin, gate.value, current.value, target_state.value
        )
        return record

    def can_start(self, plugin: str, gate: GateName) -> bool:
        return self.get_state(plugin, gate) == GateState.NOT_RUN
