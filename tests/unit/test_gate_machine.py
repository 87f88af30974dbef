"""Tests for the GateMachine: valid transitions only, every transition recorded."""

from __future__ import annotations

import pytest

from gatecheck.core.gate_machine import GateMachine, InvalidTransitionError
from gatecheck.models.gates import GateName, GateState


@pytest.fixture
def machine() -> GateMachine:
    m = GateMachine([GateName.SCHEMA, GateName.SEARCH, GateName.GRAB])
    m.initialize_plugin("Qobuzarr")
    return m


class TestGateMachine:
    def test_initialize_plugin(self):
        m = GateMachine([GateName.SCHEMA, GateName.SEARCH])
        states = m.initialize_plugin("Qobuzarr")
        assert states == {GateName.SCHEMA: GateState.NOT_RUN, GateName.SEARCH: GateState.NOT_RUN}

    def test_run_to_success(self, machine):
        machine.transition("Qobuzarr", GateName.SCHEMA, GateState.RUNNING)
        record = machine.transition("Qobuzarr", GateName.SCHEMA, GateState.SUCCESS)
        assert record.from_state == GateState.RUNNING
        assert record.to_state == GateState.SUCCESS
        assert machine.get_state("Qobuzarr", GateName.SCHEMA) == GateState.SUCCESS

    def test_cascade_skip_without_running(self, machine):
        record = machine.transition(
            "Qobuzarr", GateName.GRAB, GateState.SKIPPED, reason="upstream gate failed: Schema"
        )
        assert record.reason == "upstream gate failed: Schema"

    def test_not_run_to_success_rejected(self, machine):
        with pytest.raises(InvalidTransitionError):
            machine.transition("Qobuzarr", GateName.SCHEMA, GateState.SUCCESS)

    @pytest.mark.parametrize("terminal", [GateState.SUCCESS, GateState.FAILED, GateState.SKIPPED])
    def test_terminal_states_are_final(self, machine, terminal):
        machine.transition("Qobuzarr", GateName.SEARCH, GateState.RUNNING)
        machine.transition("Qobuzarr", GateName.SEARCH, terminal)
        with pytest.raises(InvalidTransitionError, match="Cannot transition"):
            machine.transition("Qobuzarr", GateName.SEARCH, GateState.RUNNING)

    def test_transitions_recorded_in_order(self, machine):
        machine.transition("Qobuzarr", GateName.SCHEMA, GateState.RUNNING)
        machine.transition("Qobuzarr", GateName.SCHEMA, GateState.FAILED)
        machine.transition("Qobuzarr", GateName.SEARCH, GateState.SKIPPED)
        pairs = [(t.gate, t.to_state) for t in machine.transitions]
        assert pairs == [
            (GateName.SCHEMA, GateState.RUNNING),
            (GateName.SCHEMA, GateState.FAILED),
            (GateName.SEARCH, GateState.SKIPPED),
        ]

    def test_plugins_are_independent(self, machine):
        machine.initialize_plugin("Brainarr")
        machine.transition("Qobuzarr", GateName.SCHEMA, GateState.RUNNING)
        assert machine.get_state("Brainarr", GateName.SCHEMA) == GateState.NOT_RUN
        assert machine.can_start("Brainarr", GateName.SCHEMA)
        assert not machine.can_start("Qobuzarr", GateName.SCHEMA)
