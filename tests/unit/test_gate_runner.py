"""Tests for the GateRunner: effective gates, ordering and the skip cascade."""

from __future__ import annotations

import pytest

from gatecheck.core.gate_runner import GateRunner, compute_effective_gates
from gatecheck.gates import get_gate
from gatecheck.host.probes import CredentialProbe
from gatecheck.models.gates import (
    SEARCH_SKIPPED_REASON,
    GateName,
    GateOutcome,
    GateState,
)


@pytest.fixture
def runner(client, test_settings, probe, clock) -> GateRunner:
    return GateRunner(client, test_settings, probe=probe, clock=clock)


def _by_gate(results):
    return {r.gate: r for r in results}


class TestEffectiveGates:
    @pytest.mark.parametrize("requested,expected", [
        (None, [GateName.SCHEMA]),
        ([], [GateName.SCHEMA]),
        ([GateName.GRAB], [GateName.SCHEMA, GateName.SEARCH, GateName.GRAB]),
        ([GateName.IMPORT_LIST, GateName.CONFIGURE], [GateName.SCHEMA, GateName.CONFIGURE, GateName.IMPORT_LIST]),
        (list(GateName), [GateName.SCHEMA, GateName.CONFIGURE, GateName.SEARCH, GateName.GRAB, GateName.IMPORT_LIST]),
    ])
    def test_closure_in_order(self, requested, expected):
        assert compute_effective_gates(requested) == expected


class TestGateRunner:
    def test_full_pass(self, runner, qobuzarr):
        outcome = runner.run([qobuzarr], [GateName.GRAB])
        assert outcome.effective_gates == [GateName.SCHEMA, GateName.SEARCH, GateName.GRAB]
        assert [r.gate for r in outcome.results] == outcome.effective_gates
        assert all(r.outcome == GateOutcome.SUCCESS for r in outcome.results)
        assert outcome.failed is False
        assert len(outcome.transitions) == 6

    def test_schema_failure_skips_everything_after(self, runner, routes, qobuzarr):
        routes[("GET", "/indexer/schema")] = []
        outcome = runner.run([qobuzarr], [GateName.GRAB])
        results = _by_gate(outcome.results)
        assert results[GateName.SCHEMA].outcome == GateOutcome.FAILED
        for gate in (GateName.SEARCH, GateName.GRAB):
            assert results[gate].outcome == GateOutcome.SKIPPED
            assert results[gate].skip_reason == "upstream gate failed: Schema"
            assert results[gate].errors == []
        assert outcome.failed is True

    def test_failure_halts_independent_gates(self, runner, routes, make_target):
        routes[("GET", "/release")] = []
        target = make_target(import_list_implementation="Brainarr")
        outcome = runner.run([target], [GateName.GRAB, GateName.IMPORT_LIST])
        results = _by_gate(outcome.results)
        assert results[GateName.SEARCH].outcome == GateOutcome.FAILED
        assert results[GateName.GRAB].skip_reason == "upstream gate failed: Search"
        assert results[GateName.IMPORT_LIST].skip_reason == "upstream gate failed: Search"

    def test_search_skip_reason_reaches_grab(self, client, test_settings, clock, qobuzarr):
        runner = GateRunner(client, test_settings, probe=CredentialProbe({}), clock=clock)
        outcome = runner.run([qobuzarr], [GateName.GRAB])
        results = _by_gate(outcome.results)
        assert results[GateName.SEARCH].outcome == GateOutcome.SKIPPED
        assert results[GateName.GRAB].outcome == GateOutcome.SKIPPED
        assert results[GateName.GRAB].skip_reason == SEARCH_SKIPPED_REASON
        assert outcome.failed is False

    def test_skip_cascades_only_along_dependencies(self, client, test_settings, clock, make_target):
        runner = GateRunner(client, test_settings, probe=CredentialProbe({}), clock=clock)
        target = make_target(import_list_implementation="Brainarr")
        outcome = runner.run([target], [GateName.GRAB, GateName.IMPORT_LIST])
        results = _by_gate(outcome.results)
        assert results[GateName.GRAB].outcome == GateOutcome.SKIPPED
        assert results[GateName.IMPORT_LIST].outcome == GateOutcome.SUCCESS

    def test_cascaded_skips_never_run(self, runner, routes, qobuzarr):
        routes[("GET", "/indexer/schema")] = []
        outcome = runner.run([qobuzarr], [GateName.SEARCH])
        search = [t for t in outcome.transitions if t.gate == GateName.SEARCH]
        assert [(t.from_state, t.to_state) for t in search] == [(GateState.NOT_RUN, GateState.SKIPPED)]
        skipped = _by_gate(outcome.results)[GateName.SEARCH]
        assert skipped.started_at == skipped.ended_at

    def test_plugins_are_independent(self, runner, routes, qobuzarr, brainarr):
        routes[("GET", "/indexer/schema")] = []
        outcome = runner.run([qobuzarr, brainarr], [GateName.IMPORT_LIST])
        assert [r.plugin for r in outcome.results] == ["Qobuzarr"] * 2 + ["Brainarr"] * 2
        assert all(r.outcome == GateOutcome.FAILED or r.outcome == GateOutcome.SKIPPED
                   for r in outcome.results_for("Qobuzarr"))
        assert all(r.outcome == GateOutcome.SUCCESS for r in outcome.results_for("Brainarr"))

    def test_gate_factory_injection(self, client, test_settings, clock, qobuzarr):
        built: list[GateName] = []

        def factory(gate, *args, **kwargs):
            built.append(gate)
            return get_gate(gate, *args, **kwargs)

        runner = GateRunner(client, test_settings, clock=clock, gate_factory=factory)
        runner.run([qobuzarr], [GateName.SEARCH])
        assert built == [GateName.SCHEMA, GateName.SEARCH]

    def test_prior_results_are_read_only(self, client, test_settings, clock, qobuzarr):
        seen = []

        def factory(gate, *args, **kwargs):
            handler = get_gate(gate, *args, **kwargs)
            original = handler.execute

            def spy(target, prior):
                seen.append(prior)
                return original(target, prior)

            handler.execute = spy
            return handler

        GateRunner(client, test_settings, clock=clock, gate_factory=factory).run([qobuzarr], [GateName.SEARCH])
        with pytest.raises(TypeError):
            seen[1][GateName.GRAB] = None
        assert GateName.SCHEMA in seen[1]
