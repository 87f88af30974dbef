"""Run orchestrator: the central coordinator for one gatecheck run.

The Orchestrator wires together the HostApiClient, GateRunner,
ComponentIdStore and ManifestBuilder into a single run:

    redaction self-test -> host readiness -> run context -> gates
        -> component-id persistence -> manifest -> diagnostics bundle

Run-level failures (self-test, host readiness) raise; gate-level
failures only ever show up in the manifest.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path

from gatecheck.config import GateCheckSettings
from gatecheck.core.diagnostics import write_diagnostics_bundle
from gatecheck.core.errors import RedactionSelfTestError
from gatecheck.core.gate_runner import GateRunner, RunOutcome, compute_effective_gates
from gatecheck.core.manifest_builder import ManifestBuilder
from gatecheck.core.persistence import ComponentIdStore
from gatecheck.core.redaction import run_redaction_self_test
from gatecheck.core.resolver import resolve_components
from gatecheck.core.run_context import build_component_id_policy, build_run_context
from gatecheck.host.client import HostApiClient
from gatecheck.host.probes import CredentialProbe
from gatecheck.models.components import ComponentResolution, PersistenceContext
from gatecheck.models.context import ComponentIdPolicy
from gatecheck.models.gates import GateName, GateOutcome
from gatecheck.models.manifest import RunManifest
from gatecheck.models.plugins import PluginTarget

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def write_manifest(manifest: RunManifest, path: Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(manifest.to_json() + "\n", encoding="utf-8")
    logger.info("Manifest written to %s", path)
    return path


class Orchestrator:
    """Runs gates for a set of plugins and builds the run manifest.

    Parameters
    ----------
    settings:
        Runner configuration. Uses defaults if not provided.
    client:
        Host API client. Built from *settings* if not provided.
    probe:
        Credential probe handed to gates.
    clock:
        UTC clock shared by gate results and the manifest.
    """

    def __init__(
        self,
        settings: GateCheckSettings | None = None,
        *,
        client: HostApiClient | None = None,
        probe: CredentialProbe | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.settings = settings or GateCheckSettings()
        self.client = client or HostApiClient(
            self.settings.host_url,
            self.settings.api_key,
            timeout_seconds=self.settings.request_timeout_seconds,
        )
        self.runner = GateRunner(self.client, self.settings, probe=probe, clock=clock)
        self.builder = ManifestBuilder(clock=clock)
        self.policy: ComponentIdPolicy = build_component_id_policy(self.settings)
        self.store = ComponentIdStore(
            self.settings.component_ids_path, self.policy.lock_policy
        )

    # ------------------------------------------------------------------
    # Run lifecycle
    # ------------------------------------------------------------------

    def run(
        self,
        targets: list[PluginTarget],
        requested_gates: list[GateName],
        *,
        requested_gate_names: list[str] | None = None,
        requested_plugins: list[str] | None = None,
        skip_diagnostics: bool = False,
        runner_args: list[str] | None = None,
    ) -> RunManifest:
        self_test = run_redaction_self_test()
        if not self_test.passed:
            if not skip_diagnostics:
                raise RedactionSelfTestError(
                    "Redaction self-test failed; refusing to run. "
                    f"Failures: {'; '.join(self_test.failures)}"
                )
            logger.warning("Redaction self-test failed; continuing because diagnostics are skipped.")

        status = self.client.wait_until_ready(
            timeout_seconds=self.settings.ready_timeout_seconds,
            initial_delay_seconds=self.settings.ready_initial_delay_seconds,
            max_delay_seconds=self.settings.ready_max_delay_seconds,
        )

        targets = self._with_preferred_ids(targets)
        context = build_run_context(
            self.settings,
            requested_gates=requested_gate_names or [g.value for g in requested_gates],
            effective_gates=compute_effective_gates(requested_gates),
            requested_plugins=requested_plugins or [],
            effective_plugins=[t.name for t in targets],
            host_status=status,
            redaction_self_test=self_test,
            runner_args=runner_args,
            diagnostics_skipped=skip_diagnostics,
        )

        outcome = self.runner.run(targets, requested_gates)
        context = context.model_copy(update={"persistence": self._persist(outcome)})

        manifest = self.builder.build(outcome.results, context)
        if not skip_diagnostics:
            bundle = write_diagnostics_bundle(manifest, self.settings.diagnostics_dir)
            manifest = manifest.model_copy(update={"diagnostics": bundle})
        return manifest

    # ------------------------------------------------------------------
    # Component ids
    # ------------------------------------------------------------------

    def _with_preferred_ids(self, targets: list[PluginTarget]) -> list[PluginTarget]:
        """Merge ids remembered for this instance under each target's own."""
        if not self.policy.enabled or self.policy.instance_key is None:
            return list(targets)
        merged: list[PluginTarget] = []
        for target in targets:
            remembered = self.store.preferred_ids(self.policy.instance_key, target.name)
            if remembered:
                target = target.model_copy(
                    update={"preferred_ids": {**remembered, **target.preferred_ids}}
                )
            merged.append(target)
        return merged

    def _persist(self, outcome: RunOutcome) -> PersistenceContext:
        resolutions: dict[str, dict[str, ComponentResolution]] = {}
        for result in outcome.results:
            if result.gate == GateName.CONFIGURE and result.outcome == GateOutcome.SUCCESS:
                found = resolve_components(result.details)
                if found:
                    resolutions[result.plugin] = found
        return self.store.persist(
            self.policy.instance_key or "",
            resolutions,
            enabled=self.policy.enabled,
        )
