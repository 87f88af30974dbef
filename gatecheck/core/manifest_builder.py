"""Manifest builder: raw gate results + run context -> one RunManifest.

Build steps, per result:

1. derive component resolutions from the raw details
2. pick an error code (explicit ``e2eErrorCode`` > ambiguity > text pattern)
3. classify failed results' error text for host-loading failures
4. redact errors, skip reason and details; normalize detail keys

and once per run: summary counts, host-bug flag, persistence outcome,
redaction metadata, and redaction of runner args and host URL.

Output is deterministic for a given clock and run-id factory.
"""

from __future__ import annotations

import logging
import platform
import uuid
from collections.abc import Callable, Iterable
from datetime import datetime, timezone

from gatecheck import __version__
from gatecheck.core.classifier import classify_failure
from gatecheck.core.error_codes import (
    E2EErrorCode,
    classify_error_code,
    explicit_error_code,
)
from gatecheck.core.keys import normalize_keys
from gatecheck.core.persistence import derive_persistence_outcome
from gatecheck.core.redaction import (
    REDACTED,
    REDACTION_RULES,
    redact_args,
    redact_mapping,
    redact_text,
    redact_url,
)
from gatecheck.core.resolver import has_ambiguous_resolution, resolve_components
from gatecheck.models.context import RunContext
from gatecheck.models.gates import GateOutcome, GateResult
from gatecheck.models.manifest import (
    ComponentIdsBlock,
    DiagnosticsBundle,
    HostBugSuspected,
    ManifestResult,
    ManifestSummary,
    RedactionInfo,
    RunManifest,
    RunnerInfo,
)

logger = logging.getLogger(__name__)

HOST_BUG_SEVERITY = "host_bug"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def default_run_id(now: datetime) -> str:
    return f"gc-{now.strftime('%Y%m%d-%H%M%S')}-{uuid.uuid4().hex[:6]}"


def build_result(result: GateResult) -> ManifestResult:
    """Turn one raw GateResult into its redacted manifest form."""
    resolutions = resolve_components(result.details)

    error_code = explicit_error_code(result.details)
    if error_code is None and has_ambiguous_resolution(resolutions):
        error_code = E2EErrorCode.COMPONENT_AMBIGUOUS.value
    if error_code is None and result.outcome == GateOutcome.FAILED:
        code = classify_error_code(result.errors)
        error_code = code.value if code else None

    classification = None
    if result.outcome == GateOutcome.FAILED:
        found = classify_failure(result.errors)
        classification = found if found.detected else None

    return ManifestResult(
        gate=result.gate.value,
        plugin=result.plugin,
        outcome=result.outcome,
        errors=[redact_text(e) for e in result.errors],
        error_code=error_code,
        details=redact_mapping(normalize_keys(result.details)),
        started_at=result.started_at,
        ended_at=result.ended_at,
        duration_ms=result.duration_ms,
        skip_reason=redact_text(result.skip_reason) if result.skip_reason else None,
        classification=classification,
        component_resolution=resolutions,
    )


def detect_host_bug(results: Iterable[ManifestResult]) -> HostBugSuspected:
    """First failed result whose classification points at the host."""
    for result in results:
        found = result.classification
        if found is not None and found.severity == HOST_BUG_SEVERITY:
            return HostBugSuspected(
                detected=True,
                classification=found.classification,
                severity=found.severity,
                matched_line=found.matched_line,
                plugin=result.plugin,
                gate=result.gate,
            )
    return HostBugSuspected()


class ManifestBuilder:
    """Composes the run manifest.

    Parameters
    ----------
    clock:
        Returns the manifest timestamp (UTC).
    run_id_factory:
        Builds the run id from the timestamp.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], datetime] = _utcnow,
        run_id_factory: Callable[[datetime], str] = default_run_id,
    ) -> None:
        self._clock = clock
        self._run_id_factory = run_id_factory

    def build(
        self,
        results: Iterable[GateResult],
        context: RunContext,
        *,
        diagnostics: DiagnosticsBundle | None = None,
    ) -> RunManifest:
        manifest_results = [build_result(r) for r in results]
        now = self._clock()

        policy = context.component_ids
        component_ids = ComponentIdsBlock(
            path=policy.path,
            instance_key=policy.instance_key,
            instance_key_source=policy.instance_key_source,
            lock_policy=policy.lock_policy,
            persistence=derive_persistence_outcome(context.persistence),
        )

        manifest = RunManifest(
            timestamp=now,
            run_id=self._run_id_factory(now),
            runner=RunnerInfo(
                version=__version__,
                python_version=platform.python_version(),
                args=redact_args(context.runner_args),
            ),
            host=context.host.model_copy(update={"url": redact_url(context.host.url)}),
            requested_gates=context.requested_gates,
            effective_gates=context.effective_gates,
            requested_plugins=context.requested_plugins,
            effective_plugins=context.effective_plugins,
            results=manifest_results,
            summary=ManifestSummary.from_results(manifest_results),
            diagnostics=diagnostics or DiagnosticsBundle(skipped=context.diagnostics_skipped),
            redaction=RedactionInfo(
                applied=True,
                placeholder=REDACTED,
                rules=[rule.name for rule in REDACTION_RULES],
                self_test=context.redaction_self_test,
            ),
            sources=context.sources,
            component_ids=component_ids,
            host_bug_suspected=detect_host_bug(manifest_results),
        )
        logger.info(
            "Manifest %s: %d passed, %d failed, %d skipped",
            manifest.run_id,
            manifest.summary.passed,
            manifest.summary.failed,
            manifest.summary.skipped,
        )
        return manifest
