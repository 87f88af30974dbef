"""Run manifest models: the versioned, redacted report of one run.

Every field has an explicit default, so a manifest always serializes all
of its keys: unknown values appear as ``null``, ``false`` or ``[]``, never
by omission. Array-typed fields use ``ArrayField`` and come back as lists
even when a legacy writer collapsed them to a scalar.

Schema history
--------------
1.0  results, summary, runner, host url, requested gates/plugins
1.1  + sources, componentIds, hostBugSuspected, redaction,
     effective gates/plugins
1.2  + per-result timing, errorCode, classification, componentResolution;
     diagnostics bundle; schemaId
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel

from gatecheck.models.classification import FailureClassification
from gatecheck.models.components import ComponentResolution, PersistenceOutcome
from gatecheck.models.context import (
    HostFingerprint,
    InstanceKeySource,
    LockPolicy,
    RedactionSelfTestResult,
    SourceProvenance,
)
from gatecheck.models.fields import ArrayField, ObjectField
from gatecheck.models.gates import GateOutcome

SCHEMA_ID = "gatecheck/run-manifest"
SCHEMA_VERSION_CURRENT = "1.2"
SCHEMA_VERSIONS: tuple[str, ...] = ("1.0", "1.1", "1.2")

_MANIFEST_CONFIG = ConfigDict(
    frozen=True,
    alias_generator=to_camel,
    populate_by_name=True,
    extra="ignore",
)


class RunnerInfo(BaseModel):
    model_config = _MANIFEST_CONFIG

    name: str = "gatecheck"
    version: str | None = None
    python_version: str | None = None
    args: ArrayField[str] = []


class ManifestResult(BaseModel):
    """One GateResult as it appears in the manifest, plus derived fields."""

    model_config = _MANIFEST_CONFIG

    gate: str
    plugin: str
    outcome: GateOutcome
    errors: ArrayField[str] = []
    error_code: str | None = None
    details: ObjectField[dict[str, Any]] = {}
    started_at: datetime | None = None
    ended_at: datetime | None = None
    duration_ms: int | None = None
    skip_reason: str | None = None
    classification: FailureClassification | None = None
    component_resolution: ObjectField[dict[str, ComponentResolution]] = {}


class ManifestSummary(BaseModel):
    model_config = _MANIFEST_CONFIG

    total_gates: int = 0
    passed: int = 0
    failed: int = 0
    skipped: int = 0
    plugins: int = 0
    overall_success: bool = True

    @model_validator(mode="after")
    def _counts_add_up(self) -> ManifestSummary:
        if self.passed + self.failed + self.skipped != self.total_gates:
            raise ValueError(
                f"summary counts do not add up: {self.passed}+{self.failed}"
                f"+{self.skipped} != {self.total_gates}"
            )
        return self

    @classmethod
    def from_results(cls, results: list[ManifestResult]) -> ManifestSummary:
        passed = sum(1 for r in results if r.outcome == GateOutcome.SUCCESS)
        failed = sum(1 for r in results if r.outcome == GateOutcome.FAILED)
        skipped = sum(1 for r in results if r.outcome == GateOutcome.SKIPPED)
        return cls(
            total_gates=len(results),
            passed=passed,
            failed=failed,
            skipped=skipped,
            plugins=len({r.plugin for r in results}),
            overall_success=failed == 0,
        )


class DiagnosticsBundle(BaseModel):
    model_config = _MANIFEST_CONFIG

    created: bool = False
    skipped: bool = False
    path: str | None = None
    sha256: str | None = None
    files: ArrayField[str] = []


class RedactionInfo(BaseModel):
    model_config = _MANIFEST_CONFIG

    applied: bool = False
    placeholder: str | None = None
    rules: ArrayField[str] = []
    self_test: ObjectField[RedactionSelfTestResult] = RedactionSelfTestResult()


class ComponentIdsBlock(BaseModel):
    model_config = _MANIFEST_CONFIG

    path: str | None = None
    instance_key: str | None = None
    instance_key_source: InstanceKeySource | None = None
    lock_policy: LockPolicy | None = None
    persistence: ObjectField[PersistenceOutcome] = PersistenceOutcome()


class HostBugSuspected(BaseModel):
    model_config = _MANIFEST_CONFIG

    detected: bool = False
    classification: str | None = None
    severity: str | None = None
    matched_line: str | None = None
    plugin: str | None = None
    gate: str | None = None


class RunManifest(BaseModel):
    """The aggregate root. Constructed once at the end of a run."""

    model_config = _MANIFEST_CONFIG

    schema_version: str = SCHEMA_VERSION_CURRENT
    schema_id: str = SCHEMA_ID
    timestamp: datetime | None = None
    run_id: str | None = None
    runner: ObjectField[RunnerInfo] = RunnerInfo()
    host: ObjectField[HostFingerprint] = HostFingerprint()
    requested_gates: ArrayField[str] = []
    effective_gates: ArrayField[str] = []
    requested_plugins: ArrayField[str] = []
    effective_plugins: ArrayField[str] = []
    results: ArrayField[ManifestResult] = []
    summary: ObjectField[ManifestSummary] = ManifestSummary()
    diagnostics: ObjectField[DiagnosticsBundle] = DiagnosticsBundle()
    redaction: ObjectField[RedactionInfo] = RedactionInfo()
    sources: ArrayField[SourceProvenance] = []
    component_ids: ObjectField[ComponentIdsBlock] = ComponentIdsBlock()
    host_bug_suspected: ObjectField[HostBugSuspected] = HostBugSuspected()

    @property
    def exit_code(self) -> int:
        """0 when every gate passed or was skipped, 1 on any failure."""
        return 0 if self.summary.failed == 0 else 1

    def to_json(self, *, indent: int | None = 2) -> str:
        return self.model_dump_json(by_alias=True, indent=indent)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
