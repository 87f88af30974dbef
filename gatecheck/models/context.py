"""Run context models: host fingerprint, provenance, component-id policy."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from gatecheck.models.components import PersistenceContext
from gatecheck.models.fields import ArrayField

_MANIFEST_CONFIG = ConfigDict(
    frozen=True,
    alias_generator=to_camel,
    populate_by_name=True,
)


class SourceOrigin(str, Enum):
    GIT = "git"
    ENV = "env"
    UNKNOWN = "unknown"


class SettingSource(str, Enum):
    DEFAULT = "default"
    ENV = "env"


class InstanceKeySource(str, Enum):
    EXPLICIT = "explicit"
    COMPUTED = "computed"


class HostFingerprint(BaseModel):
    """Identifies the host instance the run was executed against."""

    model_config = _MANIFEST_CONFIG

    url: str | None = None
    container_id: str | None = None
    container_started_at: str | None = None
    image_tag: str | None = None
    image_id: str | None = None
    image_digest: str | None = None
    reported_version: str | None = None
    reported_branch: str | None = None


class SourceProvenance(BaseModel):
    """Which revision of a source repository the run exercised."""

    model_config = _MANIFEST_CONFIG

    name: str
    sha: str | None = None
    version: str | None = None
    origin: SourceOrigin = SourceOrigin.UNKNOWN


class LockPolicy(BaseModel):
    """Lock settings for the component-id store, with where each came from."""

    model_config = _MANIFEST_CONFIG

    timeout_seconds: float = 10.0
    timeout_source: SettingSource = SettingSource.DEFAULT
    retry_delay_ms: int = 100
    retry_delay_source: SettingSource = SettingSource.DEFAULT
    stale_seconds: float = 300.0
    stale_source: SettingSource = SettingSource.DEFAULT


class ComponentIdPolicy(BaseModel):
    model_config = _MANIFEST_CONFIG

    enabled: bool = False
    path: str | None = None
    instance_key: str | None = None
    instance_key_source: InstanceKeySource = InstanceKeySource.COMPUTED
    lock_policy: LockPolicy = LockPolicy()


class RedactionSelfTestResult(BaseModel):
    """Outcome of running the redaction rules over known-secret fixtures."""

    model_config = _MANIFEST_CONFIG

    ran: bool = False
    passed: bool = False
    checked: int = 0
    failures: ArrayField[str] = []


class RunContext(BaseModel):
    """Everything known about a run before its gates execute.

    Built once by ``gatecheck.core.run_context.build_run_context``. The
    persistence sub-context is attached after gates finish, by returning
    a copy, never by mutation.
    """

    model_config = _MANIFEST_CONFIG

    host: HostFingerprint = HostFingerprint()
    requested_gates: ArrayField[str] = []
    effective_gates: ArrayField[str] = []
    requested_plugins: ArrayField[str] = []
    effective_plugins: ArrayField[str] = []
    sources: ArrayField[SourceProvenance] = []
    component_ids: ComponentIdPolicy = ComponentIdPolicy()
    redaction_self_test: RedactionSelfTestResult = RedactionSelfTestResult()
    runner_args: ArrayField[str] = []
    diagnostics_skipped: bool = False
    persistence: PersistenceContext | None = None
