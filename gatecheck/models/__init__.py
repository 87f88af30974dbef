"""gatecheck data models: all Pydantic v2, all frozen (immutable)."""

from gatecheck.models.classification import FailureClassification
from gatecheck.models.components import (
    ComponentKind,
    ComponentResolution,
    MatchedOn,
    PersistenceContext,
    PersistenceOutcome,
    PersistenceReason,
)
from gatecheck.models.context import (
    ComponentIdPolicy,
    HostFingerprint,
    InstanceKeySource,
    LockPolicy,
    RedactionSelfTestResult,
    RunContext,
    SettingSource,
    SourceOrigin,
    SourceProvenance,
)
from gatecheck.models.gates import (
    GATE_DEPENDENCIES,
    GATE_ORDER,
    VALID_TRANSITIONS,
    GateName,
    GateOutcome,
    GateResult,
    GateState,
    GateTransition,
)
from gatecheck.models.manifest import (
    SCHEMA_VERSION_CURRENT,
    ManifestResult,
    ManifestSummary,
    RunManifest,
)
from gatecheck.models.plugins import DEFAULT_PLUGIN_TARGETS, PluginTarget

__all__ = [
    # Gates
    "GATE_DEPENDENCIES",
    "GATE_ORDER",
    "VALID_TRANSITIONS",
    "GateName",
    "GateOutcome",
    "GateResult",
    "GateState",
    "GateTransition",
    # Components
    "ComponentKind",
    "ComponentResolution",
    "MatchedOn",
    "PersistenceContext",
    "PersistenceOutcome",
    "PersistenceReason",
    # Context
    "ComponentIdPolicy",
    "HostFingerprint",
    "InstanceKeySource",
    "LockPolicy",
    "RedactionSelfTestResult",
    "RunContext",
    "SettingSource",
    "SourceOrigin",
    "SourceProvenance",
    # Manifest
    "FailureClassification",
    "SCHEMA_VERSION_CURRENT",
    "ManifestResult",
    "ManifestSummary",
    "RunManifest",
    # Plugins
    "DEFAULT_PLUGIN_TARGETS",
    "PluginTarget",
]
