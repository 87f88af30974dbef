"""Component provenance and persistence outcome models."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel

from gatecheck.models.fields import ArrayField

_MANIFEST_CONFIG = ConfigDict(
    frozen=True,
    alias_generator=to_camel,
    populate_by_name=True,
)


class ComponentKind(str, Enum):
    """A plugin-contributed integration point registered with the host."""

    INDEXER = "indexer"
    DOWNLOAD_CLIENT = "downloadClient"
    IMPORT_LIST = "importList"

    @property
    def api_resource(self) -> str:
        """Host API resource segment, e.g. ``downloadclient``."""
        return self.value.lower()

    @property
    def display_name(self) -> str:
        return {
            ComponentKind.INDEXER: "Indexer",
            ComponentKind.DOWNLOAD_CLIENT: "Download client",
            ComponentKind.IMPORT_LIST: "Import list",
        }[self]


class MatchedOn(str, Enum):
    """Normalized classification of how a component id was determined."""

    PREFERRED_ID = "preferredId"
    IMPLEMENTATION_NAME = "implementationName"
    IMPLEMENTATION = "implementation"
    CREATED = "created"
    NONE = "none"


class ComponentResolution(BaseModel):
    """Normalized provenance record for one component kind.

    Derived from raw gate details by ``gatecheck.core.resolver``; never
    mutated, only recomputed.
    """

    model_config = _MANIFEST_CONFIG

    selected_id: int | None = None
    candidate_ids: ArrayField[int] = []
    strategy: str | None = None
    matched_on: MatchedOn = MatchedOn.NONE
    safe_to_persist: bool = False

    @model_validator(mode="after")
    def _check_invariants(self) -> ComponentResolution:
        if self.selected_id is None and self.matched_on != MatchedOn.NONE:
            raise ValueError("matchedOn must be 'none' when selectedId is null")
        if self.safe_to_persist:
            if self.selected_id is None:
                raise ValueError("safeToPersist requires a selectedId")
            if len(self.candidate_ids) > 1:
                raise ValueError("safeToPersist is forbidden with multiple candidates")
            if self.matched_on == MatchedOn.NONE:
                raise ValueError("safeToPersist requires a recognized matchedOn")
        return self


class PersistenceReason(str, Enum):
    DISABLED = "disabled"
    NOT_ELIGIBLE = "not_eligible"
    LOCK_TIMEOUT = "lock_timeout"
    NO_CHANGES = "no_changes"
    IO_ERROR = "io_error"
    WRITTEN = "written"
    UNKNOWN = "unknown"


class PersistenceContext(BaseModel):
    """What the component-id store reports about its write attempt.

    Values are caller claims; ``derive_persistence_outcome`` decides what
    they mean.
    """

    model_config = _MANIFEST_CONFIG

    enabled: bool = False
    eligible: bool = False
    attempted: bool = False
    wrote: bool = False
    reason: str | None = None
    path: str | None = None


class PersistenceOutcome(BaseModel):
    """Canonical outcome of the component-id persistence step."""

    model_config = _MANIFEST_CONFIG

    enabled: bool = False
    eligible: bool = False
    attempted: bool = False
    updated: bool = False
    reason: PersistenceReason = PersistenceReason.UNKNOWN

    @model_validator(mode="after")
    def _updated_implies_attempted(self) -> PersistenceOutcome:
        if self.updated and not self.attempted:
            raise ValueError("updated=true requires attempted=true")
        return self
