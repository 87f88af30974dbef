"""Gate state machine models: gate names, states, transitions, results."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class GateName(str, Enum):
    """A discrete verification stage executed per plugin."""

    SCHEMA = "Schema"
    CONFIGURE = "Configure"
    SEARCH = "Search"
    GRAB = "Grab"
    IMPORT_LIST = "ImportList"

    @classmethod
    def parse(cls, value: str) -> GateName:
        """Case-insensitive lookup by value (``"importlist"`` -> IMPORT_LIST)."""
        wanted = value.strip().lower().replace("-", "").replace("_", "")
        for member in cls:
            if member.value.lower() == wanted:
                return member
        raise ValueError(
            f"Unknown gate {value!r}. Known gates: {[m.value for m in cls]}"
        )


class GateOutcome(str, Enum):
    """Terminal outcome of a gate as reported in the manifest."""

    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


class GateState(str, Enum):
    """Strict state model for each (plugin, gate) pair."""

    NOT_RUN = "not_run"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"

    @property
    def is_terminal(self) -> bool:
        return not VALID_TRANSITIONS[self]


# Valid state transitions, enforced by GateMachine.
# NOT_RUN -> SKIPPED covers cascaded skips of gates that never started.
VALID_TRANSITIONS: dict[GateState, set[GateState]] = {
    GateState.NOT_RUN: {GateState.RUNNING, GateState.SKIPPED},
    GateState.RUNNING: {GateState.SUCCESS, GateState.FAILED, GateState.SKIPPED},
    GateState.SUCCESS: set(),  # terminal
    GateState.FAILED: set(),  # terminal
    GateState.SKIPPED: set(),  # terminal
}


# Fixed execution order. Schema -> Search -> Grab is the core sequence;
# Configure and ImportList extend it.
GATE_ORDER: list[GateName] = [
    GateName.SCHEMA,
    GateName.CONFIGURE,
    GateName.SEARCH,
    GateName.GRAB,
    GateName.IMPORT_LIST,
]

# gate -> gates whose success it needs. A skip cascades along these edges only.
GATE_DEPENDENCIES: dict[GateName, list[GateName]] = {
    GateName.SCHEMA: [],
    GateName.CONFIGURE: [GateName.SCHEMA],
    GateName.SEARCH: [GateName.SCHEMA],
    GateName.GRAB: [GateName.SEARCH],
    GateName.IMPORT_LIST: [GateName.SCHEMA],
}

UPSTREAM_FAILED_REASON = "upstream gate failed"
SEARCH_SKIPPED_REASON = "search gate skipped due to missing credentials"


class GateTransition(BaseModel):
    """Records a single state transition for the run's audit trail."""

    model_config = ConfigDict(frozen=True)

    plugin: str
    gate: GateName
    from_state: GateState
    to_state: GateState
    reason: str | None = None
    timestamp_utc: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )


class GateResult(BaseModel):
    """The raw result of one gate for one plugin.

    Created once by the gate runner; consumed by the manifest builder.
    Errors are captured verbatim here and redacted only when the manifest
    is built.
    """

    model_config = ConfigDict(frozen=True)

    gate: GateName
    plugin: str
    outcome: GateOutcome
    errors: list[str] = []
    details: dict[str, Any] = {}
    started_at: datetime | None = None
    ended_at: datetime | None = None
    skip_reason: str | None = None

    @property
    def duration_ms(self) -> int | None:
        if self.started_at is None or self.ended_at is None:
            return None
        return int((self.ended_at - self.started_at).total_seconds() * 1000)
