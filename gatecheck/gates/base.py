"""Abstract base gate with enforced lifecycle.

Every concrete gate inherits from BaseGate and implements only
``execute()``. The ``run_gate()`` wrapper is **not overridable**. It
turns whatever ``execute()`` does into exactly one ``GateResult``:

    execute returns details     -> success
    ConfigError                 -> skipped (reason = error text)
    ApiError / GateTimeoutError
    / GateAssertionError        -> failed (raw error text captured)

Anything else propagates: it is a bug in the runner, not a gate outcome.
"""

from __future__ import annotations

import abc
import logging
from collections.abc import Callable, Mapping
from datetime import datetime, timezone
from typing import Any, final

from gatecheck.config import GateCheckSettings
from gatecheck.core.errors import (
    ApiError,
    ConfigError,
    GateAssertionError,
    GateTimeoutError,
)
from gatecheck.core.redaction import redact_text
from gatecheck.host.client import HostApiClient
from gatecheck.host.probes import CredentialProbe
from gatecheck.models.components import ComponentKind
from gatecheck.models.gates import GateName, GateOutcome, GateResult
from gatecheck.models.plugins import PluginTarget

logger = logging.getLogger(__name__)

PriorResults = Mapping[GateName, GateResult]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def matches_implementation(entry: Mapping[str, Any], implementation: str) -> bool:
    """True when *entry* is an instance or schema of *implementation*.

    Compares ``implementation`` and ``implementationName``, case-insensitively.
    """
    wanted = implementation.strip().lower()
    for key in ("implementation", "implementationName"):
        value = entry.get(key)
        if isinstance(value, str) and value.strip().lower() == wanted:
            return True
    return False


def configured_component_id(
    prior: PriorResults, kind: ComponentKind
) -> int | None:
    """Component id the Configure gate selected for *kind*, if it ran."""
    configure = prior.get(GateName.CONFIGURE)
    if configure is None or configure.outcome != GateOutcome.SUCCESS:
        return None
    facts = configure.details.get("components", {}).get(kind.value, {})
    selected = facts.get("selectedId")
    return selected if isinstance(selected, int) else None


class BaseGate(abc.ABC):
    """Abstract base for all gates.

    Subclasses **must** implement:
        * ``gate_name``: the ``GateName`` this handler runs.
        * ``execute(target, prior)``: the gate's checks, returning details.

    Subclasses **must not** override ``run_gate()``.

    Parameters
    ----------
    client:
        Host API client shared by every gate of the run.
    settings:
        Timing and polling configuration.
    probe:
        Credential probe used by gates that need credentials.
    clock:
        Returns the current UTC time; injectable for deterministic tests.
    """

    def __init__(
        self,
        client: HostApiClient,
        settings: GateCheckSettings | None = None,
        *,
        probe: CredentialProbe | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.client = client
        self.settings = settings or GateCheckSettings()
        self.probe = probe or CredentialProbe()
        self._clock = clock

    # ------------------------------------------------------------------
    # Abstract interface
    # ------------------------------------------------------------------

    @property
    @abc.abstractmethod
    def gate_name(self) -> GateName:
        ...

    @abc.abstractmethod
    def execute(self, target: PluginTarget, prior: PriorResults) -> dict[str, Any]:
        """Run the gate's checks against the host.

        Parameters
        ----------
        target:
            The plugin under test.
        prior:
            Immutable results of this plugin's earlier gates.

        Returns
        -------
        dict:
            Details recorded on the ``GateResult``.
        """
        ...

    # ------------------------------------------------------------------
    # Lifecycle: NOT overridable
    # ------------------------------------------------------------------

    @final
    def run_gate(self, target: PluginTarget, prior: PriorResults) -> GateResult:
        """Execute the gate and return its single result.  **Do not override.**"""
        started = self._clock()
        errors: list[str] = []
        details: dict[str, Any] = {}
        skip_reason: str | None = None

        try:
            details = self.execute(target, prior)
        except ConfigError as exc:
            outcome = GateOutcome.SKIPPED
            skip_reason = str(exc)
            logger.info(
                "%s [%s] skipped: %s", target.name, self.gate_name.value, redact_text(skip_reason)
            )
        except (ApiError, GateTimeoutError, GateAssertionError) as exc:
            outcome = GateOutcome.FAILED
            errors.append(str(exc))
            details = dict(getattr(exc, "details", None) or {})
            logger.warning(
                "%s [%s] failed: %s", target.name, self.gate_name.value, redact_text(str(exc))
            )
        else:
            outcome = GateOutcome.SUCCESS
            logger.info("%s [%s] passed", target.name, self.gate_name.value)

        return GateResult(
            gate=self.gate_name,
            plugin=target.name,
            outcome=outcome,
            errors=errors,
            details=details,
            started_at=started,
            ended_at=self._clock(),
            skip_reason=skip_reason,
        )

    def __repr__(self) -> str:
        return f"<{type(self).__name__} gate={self.gate_name.value!r}>"
