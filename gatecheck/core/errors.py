"""Exception taxonomy for gate runs.

Gate-level errors decide a single gate's outcome and never abort the run:

- ``ConfigError``       -> gate Skipped
- ``ApiError``          -> gate Failed
- ``GateTimeoutError``  -> gate Failed
- ``GateAssertionError`` -> gate Failed

Run-level errors (``RedactionSelfTestError``, ``HostNotReadyError``) are
fatal: the process should exit rather than produce a partial manifest.
"""

from __future__ import annotations


class GateCheckError(RuntimeError):
    """Base class for all gatecheck errors."""


class ConfigError(GateCheckError):
    """Missing or invalid credentials or required fields.

    Resolved by skipping the gate, not failing it.
    """


class ApiError(GateCheckError):
    """The host answered with a non-2xx status or a malformed body."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        method: str = "",
        path: str = "",
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.method = method
        self.path = path


class GateTimeoutError(GateCheckError):
    """A bounded wait loop or a single host call exceeded its deadline."""


class GateAssertionError(GateCheckError):
    """The host answered, but the state the gate expects is absent.

    *details* is kept on the failed result (e.g. what the host did list).
    """

    def __init__(self, message: str, *, details: dict | None = None) -> None:
        super().__init__(message)
        self.details = dict(details or {})


class AmbiguousSelectionError(GateCheckError):
    """More than one configured component matches a plugin.

    Never raised out of a gate: Configure records it as an unsafe
    resolution, and the manifest carries ``E2E_COMPONENT_AMBIGUOUS``.
    """

    def __init__(self, kind: str, candidate_ids: list[int], *, basis: str = "") -> None:
        matched = f" on {basis}" if basis else ""
        super().__init__(
            f"{kind}: {len(candidate_ids)} candidates match{matched} ({candidate_ids})"
        )
        self.kind = kind
        self.basis = basis
        self.candidate_ids = list(candidate_ids)


class RedactionSelfTestError(GateCheckError):
    """Redaction rules failed to catch a known secret. Fatal to the run."""


class HostNotReadyError(GateCheckError):
    """The host API never became ready within the readiness budget."""


class ManifestVersionError(GateCheckError):
    """A manifest declares a schema version this reader cannot upgrade."""
