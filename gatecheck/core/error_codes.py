"""Standardized ``E2E_*`` error codes for failed gates.

Gates and plugins may put an explicit code into their details under
``e2eErrorCode``; that always wins. Otherwise the error text is matched
against an ordered pattern table (first code with a matching pattern
wins), and the load-failure classifier is consulted for host loading
errors.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from gatecheck.core.keys import to_lower_camel

ERROR_CODE_DETAIL_KEY = "e2eErrorCode"


class E2EErrorCode(str, Enum):
    AUTH_MISSING = "E2E_AUTH_MISSING"
    CONFIG_INVALID = "E2E_CONFIG_INVALID"
    API_TIMEOUT = "E2E_API_TIMEOUT"
    DOCKER_UNAVAILABLE = "E2E_DOCKER_UNAVAILABLE"
    NO_RELEASES_ATTRIBUTED = "E2E_NO_RELEASES_ATTRIBUTED"
    QUEUE_NOT_FOUND = "E2E_QUEUE_NOT_FOUND"
    ZERO_AUDIO_FILES = "E2E_ZERO_AUDIO_FILES"
    METADATA_MISSING = "E2E_METADATA_MISSING"
    IMPORT_FAILED = "E2E_IMPORT_FAILED"
    COMPONENT_AMBIGUOUS = "E2E_COMPONENT_AMBIGUOUS"
    LOAD_FAILURE = "E2E_LOAD_FAILURE"
    HOST_PLUGIN_DISCOVERY_DISABLED = "E2E_HOST_PLUGIN_DISCOVERY_DISABLED"
    RATE_LIMITED = "E2E_RATE_LIMITED"
    PROVIDER_UNAVAILABLE = "E2E_PROVIDER_UNAVAILABLE"
    CANCELLED = "E2E_CANCELLED"


@dataclass(frozen=True)
class ErrorCodePattern:
    code: E2EErrorCode
    needles: tuple[str, ...]


# Substring patterns over lower-cased error text, checked top to bottom.
# Credential problems come first: "401 ... timeout" is an auth problem.
ERROR_CODE_PATTERNS: tuple[ErrorCodePattern, ...] = (
    ErrorCodePattern(E2EErrorCode.HOST_PLUGIN_DISCOVERY_DISABLED, (
        "plugin discovery disabled", "plugin discovery is disabled",
        "plugin loading disabled", "plugin loading is disabled",
    )),
    ErrorCodePattern(E2EErrorCode.LOAD_FAILURE, (
        "could not load type", "could not load file or assembly",
        "assemblyloadcontext", "missingmethodexception", "typeloadexception",
    )),
    ErrorCodePattern(E2EErrorCode.AUTH_MISSING, (
        "credentials not configured", "missing env vars", "missing/invalid credentials",
        "not authenticated", "auth error", "invalid_grant", "invalid_client",
        "unauthorized", "forbidden", "401", "403", "credential file missing",
        "oauth", "token", "apikey", "credential",
    )),
    ErrorCodePattern(E2EErrorCode.RATE_LIMITED, (
        "rate limit", "too many requests", "429", "quota exceeded",
    )),
    ErrorCodePattern(E2EErrorCode.API_TIMEOUT, (
        "timeout", "timed out", "connection refused", "unreachable",
    )),
    ErrorCodePattern(E2EErrorCode.NO_RELEASES_ATTRIBUTED, (
        "no releases", "zero releases", "releases attributed",
    )),
    ErrorCodePattern(E2EErrorCode.QUEUE_NOT_FOUND, (
        "not found in queue", "download queue", "queue",
    )),
    ErrorCodePattern(E2EErrorCode.ZERO_AUDIO_FILES, (
        "audio files", "no audio", "zero files",
    )),
    ErrorCodePattern(E2EErrorCode.METADATA_MISSING, (
        "metadata", "missing field", "required field",
    )),
    ErrorCodePattern(E2EErrorCode.DOCKER_UNAVAILABLE, (
        "docker", "container", "daemon",
    )),
    ErrorCodePattern(E2EErrorCode.PROVIDER_UNAVAILABLE, (
        "service unavailable", "503", "bad gateway", "502",
    )),
    ErrorCodePattern(E2EErrorCode.CONFIG_INVALID, (
        "configuration", "config", "invalid setting", "validation failed",
    )),
    ErrorCodePattern(E2EErrorCode.IMPORT_FAILED, (
        "failed import", "import",
    )),
)


def classify_error_code(
    errors: Iterable[str] | str | None,
    patterns: tuple[ErrorCodePattern, ...] = ERROR_CODE_PATTERNS,
) -> E2EErrorCode | None:
    """Infer an error code from error text; ``None`` when nothing matches."""
    if errors is None:
        return None
    if isinstance(errors, str):
        errors = [errors]
    texts = [e.lower() for e in errors if isinstance(e, str) and e]
    for pattern in patterns:
        for text in texts:
            if any(needle in text for needle in pattern.needles):
                return pattern.code
    return None


def explicit_error_code(details: Mapping[str, Any] | None) -> str | None:
    """Return an explicit ``e2eErrorCode`` from *details*, if present."""
    if not isinstance(details, Mapping):
        return None
    for key, value in details.items():
        if to_lower_camel(str(key)) == ERROR_CODE_DETAIL_KEY and isinstance(value, str) and value:
            return value
    return None
