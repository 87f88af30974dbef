"""Failure classifier for host plugin-loading errors.

The rule table is data: an ordered tuple of ``ClassifierRule`` records,
more specific before generic. ``classify_failure`` walks the rules
top to bottom and, for each rule, tests every error string; the first
rule that matches any string wins. Which rule fires therefore depends
only on rule order, never on the order of the error strings.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass

from gatecheck.core.redaction import redact_text
from gatecheck.models.classification import FailureClassification


@dataclass(frozen=True)
class ClassifierRule:
    name: str
    pattern: re.Pattern[str]
    classification: str
    severity: str

    def matches(self, line: str) -> bool:
        return self.pattern.search(line) is not None


CLASSIFIER_RULES: tuple[ClassifierRule, ...] = (
    ClassifierRule(
        "alc_unload_or_duplicate",
        re.compile(
            r"AssemblyLoadContext.*(?:unload|could not be unloaded|failed)"
            r"|already (?:been )?loaded (?:in|into) (?:a )?(?:different|another) "
            r"(?:AssemblyLoadContext|load context)"
            r"|assembly with (?:the )?same name is already loaded",
            re.IGNORECASE,
        ),
        "ALC",
        "host_bug",
    ),
    ClassifierRule(
        "plugin_discovery_disabled",
        re.compile(r"plugin (?:discovery|loading) (?:is )?disabled", re.IGNORECASE),
        "DISCOVERY_DISABLED",
        "host_bug",
    ),
    ClassifierRule(
        "type_load",
        re.compile(
            r"Could not load type '[^']+' from assembly"
            r"|TypeLoadException.*(?:type|assembly)",
            re.IGNORECASE,
        ),
        "ABI_MISMATCH",
        "plugin_rebuild",
    ),
    ClassifierRule(
        "missing_method",
        re.compile(r"MissingMethodException|Method not found", re.IGNORECASE),
        "ABI_MISMATCH",
        "plugin_rebuild",
    ),
    ClassifierRule(
        "versioned_load_failure",
        re.compile(
            r"Could not load (?:file or )?assembly '[^']*Version=\d+(?:\.\d+)*"
            r"|FileLoadException.*Version=\d+"
            r"|located assembly's manifest definition does not match",
            re.IGNORECASE,
        ),
        "DEPENDENCY_DRIFT",
        "version_conflict",
    ),
    ClassifierRule(
        "generic_load_failure",
        re.compile(
            r"Could not load (?:file or )?assembly"
            r"|FileNotFoundException.*assembly"
            r"|BadImageFormatException"
            r"|ReflectionTypeLoadException",
            re.IGNORECASE,
        ),
        "LOAD_FAILURE",
        "investigate",
    ),
)


def _lines(errors: Iterable[str] | str | None) -> list[str]:
    if errors is None:
        return []
    if isinstance(errors, str):
        errors = [errors]
    lines: list[str] = []
    for error in errors:
        if not isinstance(error, str):
            continue
        lines.extend(line for line in error.splitlines() if line.strip())
    return lines


def classify_failure(
    errors: Iterable[str] | str | None,
    rules: tuple[ClassifierRule, ...] = CLASSIFIER_RULES,
) -> FailureClassification:
    """Classify raw error text against the ordered rule table."""
    lines = _lines(errors)
    for rule in rules:
        for line in lines:
            if rule.matches(line):
                return FailureClassification(
                    detected=True,
                    classification=rule.classification,
                    severity=rule.severity,
                    matched_line=redact_text(line.strip()),
                )
    return FailureClassification()
