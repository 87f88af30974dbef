"""Tests for the load-failure classifier."""

from __future__ import annotations

import pytest

from gatecheck.core.classifier import CLASSIFIER_RULES, classify_failure

ALC_LINE = "System.InvalidOperationException: AssemblyLoadContext failed to unload plugin"
GENERIC_LINE = "Could not load file or assembly 'Qobuzarr.Plugin'"


class TestClassifyFailure:
    @pytest.mark.parametrize("line,classification,severity", [
        (ALC_LINE, "ALC", "host_bug"),
        ("Assembly with same name is already loaded", "ALC", "host_bug"),
        ("Plugin discovery is disabled on this branch", "DISCOVERY_DISABLED", "host_bug"),
        (
            "Could not load type 'NzbDrone.Core.Indexers.IIndexer' from assembly 'Lidarr.Core'",
            "ABI_MISMATCH",
            "plugin_rebuild",
        ),
        ("System.MissingMethodException: Method not found: 'Void Foo()'", "ABI_MISMATCH", "plugin_rebuild"),
        (
            "Could not load file or assembly 'NLog, Version=5.0.0.0, Culture=neutral'",
            "DEPENDENCY_DRIFT",
            "version_conflict",
        ),
        (GENERIC_LINE, "LOAD_FAILURE", "investigate"),
    ])
    def test_rules(self, line, classification, severity):
        result = classify_failure([line])
        assert result.detected is True
        assert result.classification == classification
        assert result.severity == severity
        assert result.matched_line == line

    @pytest.mark.parametrize("errors", [None, [], ["HTTP 500 Internal Server Error"], [""]])
    def test_no_match(self, errors):
        result = classify_failure(errors)
        assert result.detected is False
        assert result.classification is None
        assert result.matched_line is None

    def test_rule_order_not_error_order_decides(self):
        forward = classify_failure([GENERIC_LINE, ALC_LINE])
        backward = classify_failure([ALC_LINE, GENERIC_LINE])
        assert forward == backward
        assert forward.classification == "ALC"

    def test_multiline_error_reports_matching_line(self):
        result = classify_failure("Plugin load failed\n   at Loader.Load()\nSystem.MissingMethodException: x")
        assert result.matched_line == "System.MissingMethodException: x"

    def test_matched_line_is_redacted(self):
        result = classify_failure([GENERIC_LINE + " from http://192.168.1.5:8686"])
        assert result.detected
        assert "192.168.1.5" not in result.matched_line
        assert "[PRIVATE-IP]" in result.matched_line

    def test_specific_rules_precede_generic(self):
        names = [rule.name for rule in CLASSIFIER_RULES]
        assert names.index("versioned_load_failure") < names.index("generic_load_failure")
        assert names[0] == "alc_unload_or_duplicate"

    def test_serializes_camel_case(self):
        data = classify_failure([ALC_LINE]).model_dump(by_alias=True)
        assert set(data) == {"detected", "classification", "severity", "matchedLine"}
