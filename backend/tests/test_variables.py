"""Tests for placeholder resolution in step configs."""

import copy

import pytest

from playbook.variables import is_missing, lookup, resolve


CONTEXT = {
    "case": {"id": "case-1", "severity": "critical", "risk_score": 87, "escalated": True, "owner": None},
    "alerts": [
        {"source_ip": "203.0.113.7", "hostname": "fin-ws-042", "ports": [22, 443]},
        {"source_ip": "198.51.100.23"},
    ],
    "alert": {"source_ip": "203.0.113.7", "hostname": "fin-ws-042", "ports": [22, 443]},
}


# ─── Lookup ───

@pytest.mark.unit
class TestLookup:
    def test_nested_dict_path(self):
        assert lookup("case.severity", CONTEXT) == "critical"

    def test_list_index(self):
        assert lookup("alerts.1.source_ip", CONTEXT) == "198.51.100.23"

    def test_missing_key(self):
        assert is_missing(lookup("case.assignee", CONTEXT))

    def test_bad_list_index(self):
        assert is_missing(lookup("alerts.9.source_ip", CONTEXT))
        assert is_missing(lookup("alerts.first.source_ip", CONTEXT))

    def test_path_through_scalar(self):
        assert is_missing(lookup("case.severity.level", CONTEXT))


# ─── Resolve ───

@pytest.mark.unit
class TestResolve:
    def test_whole_placeholder(self):
        assert resolve("{{case.severity}}", {"case": {"severity": "critical"}}) == "critical"

    def test_whitespace_inside_braces(self):
        assert resolve("{{  case.severity  }}", CONTEXT) == "critical"

    def test_missing_path_keeps_literal(self):
        assert resolve("{{missing.path}}", {}) == "{{missing.path}}"

    def test_none_value_keeps_literal(self):
        assert resolve("{{ case.owner }}", CONTEXT) == "{{ case.owner }}"

    def test_whole_placeholder_keeps_native_type(self):
        assert resolve("{{ case.risk_score }}", CONTEXT) == 87
        assert resolve("{{ alert.ports }}", CONTEXT) == [22, 443]

    def test_embedded_placeholders_are_stringified(self):
        result = resolve("Block {{ alert.source_ip }} (score {{ case.risk_score }})", CONTEXT)
        assert result == "Block 203.0.113.7 (score 87)"

    def test_embedded_bool_and_list(self):
        assert resolve("escalated={{ case.escalated }}", CONTEXT) == "escalated=true"
        assert resolve("ports: {{ alert.ports }}", CONTEXT) == "ports: [22, 443]"

    def test_embedded_missing_left_in_place(self):
        result = resolve("host {{ alert.hostname }} user {{ alert.username }}", CONTEXT)
        assert result == "host fin-ws-042 user {{ alert.username }}"

    def test_nested_structures(self):
        config = {
            "ip": "{{ alert.source_ip }}",
            "targets": ["{{ alerts.0.hostname }}", "{{ alerts.1.source_ip }}"],
            "options": {"duration_hours": 24, "reason": "case {{ case.id }}"},
            "enabled": True,
        }
        assert resolve(config, CONTEXT) == {
            "ip": "203.0.113.7",
            "targets": ["fin-ws-042", "198.51.100.23"],
            "options": {"duration_hours": 24, "reason": "case case-1"},
            "enabled": True,
        }

    def test_non_string_scalars_pass_through(self):
        assert resolve(42, CONTEXT) == 42
        assert resolve(None, CONTEXT) is None
        assert resolve(1.5, CONTEXT) == 1.5

    def test_does_not_mutate_inputs(self):
        config = {"ports": "{{ alert.ports }}", "list": ["{{ case.id }}"]}
        config_before = copy.deepcopy(config)
        context_before = copy.deepcopy(CONTEXT)

        result = resolve(config, CONTEXT)
        result["ports"].append(8080)

        assert config == config_before
        assert CONTEXT == context_before
