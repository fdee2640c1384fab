"""Tests for environment contract evaluation."""

import random

import pytest

from admit.kernel.contract import (
    Contract,
    ContractRule,
    evaluate_contract,
    format_values,
    glob_match,
    match_deny,
)


def _contract(allow=None, deny=None):
    def rules(mapping, glob_capable):
        out = {}
        for key, values in (mapping or {}).items():
            values = tuple(values)
            is_glob = glob_capable and any("*" in v or "?" in v for v in values)
            out[key] = ContractRule(values=values, is_glob=is_glob)
        return out
    return Contract(name="prod", allow=rules(allow, False), deny=rules(deny, True))


class TestGlobMatch:

    @pytest.mark.parametrize("pattern,value,expected", [
        ("*localhost*", "postgres://localhost:5432/db", True),
        ("*localhost*", "postgres://db.internal/db", False),
        ("dev-?", "dev-1", True),
        ("dev-?", "dev-10", False),
        ("*", "", True),
        ("exact", "exact", True),
        ("a.b", "axb", False),
        ("[abc]", "[abc]", True),
        ("[abc]", "a", False),
    ])
    def test_glob(self, pattern, value, expected):
        assert glob_match(pattern, value) is expected


class TestMatchDeny:

    def test_exact_when_not_glob(self):
        rule = ContractRule(values=("a*",), is_glob=False)
        assert match_deny(rule, "abc") is None
        assert match_deny(rule, "a*") == "a*"

    def test_returns_first_matching_pattern(self):
        rule = ContractRule(values=("*127.0.0.1*", "*localhost*"), is_glob=True)
        assert match_deny(rule, "http://localhost") == "*localhost*"


class TestEvaluateContract:

    def test_passes(self):
        result = evaluate_contract(_contract(allow={"mode": ["live"]}), {"mode": "live"})
        assert result.passed
        assert result.violations == []
        assert result.environment == "prod"

    def test_allow_violation(self):
        result = evaluate_contract(_contract(allow={"mode": ["live"]}), {"mode": "test"})
        assert not result.passed
        v = result.violations[0]
        assert (v.key, v.actual_value, v.rule_type) == ("mode", "test", "allow")
        assert v.expected_values == ("live",)
        assert v.pattern is None

    def test_deny_violation_records_pattern(self):
        contract = _contract(deny={"db.url": ["*localhost*", "*127.0.0.1*"]})
        result = evaluate_contract(contract, {"db.url": "postgres://127.0.0.1/x"})
        v = result.violations[0]
        assert v.rule_type == "deny"
        assert v.pattern == "*127.0.0.1*"
        assert v.expected_values == ("*localhost*", "*127.0.0.1*")

    def test_deny_takes_precedence_over_allow(self):
        contract = _contract(allow={"host": ["localhost", "db"]}, deny={"host": ["localhost"]})
        result = evaluate_contract(contract, {"host": "localhost"})
        assert [v.rule_type for v in result.violations] == ["deny"]

    def test_absent_key_never_violates(self):
        contract = _contract(allow={"mode": ["live"]}, deny={"db.url": ["*"]})
        assert evaluate_contract(contract, {}).passed

    @pytest.mark.parametrize("seed", range(5))
    def test_reports_every_violation_in_key_order(self, seed):
        rng = random.Random(seed)
        keys = [f"key{i:02d}" for i in range(rng.randint(2, 15))]
        failing = sorted(rng.sample(keys, rng.randint(1, len(keys))))
        contract = _contract(allow={k: ["good"] for k in keys})
        values = {k: ("bad" if k in failing else "good") for k in keys}

        result = evaluate_contract(contract, values)

        assert [v.key for v in result.violations] == failing

    def test_result_serializes_camel_case(self):
        result = evaluate_contract(_contract(allow={"mode": ["live"]}), {"mode": "test"})
        dumped = result.model_dump(mode="json", by_alias=True, exclude_none=True)
        assert dumped == {
            "environment": "prod",
            "passed": False,
            "violations": [{
                "key": "mode",
                "actualValue": "test",
                "ruleType": "allow",
                "expectedValues": ["live"],
            }],
        }


@pytest.mark.parametrize("values,expected", [
    ((), "(none)"),
    (("live",), "live"),
    (("test", "live"), "[test, live]"),
])
def test_format_values(values, expected):
    assert format_values(values) == expected
