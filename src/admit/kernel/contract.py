"""Per-environment allow/deny contracts over resolved config values."""

import re
from typing import Dict, List, Literal, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

GLOB_CHARS = ("*", "?")


class ContractRule(BaseModel):
    """Allowed or forbidden values for one config key."""
    values: Tuple[str, ...]
    is_glob: bool = False  # deny rules only: patterns use * / ? wildcards

    model_config = ConfigDict(frozen=True, extra="forbid")


class Contract(BaseModel):
    """A named environment's policy: key -> allow rule, key -> deny rule."""
    name: str
    allow: Dict[str, ContractRule] = Field(default_factory=dict)
    deny: Dict[str, ContractRule] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True, extra="forbid")


class ContractViolation(BaseModel):
    """A single failed allow/deny check."""
    key: str
    actual_value: str
    rule_type: Literal["allow", "deny"]
    expected_values: Tuple[str, ...]
    pattern: Optional[str] = None  # deny only: the pattern that matched

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class ContractResult(BaseModel):
    """Outcome of evaluating one contract."""
    environment: str
    passed: bool
    violations: List[ContractViolation] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


def has_glob(pattern: str) -> bool:
    return any(ch in pattern for ch in GLOB_CHARS)


def _glob_to_regex(pattern: str) -> "re.Pattern[str]":
    # Only * and ? are wildcards; everything else (including [ ]) is literal.
    parts = []
    for ch in pattern:
        if ch == "*":
            parts.append(".*")
        elif ch == "?":
            parts.append(".")
        else:
            parts.append(re.escape(ch))
    return re.compile("".join(parts), re.DOTALL)


def glob_match(pattern: str, value: str) -> bool:
    """Match ``value`` against a ``*``/``?`` glob (whole-string match)."""
    return _glob_to_regex(pattern).fullmatch(value) is not None


def match_deny(rule: ContractRule, value: str) -> Optional[str]:
    """Return the first deny pattern that matches ``value``, else None."""
    for pattern in rule.values:
        if rule.is_glob and has_glob(pattern):
            if glob_match(pattern, value):
                return pattern
        elif pattern == value:
            return pattern
    return None


def evaluate_contract(contract: Contract, config_values: Mapping[str, str]) -> ContractResult:
    """Check every allow/deny rule in ``contract`` against present config values.

    Keys are visited in sorted order. A key that hits a deny rule is not also
    checked against its allow rule. Absent keys never violate a contract.
    """
    violations: List[ContractViolation] = []
    keys = sorted(set(contract.allow) | set(contract.deny))

    for key in keys:
        if key not in config_values:
            continue
        value = config_values[key]

        deny = contract.deny.get(key)
        if deny is not None:
            pattern = match_deny(deny, value)
            if pattern is not None:
                violations.append(ContractViolation(
                    key=key,
                    actual_value=value,
                    rule_type="deny",
                    expected_values=deny.values,
                    pattern=pattern,
                ))
                continue

        allow = contract.allow.get(key)
        if allow is not None and value not in allow.values:
            violations.append(ContractViolation(
                key=key,
                actual_value=value,
                rule_type="allow",
                expected_values=allow.values,
            ))

    return ContractResult(
        environment=contract.name,
        passed=not violations,
        violations=violations,
    )


def format_values(values: Tuple[str, ...]) -> str:
    """``a`` for one value, ``[a, b]`` for several, ``(none)`` for zero."""
    if not values:
        return "(none)"
    if len(values) == 1:
        return values[0]
    return "[" + ", ".join(values) + "]"
