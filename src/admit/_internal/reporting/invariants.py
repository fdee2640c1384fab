"""Invariant result rendering (text, JSON, CI annotations)."""

from typing import List, Sequence

from admit._internal.json_format import pretty_dumps
from admit.kernel.invariant import InvariantResult, violations

from .modes import OutputMode, annotation, dispatch


def format_violation(result: InvariantResult) -> str:
    lines = [
        f"INVARIANT VIOLATION: '{result.name}'",
        f"  Rule: {result.rule}",
    ]
    if result.left_value or result.right_value:
        lines.append(f"  Values: left='{result.left_value}', right='{result.right_value}'")
    if result.message:
        lines.append(f"  Reason: {result.message}")
    return "\n".join(lines) + "\n"


def format_text(results: Sequence[InvariantResult], schema_path: str = "") -> str:
    failed = violations(results)
    if not failed:
        return ""
    parts = [f"Invariant check failed: {len(failed)} violation(s)\n\n"]
    for v in failed:
        parts.append(format_violation(v))
        parts.append("\n")
    return "".join(parts)


def format_ci(results: Sequence[InvariantResult], schema_path: str) -> str:
    failed = violations(results)
    if not failed:
        return ""
    lines: List[str] = [
        annotation("error", schema_path, f"INVARIANT VIOLATION: '{v.name}' - {v.message}")
        for v in failed
    ]
    lines.append("")
    lines.append(f"❌ Invariant check failed: {len(failed)} violation(s)")
    return "\n".join(lines) + "\n"


def to_report(results: Sequence[InvariantResult]) -> dict:
    failed = violations(results)
    return {
        "invariants": [
            {
                "name": r.name,
                "rule": r.rule,
                "passed": r.passed,
                "leftValue": r.left_value,
                "rightValue": r.right_value,
                "message": r.message or "",
            }
            for r in results
        ],
        "allPassed": not failed,
        "failedCount": len(failed),
    }


def format_json(results: Sequence[InvariantResult], schema_path: str = "") -> str:
    return pretty_dumps(to_report(results))


def render(results: Sequence[InvariantResult], mode: OutputMode, schema_path: str) -> str:
    return dispatch(
        {OutputMode.TEXT: format_text, OutputMode.JSON: format_json, OutputMode.CI: format_ci},
        results, mode, schema_path,
    )
