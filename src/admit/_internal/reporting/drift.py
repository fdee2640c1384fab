"""Drift report rendering. Drift is advisory: these are warnings, never errors."""

from admit._internal.json_format import pretty_dumps
from admit.kernel.drift import DriftReport, KeyDrift

from .modes import OutputMode, annotation, dispatch


def format_change(change: KeyDrift) -> str:
    if change.type == "added":
        return f"  + {change.key}: (new) → {change.current_value}"
    if change.type == "removed":
        return f"  - {change.key}: {change.baseline_value} → (removed)"
    return f"  ~ {change.key}: {change.baseline_value} → {change.current_value}"


def format_text(report: DriftReport, schema_path: str = "") -> str:
    if not report.has_drift:
        return ""
    lines = ["⚠️  Configuration drift detected since last execution:"]
    lines.extend(format_change(c) for c in report.changes)
    lines.append("")
    lines.append("Execution continues.")
    return "\n".join(lines) + "\n"


def format_ci_message(change: KeyDrift) -> str:
    if change.type == "added":
        return f"Config drift: {change.key} added (value: {change.current_value})"
    if change.type == "removed":
        return f"Config drift: {change.key} removed (was: {change.baseline_value})"
    return f"Config drift: {change.key} changed from '{change.baseline_value}' to '{change.current_value}'"


def format_ci(report: DriftReport, schema_path: str) -> str:
    if not report.has_drift:
        return ""
    lines = [annotation("warning", schema_path, format_ci_message(c)) for c in report.changes]
    lines.append("")
    lines.append(
        f"⚠️  Configuration drift detected: {len(report.changes)} change(s) "
        f"since baseline '{report.baseline_name}'"
    )
    return "\n".join(lines) + "\n"


def format_json(report: DriftReport, schema_path: str = "") -> str:
    return pretty_dumps(report.to_dict())


def render(report: DriftReport, mode: OutputMode, schema_path: str) -> str:
    return dispatch(
        {OutputMode.TEXT: format_text, OutputMode.JSON: format_json, OutputMode.CI: format_ci},
        report, mode, schema_path,
    )
