"""Validation error rendering."""

from typing import List

from admit._internal.json_format import pretty_dumps
from admit.kernel.validator import ValidationIssue, ValidationResult

from .modes import OutputMode, annotation, dispatch


def format_issue(issue: ValidationIssue) -> str:
    """``<key>: <message>``."""
    return f"{issue.key}: {issue.message}"


def format_lines(result: ValidationResult) -> List[str]:
    return [format_issue(e) for e in result.errors]


def format_text(result: ValidationResult, schema_path: str = "") -> str:
    if result.valid:
        return ""
    return "\n".join(format_lines(result)) + "\n"


def format_ci(result: ValidationResult, schema_path: str) -> str:
    if result.valid:
        return ""
    lines = [annotation("error", schema_path, line) for line in format_lines(result)]
    lines.append("")
    lines.append(f"❌ Validation failed: {len(result.errors)} error(s)")
    return "\n".join(lines) + "\n"


def format_json(result: ValidationResult, schema_path: str = "") -> str:
    return pretty_dumps(result.model_dump(mode="json", by_alias=True, exclude_none=True))


def render(result: ValidationResult, mode: OutputMode, schema_path: str) -> str:
    return dispatch(
        {OutputMode.TEXT: format_text, OutputMode.JSON: format_json, OutputMode.CI: format_ci},
        result, mode, schema_path,
    )
