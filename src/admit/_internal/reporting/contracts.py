"""Contract result rendering."""

from admit._internal.json_format import pretty_dumps
from admit.kernel.contract import ContractResult, ContractViolation, format_values

from .modes import OutputMode, annotation, dispatch


def format_text(result: ContractResult, schema_path: str = "") -> str:
    if result.passed or not result.violations:
        return ""
    parts = [f"❌ Contract violations for environment '{result.environment}':\n\n"]
    for v in result.violations:
        parts.append(f"  Key: {v.key}\n")
        parts.append(f"  Value: {v.actual_value}\n")
        parts.append(f"  Rule: {v.rule_type}\n")
        if v.rule_type == "allow":
            parts.append(f"  Expected: {format_values(v.expected_values)}\n")
        elif v.pattern:
            parts.append(f"  Forbidden: {format_values(v.expected_values)} (matched pattern: {v.pattern})\n")
        else:
            parts.append(f"  Forbidden: {format_values(v.expected_values)}\n")
        parts.append("\n")
    parts.append(f"Execution blocked: {len(result.violations)} violation(s)\n")
    return "".join(parts)


def format_ci_message(v: ContractViolation) -> str:
    if v.rule_type == "allow":
        return (
            f"Contract violation: {v.key} has value '{v.actual_value}', "
            f"expected one of: {format_values(v.expected_values)}"
        )
    if v.pattern:
        return f"Contract violation: {v.key} has forbidden value '{v.actual_value}' (matched pattern: {v.pattern})"
    return f"Contract violation: {v.key} has forbidden value '{v.actual_value}'"


def format_ci(result: ContractResult, schema_path: str) -> str:
    if result.passed or not result.violations:
        return ""
    lines = [annotation("error", schema_path, format_ci_message(v)) for v in result.violations]
    lines.append("")
    lines.append(
        f"❌ Contract violations for environment '{result.environment}': "
        f"{len(result.violations)} violation(s)"
    )
    return "\n".join(lines) + "\n"


def format_json(result: ContractResult, schema_path: str = "") -> str:
    return pretty_dumps(result.model_dump(mode="json", by_alias=True, exclude_none=True))


def render(result: ContractResult, mode: OutputMode, schema_path: str) -> str:
    return dispatch(
        {OutputMode.TEXT: format_text, OutputMode.JSON: format_json, OutputMode.CI: format_ci},
        result, mode, schema_path,
    )
