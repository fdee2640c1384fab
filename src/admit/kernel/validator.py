"""Required/type checks over resolved values. Collects every failure."""

from typing import List, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .resolver import ResolvedValue
from .schema import ConfigType, Schema


class ValidationIssue(BaseModel):
    """One failed check for one config key."""
    key: str
    env_var: str
    message: str
    value: Optional[str] = None
    allowed: Optional[Tuple[str, ...]] = None  # enum failures only

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    def __str__(self) -> str:
        return f"{self.key}: {self.message}"


class ValidationResult(BaseModel):
    valid: bool
    errors: List[ValidationIssue] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


def validate(schema: Schema, resolved: Sequence[ResolvedValue]) -> ValidationResult:
    """Validate resolved values against the schema.

    - required + absent -> error
    - optional + absent -> skipped
    - enum + value not in values -> error
    - string accepts any present value
    """
    errors: List[ValidationIssue] = []

    for rv in resolved:
        key = schema.config.get(rv.key)
        if key is None:
            continue

        if not rv.present:
            if key.required:
                errors.append(ValidationIssue(
                    key=rv.key,
                    env_var=rv.env_var,
                    message=f"required but {rv.env_var} is not set",
                ))
            continue

        if key.type == ConfigType.ENUM and rv.value not in key.values:
            errors.append(ValidationIssue(
                key=rv.key,
                env_var=rv.env_var,
                message=f"'{rv.value}' is not valid, must be one of: {', '.join(key.values)}",
                value=rv.value,
                allowed=key.values,
            ))

    return ValidationResult(valid=not errors, errors=errors)
