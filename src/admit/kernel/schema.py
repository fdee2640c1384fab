"""Schema model: declared config keys, invariants, and environment contracts.

``parse_schema`` takes the already-deserialized document (a plain dict) and
returns an immutable :class:`Schema`. Reading the file from disk lives in
``admit._internal.io.schema_file``.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator, model_validator

from .contract import Contract, ContractRule, has_glob
from .invariant import Invariant, RuleSyntaxError, parse_rule

INVARIANT_NAME_RE = re.compile(r"^[a-zA-Z0-9_-]+$")


class SchemaError(ValueError):
    """Raised when a schema is missing, unreadable, or invalid."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path

    def __str__(self) -> str:
        message = super().__str__()
        if self.path:
            return f"{self.path}: {message}"
        return message


class ConfigType(str, Enum):
    STRING = "string"
    ENUM = "enum"


class ConfigKey(BaseModel):
    """A declared configuration key."""
    path: str
    type: ConfigType
    required: bool = False
    values: Tuple[str, ...] = ()  # enum only

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _enum_needs_values(self) -> "ConfigKey":
        if self.type == ConfigType.ENUM and not self.values:
            raise ValueError(f"enum type requires 'values' for config '{self.path}'")
        return self


@dataclass(frozen=True)
class Schema:
    """A loaded schema. Immutable after load."""
    config: Dict[str, ConfigKey] = field(default_factory=dict)
    invariants: Tuple[Invariant, ...] = ()
    environments: Dict[str, Contract] = field(default_factory=dict)

    def keys(self) -> List[str]:
        """Declared config paths, sorted."""
        return sorted(self.config)

    def contract(self, name: str) -> Optional[Contract]:
        return self.environments.get(name)


# ---------------------------------------------------------------------------
# On-disk document shape
# ---------------------------------------------------------------------------

# Unknown keys (e.g. a top-level ``version`` or a per-key ``description``)
# are ignored.

RuleValues = Union[str, List[str]]


def _scalar_to_str(v: Any) -> Any:
    """YAML numbers and booleans used as values are read as their text."""
    if isinstance(v, bool):
        return "true" if v else "false"
    if isinstance(v, (int, float)):
        return str(v)
    return v


def _values_to_str(v: Any) -> Any:
    if isinstance(v, list):
        return [_scalar_to_str(item) for item in v]
    return _scalar_to_str(v)


class _ConfigEntry(BaseModel):
    type: str
    required: bool = False
    values: Optional[List[str]] = None

    model_config = ConfigDict(extra="ignore")

    @field_validator("values", mode="before")
    @classmethod
    def _stringify_values(cls, v: Any) -> Any:
        return _values_to_str(v)


class _InvariantEntry(BaseModel):
    name: Optional[str] = None
    rule: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class _EnvironmentEntry(BaseModel):
    allow: Dict[str, RuleValues] = {}
    deny: Dict[str, RuleValues] = {}

    model_config = ConfigDict(extra="ignore")

    @field_validator("allow", "deny", mode="before")
    @classmethod
    def _normalize_rules(cls, v: Any) -> Any:
        if v is None:
            return {}
        if isinstance(v, Mapping):
            return {key: _values_to_str(values) for key, values in v.items()}
        return v


class _SchemaDocument(BaseModel):
    config: Dict[str, _ConfigEntry] = {}
    invariants: List[_InvariantEntry] = []
    environments: Dict[str, _EnvironmentEntry] = {}

    model_config = ConfigDict(extra="ignore")

    @field_validator("config", "invariants", "environments", mode="before")
    @classmethod
    def _none_is_empty(cls, v: Any, info) -> Any:
        if v is None:
            return [] if info.field_name == "invariants" else {}
        return v


def _first_error(exc: ValidationError) -> str:
    err = exc.errors()[0]
    loc = ".".join(str(part) for part in err.get("loc", ()))
    return f"{loc}: {err.get('msg', 'invalid value')}" if loc else err.get("msg", "invalid value")


def _build_config_key(path: str, entry: _ConfigEntry) -> ConfigKey:
    try:
        config_type = ConfigType(entry.type)
    except ValueError:
        raise SchemaError(f"unknown type '{entry.type}' for config '{path}'") from None
    try:
        return ConfigKey(
            path=path,
            type=config_type,
            required=entry.required,
            values=tuple(entry.values or ()),
        )
    except ValidationError as exc:
        # model_validator messages arrive prefixed with "Value error, "
        msg = exc.errors()[0]["msg"].removeprefix("Value error, ")
        raise SchemaError(msg) from None


def _build_invariants(entries: List[_InvariantEntry], config_keys: List[str]) -> Tuple[Invariant, ...]:
    seen = set()
    result = []
    for index, entry in enumerate(entries):
        if not entry.name:
            raise SchemaError(f"invariant at index {index}: missing required field 'name'")
        name = entry.name
        if not INVARIANT_NAME_RE.match(name):
            raise SchemaError(
                f"invariant name '{name}' contains invalid characters "
                "(only letters, digits, '_' and '-' allowed)"
            )
        if name in seen:
            raise SchemaError(f"duplicate invariant name: '{name}'")
        seen.add(name)

        if not entry.rule or not entry.rule.strip():
            raise SchemaError(f"invariant '{name}': missing required field 'rule'")
        try:
            expr = parse_rule(entry.rule, config_keys)
        except RuleSyntaxError as exc:
            raise SchemaError(f"invariant '{name}': invalid rule syntax: {exc}") from exc
        result.append(Invariant(name=name, rule=entry.rule.strip(), expr=expr))
    return tuple(result)


def _build_rule(env_name: str, kind: str, key: str, raw: RuleValues) -> ContractRule:
    values = (raw,) if isinstance(raw, str) else tuple(raw)
    if not values:
        raise SchemaError(f"environment '{env_name}': {kind} rule for '{key}' has no values")
    is_glob = kind == "deny" and any(has_glob(v) for v in values)
    return ContractRule(values=values, is_glob=is_glob)


def _build_contract(name: str, entry: _EnvironmentEntry) -> Contract:
    return Contract(
        name=name,
        allow={k: _build_rule(name, "allow", k, v) for k, v in sorted(entry.allow.items())},
        deny={k: _build_rule(name, "deny", k, v) for k, v in sorted(entry.deny.items())},
    )


def parse_schema(document: Any, path: Optional[str] = None) -> Schema:
    """Validate a deserialized schema document and build a :class:`Schema`.

    Args:
        document: Parsed YAML/JSON document (must be a mapping)
        path: Source path, attached to any :class:`SchemaError`

    Raises:
        SchemaError: On any structural or semantic problem
    """
    try:
        if document is None:
            document = {}
        if not isinstance(document, Mapping):
            raise SchemaError("schema must be a mapping at the top level")

        try:
            doc = _SchemaDocument.model_validate(dict(document))
        except ValidationError as exc:
            raise SchemaError(f"invalid schema: {_first_error(exc)}") from None

        config = {p: _build_config_key(p, e) for p, e in sorted(doc.config.items())}
        invariants = _build_invariants(doc.invariants, list(config))
        environments = {n: _build_contract(n, e) for n, e in sorted(doc.environments.items())}
    except SchemaError as exc:
        if path and not exc.path:
            exc.path = path
        raise

    return Schema(config=config, invariants=invariants, environments=environments)
