"""Resolve schema-declared config keys to environment variable values."""

from typing import Dict, Iterable, List, Mapping

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from .schema import Schema


class ResolvedValue(BaseModel):
    """The value of one config key as found in the environment."""
    key: str
    env_var: str
    value: str = ""
    present: bool = False

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


def path_to_env_var(path: str) -> str:
    """``db.url`` -> ``DB_URL``."""
    return path.upper().replace(".", "_")


def resolve_key(path: str, env: Mapping[str, str]) -> ResolvedValue:
    env_var = path_to_env_var(path)
    if env_var in env:
        return ResolvedValue(key=path, env_var=env_var, value=env[env_var], present=True)
    return ResolvedValue(key=path, env_var=env_var)


def resolve(schema: Schema, env: Mapping[str, str]) -> List[ResolvedValue]:
    """One ResolvedValue per schema key, in sorted key order.

    A variable set to the empty string counts as present.
    """
    return [resolve_key(path, env) for path in schema.keys()]


def config_values(resolved: Iterable[ResolvedValue]) -> Dict[str, str]:
    """Map of key -> value for present keys only."""
    return {r.key: r.value for r in resolved if r.present}
