"""Execution fingerprint (v4): binds config, command, and schema-relevant env.

    commandHash     = H(command NUL arg1 NUL arg2 ...)
    environmentHash = H(sorted "K=V" for K in schema env vars, joined by NUL)
    executionId     = H(configVersion + commandHash + environmentHash)

Environment variables that do not correspond to a schema key never affect
the fingerprint.
"""

from typing import Dict, Iterable, List, Mapping, Sequence

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from admit._internal.json_format import pretty_dumps

from .hash_utils import hash_joined, hash_string
from .resolver import path_to_env_var


class ExecutionIdentityV4(BaseModel):
    execution_id: str
    config_version: str
    command_hash: str
    environment_hash: str
    command: str
    args: List[str]

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> str:
        return pretty_dumps(self.model_dump(by_alias=True))

    def short(self) -> str:
        return self.execution_id


def compute_command_hash(command: str, args: Sequence[str]) -> str:
    return hash_joined([command, *args])


def relevant_environment(env: Mapping[str, str], schema_keys: Iterable[str]) -> Dict[str, str]:
    """The subset of ``env`` whose names are env vars of schema keys."""
    wanted = {path_to_env_var(k) for k in schema_keys}
    return {name: value for name, value in env.items() if name in wanted}


def hash_environment(variables: Mapping[str, str]) -> str:
    """Hash an already-filtered env mapping (sorted ``K=V``, NUL-joined)."""
    return hash_joined(sorted(f"{k}={v}" for k, v in variables.items()))


def compute_environment_hash(env: Mapping[str, str], schema_keys: Iterable[str]) -> str:
    return hash_environment(relevant_environment(env, schema_keys))


def combine_execution_id(config_version: str, command_hash: str, environment_hash: str) -> str:
    return hash_string(config_version + command_hash + environment_hash)


def compute_execution_id(
    config_version: str,
    command: str,
    args: Sequence[str],
    env: Mapping[str, str],
    schema_keys: Iterable[str],
) -> ExecutionIdentityV4:
    """Compute the v4 fingerprint for running ``command args`` under ``env``."""
    command_hash = compute_command_hash(command, args)
    environment_hash = compute_environment_hash(env, schema_keys)
    return ExecutionIdentityV4(
        execution_id=combine_execution_id(config_version, command_hash, environment_hash),
        config_version=config_version,
        command_hash=command_hash,
        environment_hash=environment_hash,
        command=command,
        args=list(args),
    )
