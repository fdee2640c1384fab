"""Config artifact: the validated config values plus their canonical hash."""

from typing import Dict, Iterable

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from admit._internal.json_format import pretty_dumps

from .hash_utils import compact_json, hash_config_values
from .resolver import ResolvedValue, config_values


class ConfigArtifact(BaseModel):
    """``{configVersion, values}``."""
    config_version: str
    values: Dict[str, str]

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    def to_dict(self) -> dict:
        return {
            "configVersion": self.config_version,
            "values": dict(sorted(self.values.items())),
        }

    def to_json(self) -> str:
        return pretty_dumps(self.to_dict())

    def to_canonical_json(self) -> str:
        return compact_json(self.to_dict())


def compute_config_version(values: Dict[str, str]) -> str:
    """sha256 of the canonical (sorted-key) JSON of ``values``."""
    return hash_config_values(values)


def generate_artifact(resolved: Iterable[ResolvedValue]) -> ConfigArtifact:
    """Build the artifact from present resolved values."""
    values = config_values(resolved)
    return ConfigArtifact(config_version=compute_config_version(values), values=values)
