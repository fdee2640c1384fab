"""Execution identity v1: ``codeHash:configHash``.

``codeHash`` is the hash of the target executable's bytes. Locating and
reading the executable is done by the caller (see
``admit._internal.io.executable``); when it cannot be read the hash of the
command name is used instead.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from admit._internal.json_format import pretty_dumps

from .artifact import ConfigArtifact
from .hash_utils import hash_bytes, hash_string


class ExecutionIdentity(BaseModel):
    code_hash: str
    config_hash: str
    execution_id: str

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> str:
        return pretty_dumps(self.model_dump(by_alias=True))

    def short(self) -> str:
        return self.execution_id


def compute_code_hash(target: str, content: Optional[bytes]) -> str:
    """Hash of the executable bytes, or of ``target`` when ``content`` is None."""
    if content is None:
        return hash_string(target)
    return hash_bytes(content)


def compute_identity(target: str, content: Optional[bytes], artifact: ConfigArtifact) -> ExecutionIdentity:
    code_hash = compute_code_hash(target, content)
    config_hash = artifact.config_version
    return ExecutionIdentity(
        code_hash=code_hash,
        config_hash=config_hash,
        execution_id=f"{code_hash}:{config_hash}",
    )
