"""Hand the config artifact to the child process (file or env var)."""

import logging
from pathlib import Path
from typing import Union

from admit._internal.io.files import resolve_path, write_text_file
from admit.kernel.artifact import ConfigArtifact
from admit.kernel.environ import EnvSnapshot

logger = logging.getLogger(__name__)


def inject_file(artifact: ConfigArtifact, path: Union[str, Path], cwd: Union[str, Path]) -> Path:
    """Write the artifact JSON to ``path`` (relative paths resolve against ``cwd``)."""
    target = write_text_file(resolve_path(path, cwd), artifact.to_json())
    logger.debug("injected artifact into %s", target)
    return target


def inject_env(artifact: ConfigArtifact, env: EnvSnapshot, var: str) -> EnvSnapshot:
    """Return ``env`` with ``var`` set to the artifact JSON (replacing any prior value)."""
    return env.with_values({var: artifact.to_json()})
