"""Control settings read from the captured environment snapshot.

Precedence everywhere: CLI flag > environment variable > default.
"""

from pathlib import Path
from typing import Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict

from admit.store.baseline import BASELINE_DIR_ENV
from admit.store.snapshot import SNAPSHOT_DIR_ENV

ENV_VAR = "ADMIT_ENV"
CI_VARS = ("ADMIT_CI", "CI")
SCHEMA_VAR = "ADMIT_SCHEMA"
DEFAULT_SCHEMA_FILE = "admit.yaml"
TRUTHY = ("true", "1", "yes")


def _truthy(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in TRUTHY


def default_store_dir(home: Optional[Path], name: str) -> Path:
    """``~/.admit/<name>``; relative ``.admit/<name>`` when no home directory is known."""
    if home is None:
        return Path(".admit") / name
    return home / ".admit" / name


class AdmitSettings(BaseModel):
    """Resolved control settings for one invocation."""
    execution_env: str = ""
    ci: bool = False
    schema_path: Path
    snapshot_dir: Path
    baseline_dir: Path

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_env(
        cls,
        env: Mapping[str, str],
        cwd: Union[str, Path],
        home: Optional[Path] = None,
        schema: Optional[Union[str, Path]] = None,
        ci: bool = False,
    ) -> "AdmitSettings":
        """Build settings from an environment snapshot plus CLI overrides.

        Args:
            env: Captured environment
            cwd: Working directory; relative schema paths resolve against it
            home: User home directory for the default store locations
            schema: ``--schema`` flag value, overrides ADMIT_SCHEMA
            ci: ``--ci`` flag; forces CI mode on
        """
        cwd = Path(cwd)
        schema_value = schema or env.get(SCHEMA_VAR) or DEFAULT_SCHEMA_FILE
        schema_path = Path(schema_value)
        if not schema_path.is_absolute():
            schema_path = cwd / schema_path

        snapshot_dir = env.get(SNAPSHOT_DIR_ENV)
        baseline_dir = env.get(BASELINE_DIR_ENV)

        return cls(
            execution_env=env.get(ENV_VAR, ""),
            ci=ci or any(_truthy(env.get(name)) for name in CI_VARS),
            schema_path=schema_path,
            snapshot_dir=Path(snapshot_dir) if snapshot_dir else default_store_dir(home, "snapshots"),
            baseline_dir=Path(baseline_dir) if baseline_dir else default_store_dir(home, "baselines"),
        )
