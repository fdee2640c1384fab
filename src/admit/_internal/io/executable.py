"""Executable lookup (internal).

``find_executable`` mirrors a shell PATH search but keeps the distinction the
launcher needs: a file that exists but is not executable is reported
separately from a name that cannot be found at all.
"""

import logging
import os
from pathlib import Path
from typing import Mapping, Optional, Tuple

logger = logging.getLogger(__name__)


def _is_executable(path: Path) -> bool:
    return path.is_file() and os.access(path, os.X_OK)


def find_executable(target: str, env: Mapping[str, str]) -> Tuple[Optional[Path], Optional[Path]]:
    """Locate ``target``.

    Returns:
        (executable_path, non_executable_candidate). The first is set when an
        executable file was found. The second is set when only a
        non-executable file with that name was found.
    """
    if not target:
        return None, None

    if os.sep in target or (os.altsep and os.altsep in target):
        candidate = Path(target)
        if _is_executable(candidate):
            return candidate, None
        if candidate.exists():
            return None, candidate
        return None, None

    non_executable: Optional[Path] = None
    for directory in env.get("PATH", os.defpath).split(os.pathsep):
        candidate = Path(directory or ".") / target
        if _is_executable(candidate):
            return candidate, None
        if non_executable is None and candidate.is_file():
            non_executable = candidate
    return None, non_executable


def read_executable(target: str, env: Mapping[str, str]) -> Optional[bytes]:
    """Bytes of the resolved executable, or None if it cannot be located/read."""
    path, _ = find_executable(target, env)
    if path is None:
        return None
    try:
        return path.resolve().read_bytes()
    except OSError as exc:
        logger.debug("cannot read executable %s: %s", path, exc)
        return None
