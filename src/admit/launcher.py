"""Process launch: replace the current process with the target command."""

import logging
import os
from typing import Mapping, Sequence

from admit._internal.io.executable import find_executable
from admit.codes import ExitCode

logger = logging.getLogger(__name__)

NOT_FOUND = "not_found"
PERMISSION_DENIED = "permission_denied"
OTHER = "other"


class LaunchError(OSError):
    """The target could not be started. ``kind`` selects the exit code."""

    def __init__(self, kind: str, target: str, detail: str = ""):
        self.kind = kind
        self.target = target
        self.detail = detail
        super().__init__(self.message)

    @property
    def message(self) -> str:
        if self.kind == NOT_FOUND:
            return f"command not found: {self.target}"
        if self.kind == PERMISSION_DENIED:
            return f"permission denied: {self.target}"
        return f"failed to execute {self.target}: {self.detail}"

    @property
    def exit_code(self) -> ExitCode:
        if self.kind == NOT_FOUND:
            return ExitCode.COMMAND_NOT_FOUND
        if self.kind == PERMISSION_DENIED:
            return ExitCode.NOT_EXECUTABLE
        return ExitCode.GENERAL_ERROR


def exec_command(target: str, args: Sequence[str], env: Mapping[str, str]) -> None:
    """Replace this process with ``target args`` under ``env``.

    Only returns by raising :class:`LaunchError`. PATH lookup uses the PATH
    from ``env``.
    """
    path, non_executable = find_executable(target, env)
    if path is None:
        if non_executable is not None:
            raise LaunchError(PERMISSION_DENIED, target)
        raise LaunchError(NOT_FOUND, target)

    argv = [target, *args]
    logger.debug("exec %s %s", path, list(args))
    try:
        os.execve(str(path), argv, dict(env))
    except FileNotFoundError as exc:
        raise LaunchError(NOT_FOUND, target) from exc
    except PermissionError as exc:
        raise LaunchError(PERMISSION_DENIED, target) from exc
    except OSError as exc:
        raise LaunchError(OTHER, target, exc.strerror or str(exc)) from exc
