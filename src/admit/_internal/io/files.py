"""File plumbing helpers (internal)."""

from pathlib import Path
from typing import Union


def resolve_path(path: Union[str, Path], cwd: Union[str, Path, None] = None) -> Path:
    """Resolve ``path`` against ``cwd`` when it is relative."""
    p = Path(path).expanduser()
    if cwd is not None and not p.is_absolute():
        return Path(cwd) / p
    return p


def write_text_file(path: Union[str, Path], content: str) -> Path:
    """Write ``content`` (plus trailing newline) creating parent directories."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    if not content.endswith("\n"):
        content += "\n"
    target.write_text(content, encoding="utf-8")
    return target
