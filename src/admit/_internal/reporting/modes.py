"""Output modes shared by every reporter."""

from enum import Enum
from typing import Callable, Dict, TypeVar

ResultT = TypeVar("ResultT")

# Formatter signature: (result, schema_path) -> text
Formatter = Callable[[ResultT, str], str]


class OutputMode(str, Enum):
    TEXT = "text"
    JSON = "json"
    CI = "ci"


def annotation(level: str, schema_path: str, message: str) -> str:
    """GitHub Actions style annotation line."""
    return f"::{level} file={schema_path}::{message}"


def dispatch(formatters: Dict[OutputMode, Formatter], result: ResultT, mode: OutputMode, schema_path: str) -> str:
    return formatters[OutputMode(mode)](result, schema_path)
