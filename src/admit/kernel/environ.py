"""Immutable snapshot of the process environment.

The environment is captured once at the start of an invocation and threaded
explicitly through every stage. Nothing in the kernel reads the live process
environment.
"""

from __future__ import annotations

from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Tuple


def parse_environ_entries(entries: Iterable[str]) -> Dict[str, str]:
    """Parse ``KEY=VALUE`` strings into a dict.

    Splits on the first ``=`` only (values may contain ``=``). Entries without
    ``=`` are skipped. A later entry for the same key wins.
    """
    result: Dict[str, str] = {}
    for entry in entries:
        key, sep, value = entry.partition("=")
        if not sep:
            continue
        result[key] = value
    return result


class EnvSnapshot(Mapping[str, str]):
    """Read-only mapping of environment variable name -> value."""

    __slots__ = ("_items", "_index")

    def __init__(self, values: Optional[Mapping[str, str]] = None):
        self._items: Tuple[Tuple[str, str], ...] = tuple(
            sorted((str(k), str(v)) for k, v in (values or {}).items())
        )
        self._index: Dict[str, str] = dict(self._items)

    @classmethod
    def from_entries(cls, entries: Iterable[str]) -> "EnvSnapshot":
        """Build from ``KEY=VALUE`` strings (the exec-style environ list)."""
        return cls(parse_environ_entries(entries))

    def __getitem__(self, key: str) -> str:
        return self._index[key]

    def __iter__(self) -> Iterator[str]:
        return (k for k, _ in self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"EnvSnapshot({len(self._items)} vars)"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, EnvSnapshot):
            return self._items == other._items
        return super().__eq__(other)

    def __hash__(self) -> int:
        return hash(self._items)

    def entries(self) -> List[str]:
        """Return ``KEY=VALUE`` strings sorted by key."""
        return [f"{k}={v}" for k, v in self._items]

    def to_dict(self) -> Dict[str, str]:
        """Return a mutable copy (e.g. for passing to a child process)."""
        return dict(self._index)

    def with_values(self, overrides: Mapping[str, str]) -> "EnvSnapshot":
        """Return a new snapshot with ``overrides`` applied on top."""
        merged = dict(self._index)
        merged.update(overrides)
        return EnvSnapshot(merged)
