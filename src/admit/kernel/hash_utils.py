"""Hash utilities with explicit canonicalization rules for stable hashing.

Every hash produced by admit is SHA-256 rendered as ``sha256:<64 lowercase hex>``.

Key rules:
- Config value maps are string -> string only (anything else is rejected)
- Map keys are sorted before serialization, so iteration order never matters
- Sequences that must be order-independent are sorted by the caller
"""

import hashlib
import json
import re
from typing import Any, Iterable, Mapping, Union


HASH_PREFIX = "sha256:"
_HASH_RE = re.compile(r"^sha256:[0-9a-f]{64}$")


class CanonicalizationError(ValueError):
    """Raised when a value cannot be canonicalized for hashing."""
    pass


def hash_bytes(data: bytes) -> str:
    """Compute SHA256 of raw bytes.

    Returns:
        SHA256 hash as hex string (prefixed with "sha256:")
    """
    digest = hashlib.sha256(data).hexdigest()
    return f"{HASH_PREFIX}{digest}"


def hash_string(content: Union[str, bytes]) -> str:
    """Compute SHA256 of a string (UTF-8) or bytes."""
    if isinstance(content, str):
        content = content.encode("utf-8")
    return hash_bytes(content)


def is_sha256_ref(value: Any) -> bool:
    """Return True if value is exactly ``sha256:`` followed by 64 lowercase hex chars."""
    return isinstance(value, str) and bool(_HASH_RE.match(value))


def compact_json(obj: Any) -> str:
    """Sorted keys, no whitespace between tokens, non-ASCII left as UTF-8."""
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _validate_string_map(values: Mapping[str, Any]) -> None:
    for key, value in values.items():
        if not isinstance(key, str):
            raise CanonicalizationError(
                f"Config keys must be strings, got {type(key).__name__}"
            )
        if not isinstance(value, str):
            raise CanonicalizationError(
                f"Config value for '{key}' must be a string, got {type(value).__name__}"
            )


def canonical_values_json(values: Mapping[str, str]) -> str:
    """Serialize a config values map to canonical JSON.

    Rules:
    - Keys sorted
    - Separators (",", ":"), no whitespace
    - Non-ASCII left as UTF-8

    Raises:
        CanonicalizationError: If a key or value is not a string
    """
    _validate_string_map(values)
    return compact_json(dict(values))


def hash_config_values(values: Mapping[str, str]) -> str:
    """Compute the config version hash of a values map."""
    return hash_string(canonical_values_json(values))


def hash_joined(parts: Iterable[str], separator: str = "\x00") -> str:
    """Hash parts joined by ``separator`` (NUL by default).

    NUL cannot appear in argv entries or environment strings, so the encoding
    is unambiguous: ``["ab", "c"]`` and ``["a", "bc"]`` hash differently.
    """
    return hash_string(separator.join(parts))
