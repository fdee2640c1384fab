"""Human-readable JSON for records written to disk and CLI output."""

import json
from typing import Any


def pretty_dumps(obj: Any) -> str:
    """Indented JSON (2 spaces). Key order is preserved and non-ASCII is kept."""
    return json.dumps(obj, indent=2, ensure_ascii=False)
