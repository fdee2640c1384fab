"""Schema file loading (internal). YAML on disk -> Schema."""

import logging
from pathlib import Path
from typing import Union

import yaml

from admit.kernel.schema import Schema, SchemaError, parse_schema

logger = logging.getLogger(__name__)


def load_schema(path: Union[str, Path]) -> Schema:
    """Read and parse a schema file.

    Raises:
        SchemaError: If the file is missing, unreadable, not valid YAML, or
            not a valid schema
    """
    schema_path = Path(path)
    try:
        text = schema_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise SchemaError("schema file not found", path=str(schema_path)) from None
    except OSError as exc:
        raise SchemaError(f"cannot read schema file: {exc.strerror or exc}", path=str(schema_path)) from exc

    try:
        document = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise SchemaError(f"invalid YAML: {exc}", path=str(schema_path)) from exc

    schema = parse_schema(document, path=str(schema_path))
    logger.debug(
        "loaded schema %s: %d key(s), %d invariant(s), %d environment(s)",
        schema_path, len(schema.config), len(schema.invariants), len(schema.environments),
    )
    return schema
