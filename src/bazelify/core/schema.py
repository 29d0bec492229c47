from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import jsonschema

from ..errors import ConfigError

SCHEMAS_ROOT = Path(__file__).resolve().parents[1] / "schemas"


def load_schema(name: str) -> dict[str, Any]:
    return json.loads((SCHEMAS_ROOT / name).read_text(encoding="utf-8"))


def validate_payload(payload: object, schema_name: str, source: str) -> None:
    schema = load_schema(schema_name)
    try:
        jsonschema.validate(payload, schema)
    except jsonschema.ValidationError as exc:
        pointer = "/".join(str(p) for p in exc.absolute_path)
        loc = pointer or "<root>"
        raise ConfigError(f"schema validation failed at {loc}: {exc.message}", manifest=source) from exc
