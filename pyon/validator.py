from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional, Union

import jsonschema

from .commands import FrameKind, normalize_kind
from .errors import RecordFormatError

SCHEMA_DIR = Path(__file__).parent / "schemas"

# Mapping kind -> schema filename (relative to SCHEMA_DIR)
SCHEMA_REGISTRY: Dict[str, str] = {
    FrameKind.UNITS.value: "units.json",
    FrameKind.SLOTS.value: "slots.json",
}


def _schema_path(kind: str) -> Optional[Path]:
    filename = SCHEMA_REGISTRY.get(kind)
    if not filename:
        return None
    path = SCHEMA_DIR / filename
    return path if path.exists() else None


@lru_cache(maxsize=8)
def load_schema(kind: str) -> Optional[dict]:
    """Load JSON schema for a frame kind if present."""
    path = _schema_path(normalize_kind(kind))
    if not path:
        return None
    with path.open("r", encoding="utf-8") as fp:
        return json.load(fp)


def validate_body(kind: Union[str, FrameKind], body: Any, schema: Optional[dict] = None) -> None:
    """Check a decoded array body against the kind's schema."""
    if not schema:
        schema = load_schema(normalize_kind(kind))
    if schema:
        try:
            jsonschema.validate(instance=body, schema=schema)
        except jsonschema.ValidationError as exc:
            raise RecordFormatError(f"{normalize_kind(kind)} body failed schema validation: {exc.message}") from exc


__all__ = ["load_schema", "validate_body"]
