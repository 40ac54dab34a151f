"""
Output schema: the four Parquet columns every export writes.

The schema is declared in an Avro-record style JSON document (packaged as
`schemas/trace_record.json`) and loaded once at process start. The loaded
`ExportSchema` is immutable and shared by every writer in the process.

Column order is fixed and maps positionally onto `MappedRow`:

    key            -> long
    range_start_ms -> long / timestamp-millis
    range_end_ms   -> long / timestamp-millis
    text           -> string

Field *names* come from the declaration; types must match the table above.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import pyarrow as pa

from .errors import SchemaLoadError, SchemaLoadErrorKind

# MappedRow attribute and expected logical type per column position
ROW_LAYOUT: Tuple[Tuple[str, str], ...] = (
    ("key", "long"),
    ("range_start_ms", "timestamp-millis"),
    ("range_end_ms", "timestamp-millis"),
    ("text", "string"),
)

_ARROW_TYPES: Dict[str, pa.DataType] = {
    "long": pa.int64(),
    "timestamp-millis": pa.timestamp("ms"),
    "string": pa.string(),
}

_PACKAGED_DECLARATION = "trace_record.json"


@dataclass(frozen=True)
class SchemaField:
    name: str
    logical_type: str      # one of _ARROW_TYPES
    attribute: str         # MappedRow attribute feeding this column


@dataclass(frozen=True)
class ExportSchema:
    name: str
    namespace: str
    version: int
    fields: Tuple[SchemaField, ...]

    @property
    def column_names(self) -> Tuple[str, ...]:
        return tuple(f.name for f in self.fields)

    def to_arrow(self) -> pa.Schema:
        metadata = {
            b"schema.name": f"{self.namespace}.{self.name}".encode(),
            b"schema.version": str(self.version).encode(),
        }
        return pa.schema(
            [pa.field(f.name, _ARROW_TYPES[f.logical_type], nullable=False) for f in self.fields],
            metadata=metadata,
        )


def load_schema(path: Optional[str] = None) -> ExportSchema:
    """
    Load and validate the schema declaration.

    Parameters
    ----------
    path : str, optional
        Declaration file to read. None reads the packaged declaration.

    Raises
    ------
    SchemaLoadError
        The file is missing or unreadable (MISSING), or its content is not a
        valid declaration for the export row layout (INVALID). Callers treat
        this as fatal at startup.
    """
    try:
        if path is None:
            text = (resources.files(__package__) / "schemas" / _PACKAGED_DECLARATION).read_text(encoding="utf-8")
        else:
            text = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise SchemaLoadError(SchemaLoadErrorKind.MISSING, f"cannot read schema declaration: {e}", e) from e

    try:
        declaration = json.loads(text)
    except json.JSONDecodeError as e:
        raise SchemaLoadError(SchemaLoadErrorKind.INVALID, f"schema declaration is not JSON: {e}", e) from e

    return parse_schema(declaration)


@lru_cache(maxsize=None)
def default_schema() -> ExportSchema:
    """The packaged declaration, loaded on first use and shared afterwards."""
    return load_schema()


def parse_schema(declaration: Dict[str, Any]) -> ExportSchema:
    """Validate a decoded declaration against the fixed row layout."""
    if not isinstance(declaration, dict) or declaration.get("type") != "record":
        raise SchemaLoadError(SchemaLoadErrorKind.INVALID, "schema declaration must be a record")

    raw_fields = declaration.get("fields")
    if not isinstance(raw_fields, list) or len(raw_fields) != len(ROW_LAYOUT):
        raise SchemaLoadError(
            SchemaLoadErrorKind.INVALID,
            f"schema declaration must have exactly {len(ROW_LAYOUT)} fields",
        )

    fields = []
    for raw, (attribute, expected) in zip(raw_fields, ROW_LAYOUT):
        name = raw.get("name") if isinstance(raw, dict) else None
        if not isinstance(name, str) or not name:
            raise SchemaLoadError(SchemaLoadErrorKind.INVALID, f"field for {attribute} has no name")
        logical = _logical_type(raw.get("type"))
        if logical != expected:
            raise SchemaLoadError(
                SchemaLoadErrorKind.INVALID,
                f"field {name!r} must be {expected}, got {logical}",
            )
        fields.append(SchemaField(name=name, logical_type=logical, attribute=attribute))

    names = [f.name for f in fields]
    if len(set(names)) != len(names):
        raise SchemaLoadError(SchemaLoadErrorKind.INVALID, "duplicate field names")

    try:
        version = int(declaration.get("version", 1))
    except (TypeError, ValueError) as e:
        raise SchemaLoadError(SchemaLoadErrorKind.INVALID, "schema version must be an integer", e) from e

    return ExportSchema(
        name=str(declaration.get("name", "ParameterRecord")),
        namespace=str(declaration.get("namespace", "")),
        version=version,
        fields=tuple(fields),
    )


def _logical_type(type_decl: Any) -> Optional[str]:
    # "long" | "string" | {"type": "long", "logicalType": "timestamp-millis"}
    if isinstance(type_decl, str):
        return type_decl
    if isinstance(type_decl, dict):
        return type_decl.get("logicalType") or type_decl.get("type")
    return None
