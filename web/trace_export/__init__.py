"""
trace_export: compressed trace records → one Parquet file.

Public API (stable):
- ExportConfig              (configuration)
- export                    (runs one export; the sole entry point)
- ExportOrchestrator        (single-use pipeline driver)
- ExportWorker, CancelToken (thread-pool offload and cooperative cancel)
- load_schema, ExportSchema (process-wide output schema)
- RecordSourcePort          (input adapter interface)
- SqlRecordSource           (SQLAlchemy-backed record source)
- get_codec                 (payload codecs)
- DTOs: RawRecord, MappedRow, ExportState
- Results and errors: Ok, Err, ExportError, ...

The request layer wires sources and workers through these names only.
"""

from __future__ import annotations

# Configuration
from .config import ExportConfig

# Orchestration
from .orchestration.cancellation import CancelToken
from .orchestration.runner import ExportOrchestrator, export
from .orchestration.worker import ExportWorker

# Schema
from .schema import ExportSchema, default_schema, load_schema

# Ports
from .ports import RecordSourcePort

# Adapters
from .intake.decompress import get_codec
from .intake.record_source_sql import SqlRecordSource

# DTOs
from .dto import ExportState, MappedRow, RawRecord

# Results and errors
from .errors import (
    CodecError,
    ExportError,
    MapError,
    ResourceError,
    SchemaLoadError,
    SourceError,
    WriteError,
)
from .result import Err, Ok, Result

__all__ = [
    "ExportConfig",
    "export",
    "ExportOrchestrator",
    "ExportWorker",
    "CancelToken",
    "ExportSchema",
    "default_schema",
    "load_schema",
    "RecordSourcePort",
    "get_codec",
    "SqlRecordSource",
    "ExportState",
    "MappedRow",
    "RawRecord",
    "CodecError",
    "ExportError",
    "MapError",
    "ResourceError",
    "SchemaLoadError",
    "SourceError",
    "WriteError",
    "Err",
    "Ok",
    "Result",
]
