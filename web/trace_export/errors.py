"""
Error taxonomy for the export pipeline.

Each error is an Exception subclass so it can carry a traceback-friendly
message and a `cause` chain, but inside the pipeline these objects travel as
values inside `Err(...)` results rather than being raised.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class TraceExportError(Exception):
    """Base class; `kind` narrows the failure, `cause` links the originating error."""

    retryable: bool = False

    def __init__(self, kind: Enum, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.kind.value}: {self.message})"


# === Codec ===
class CodecErrorKind(str, Enum):
    TRUNCATED = "truncated"
    INVALID_FORMAT = "invalid_format"
    ENCODING = "encoding"


class CodecError(TraceExportError):
    """Malformed, truncated or non-UTF-8 payload. Never retryable for the same bytes."""

    kind: CodecErrorKind


# === Mapping ===
class MapErrorKind(str, Enum):
    PAYLOAD_DECODE = "payload_decode"
    TIMESTAMP_RANGE = "timestamp_range"
    KEY_RANGE = "key_range"


class MapError(TraceExportError):
    kind: MapErrorKind


# === Writer ===
class WriteErrorKind(str, Enum):
    ALREADY_FINISHED = "already_finished"
    ENCODE = "encode"
    FINALIZE = "finalize"
    SINK = "sink"


class WriteError(TraceExportError):
    """Columnar encoder rejected a row or failed to finalize; fatal to the export."""

    kind: WriteErrorKind


# === Source / resources ===
class SourceErrorKind(str, Enum):
    FETCH = "fetch"
    TIMEOUT = "timeout"


class SourceError(TraceExportError):
    """Opaque failure forwarded from the record source; the caller may retry the export."""

    kind: SourceErrorKind
    retryable = True


class ResourceErrorKind(str, Enum):
    RELEASE = "release"


class ResourceError(TraceExportError):
    """Cleanup failure. Reported, never the primary outcome of an export."""

    kind: ResourceErrorKind


# === Export (terminal) ===
class ExportErrorKind(str, Enum):
    SOURCE = "source"
    MAPPING = "mapping"
    WRITE = "write"
    FINALIZE = "finalize"
    CANCELLED = "cancelled"


class ExportError(TraceExportError):
    """The single terminal error an export returns; `cause` is the originating error."""

    kind: ExportErrorKind

    @property
    def retryable(self) -> bool:  # type: ignore[override]
        return isinstance(self.cause, SourceError)

    def unwrap_cause(self) -> BaseException:
        """Follow the `cause` chain down to the root error."""
        err: BaseException = self
        while isinstance(err, TraceExportError) and err.cause is not None:
            err = err.cause
        return err


# === Schema ===
class SchemaLoadErrorKind(str, Enum):
    MISSING = "missing"
    INVALID = "invalid"


class SchemaLoadError(TraceExportError):
    """The schema declaration could not be loaded; the process cannot serve exports."""

    kind: SchemaLoadErrorKind
