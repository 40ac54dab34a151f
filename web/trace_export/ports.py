"""
Hexagonal interfaces (Ports) for the export pipeline.

These define the boundary between the core conversion logic and I/O adapters.
Keep them small and implementation-agnostic so they're easy to fake in tests.
"""

from __future__ import annotations

from typing import Any, Iterable, List, Optional, Protocol

from .dto import MappedRow, RawRecord
from .errors import CodecError, ResourceError, WriteError
from .result import Result


class RecordSourcePort(Protocol):
    """
    Supplies trace records already filtered and ordered by (key, range_start).
    The sequence is lazy, finite, and cannot be restarted.
    """

    def fetch(self) -> Iterable[RawRecord]:
        """
        Return the records to export. Iteration errors (including timeouts)
        surface as terminal source errors of the export.
        """
        ...


class PayloadCodecPort(Protocol):
    """Symmetric codec for one per-record payload."""

    name: str

    def decompress(self, payload: Optional[bytes]) -> Result[str, CodecError]:
        """Decode one payload; None or empty input yields Ok("")."""
        ...

    def compress(self, text: str) -> bytes:
        ...


class SinkPort(Protocol):
    """
    Destination the columnar writer encodes into. The writer needs a target
    it can open once, read back after finalizing, and release afterwards.
    """

    def open(self) -> Any:
        """Return a path or a writable pyarrow stream for the Parquet writer."""
        ...

    def getvalue(self) -> bytes:
        """Return the finalized file contents. Valid only after the writer closed."""
        ...

    def release(self) -> Optional[ResourceError]:
        """Drop any transient resource; return (never raise) a cleanup failure."""
        ...


class ColumnarWriterPort(Protocol):
    """Capability set the orchestrator drives: write rows, then finish once."""

    def write(self, row: MappedRow) -> Result[None, WriteError]:
        ...

    def finish(self) -> Result[bytes, WriteError]:
        ...

    def release(self) -> List[ResourceError]:
        """Abort if unfinished and release the sink. Never raises."""
        ...
