"""
Data Transfer Objects (DTOs) used across the export pipeline.

These are intentionally small, immutable, and independent of any I/O or
columnar-format libraries.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Union

# Epoch milliseconds are accepted as-is wherever a timestamp is expected.
TimestampLike = Union[datetime, int]


# === Intake ===
@dataclass(frozen=True)
class RawRecord:
    """One trace row as read from the backing store, sorted by (key, range_start)."""
    key: int
    range_start: TimestampLike
    range_end: TimestampLike
    payload: Optional[bytes]  # compressed; None/b"" means "no data"


# === Columnar-ready row ===
@dataclass(frozen=True)
class MappedRow:
    key: int
    range_start_ms: int      # epoch millis, int64
    range_end_ms: int        # epoch millis, int64
    text: str                # decompressed UTF-8 payload


# === Orchestrator lifecycle ===
class ExportState(str, Enum):
    IDLE = "idle"
    DRAINING = "draining"
    WRITING = "writing"
    FINALIZING = "finalizing"
    DONE = "done"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ExportState.DONE, ExportState.FAILED)
