"""
Sinks the Parquet writer encodes into.

- MemorySink:   pyarrow BufferOutputStream; no filesystem involved (default).
- TempFileSink: a `parquet-export-*.parquet` temp file read back after the
                footer is written, then deleted. Useful when the encoder's
                working set should not live on the heap next to the result.

Both are single-use and interchangeable behind `SinkPort`.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

import pyarrow as pa

from ..errors import ResourceError, ResourceErrorKind
from ..ports import SinkPort

logger = logging.getLogger(__name__)


class MemorySink(SinkPort):
    def __init__(self) -> None:
        self._stream: Optional[pa.BufferOutputStream] = None

    def open(self) -> pa.BufferOutputStream:
        self._stream = pa.BufferOutputStream()
        return self._stream

    def getvalue(self) -> bytes:
        if self._stream is None:
            raise RuntimeError("sink is not open")
        return self._stream.getvalue().to_pybytes()

    def release(self) -> Optional[ResourceError]:
        self._stream = None
        return None


class TempFileSink(SinkPort):
    """
    Parameters
    ----------
    temp_dir : str, optional
        Directory for the scratch file; None uses the system temp dir.
    """

    prefix = "parquet-export-"
    suffix = ".parquet"

    def __init__(self, temp_dir: Optional[str] = None) -> None:
        self._temp_dir = temp_dir
        self._path: Optional[Path] = None

    @property
    def path(self) -> Optional[Path]:
        return self._path

    def open(self) -> str:
        fd, name = tempfile.mkstemp(prefix=self.prefix, suffix=self.suffix, dir=self._temp_dir)
        os.close(fd)
        self._path = Path(name)
        logger.debug("Created temporary file for Parquet writing: %s", name)
        return name

    def getvalue(self) -> bytes:
        if self._path is None:
            raise RuntimeError("sink is not open")
        return self._path.read_bytes()

    def release(self) -> Optional[ResourceError]:
        if self._path is None:
            return None
        path, self._path = self._path, None
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            return ResourceError(ResourceErrorKind.RELEASE, f"failed to delete temporary file {path}: {e}", e)
        return None
