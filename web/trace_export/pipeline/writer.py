"""
Columnar writer: MappedRow stream → one Parquet file.

Wraps `pyarrow.parquet.ParquetWriter`. Rows are buffered per column and
emitted as one record batch (one row group) every `row_group_size` rows, so
a `write` call does not imply a flush. `finish` writes the remaining rows and
the footer, then returns the complete file from the sink.

Any failure is fatal to the export: a Parquet file without a consistent
footer is unusable, so there is no partial continuation.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

import pyarrow as pa
import pyarrow.parquet as pq

from ..config import ExportConfig
from ..dto import MappedRow
from ..errors import ResourceError, ResourceErrorKind, WriteError, WriteErrorKind
from ..ports import ColumnarWriterPort, SinkPort
from ..result import Err, Ok, Result
from ..schema import ExportSchema
from .sinks import MemorySink, TempFileSink

logger = logging.getLogger(__name__)

# Errors pyarrow raises while converting or encoding values
_ENCODE_ERRORS = (pa.ArrowException, OSError, TypeError, ValueError, OverflowError)


class ParquetColumnarWriter(ColumnarWriterPort):
    """
    Single-use Parquet writer bound to one schema and one sink.

    Call `open()` before writing (the factory does this). After `finish()`
    succeeds or fails, further `write`/`finish` calls return ALREADY_FINISHED.
    """

    def __init__(
        self,
        schema: ExportSchema,
        sink: SinkPort,
        *,
        row_group_size: int = 10_000,
        compression: str = "snappy",
    ) -> None:
        self._schema = schema
        self._arrow_schema = schema.to_arrow()
        self._sink = sink
        self._row_group_size = max(1, int(row_group_size))
        self._compression = None if compression == "none" else compression

        self._writer: Optional[pq.ParquetWriter] = None
        self._columns: Dict[str, List[object]] = {f.attribute: [] for f in schema.fields}
        self._pending = 0
        self._rows_written = 0
        self._finished = False

    @property
    def rows_written(self) -> int:
        """Rows already encoded into row groups (excludes the pending buffer)."""
        return self._rows_written

    @property
    def finished(self) -> bool:
        return self._finished

    # --- lifecycle ---

    def open(self) -> Result[None, WriteError]:
        try:
            target = self._sink.open()
            self._writer = pq.ParquetWriter(target, self._arrow_schema, compression=self._compression)
        except (pa.ArrowException, OSError) as e:
            return Err(WriteError(WriteErrorKind.SINK, f"cannot open Parquet sink: {e}", e))
        return Ok(None)

    def write(self, row: MappedRow) -> Result[None, WriteError]:
        if self._finished:
            return Err(WriteError(WriteErrorKind.ALREADY_FINISHED, "write() after finish()"))
        if self._writer is None:
            return Err(WriteError(WriteErrorKind.SINK, "writer is not open"))

        for field in self._schema.fields:
            self._columns[field.attribute].append(getattr(row, field.attribute))
        self._pending += 1

        if self._pending >= self._row_group_size:
            return self._flush()
        return Ok(None)

    def finish(self) -> Result[bytes, WriteError]:
        if self._finished:
            return Err(WriteError(WriteErrorKind.ALREADY_FINISHED, "finish() called twice"))
        if self._writer is None:
            return Err(WriteError(WriteErrorKind.SINK, "writer is not open"))
        self._finished = True

        flushed = self._flush()
        if isinstance(flushed, Err):
            return Err(WriteError(WriteErrorKind.FINALIZE, "final row group rejected", flushed.error))

        writer, self._writer = self._writer, None
        try:
            writer.close()
            data = self._sink.getvalue()
        except (pa.ArrowException, OSError) as e:
            return Err(WriteError(WriteErrorKind.FINALIZE, f"cannot finalize Parquet file: {e}", e))

        logger.debug("Finalized Parquet file: rows=%d bytes=%d", self._rows_written, len(data))
        return Ok(data)

    def release(self) -> List[ResourceError]:
        """Abort an unfinished writer and release the sink. Never raises."""
        errors: List[ResourceError] = []
        self._finished = True

        if self._writer is not None:
            writer, self._writer = self._writer, None
            try:
                writer.close()
            except (pa.ArrowException, OSError) as e:
                errors.append(ResourceError(ResourceErrorKind.RELEASE, f"failed to abort Parquet writer: {e}", e))

        for column in self._columns.values():
            column.clear()
        self._pending = 0

        sink_error = self._sink.release()
        if sink_error is not None:
            errors.append(sink_error)
        return errors

    # --- helpers ---

    def _flush(self) -> Result[None, WriteError]:
        if self._pending == 0:
            return Ok(None)
        if self._writer is None:
            return Err(WriteError(WriteErrorKind.SINK, "writer is not open"))
        try:
            batch = pa.RecordBatch.from_pydict(
                {f.name: self._columns[f.attribute] for f in self._schema.fields},
                schema=self._arrow_schema,
            )
            self._writer.write_batch(batch)
        except _ENCODE_ERRORS as e:
            return Err(WriteError(WriteErrorKind.ENCODE, f"Parquet encoder rejected a row group: {e}", e))

        self._rows_written += self._pending
        self._pending = 0
        for column in self._columns.values():
            column.clear()
        return Ok(None)


class ColumnarWriterFactory:
    """
    Builds one opened writer (and its sink) per export.

    Captures the process-wide schema and configuration once; every writer it
    produces shares them read-only.
    """

    def __init__(self, schema: ExportSchema, config: Optional[ExportConfig] = None) -> None:
        self.schema = schema
        self.config = config or ExportConfig()

    def make_sink(self) -> SinkPort:
        if self.config.sink == "tempfile":
            return TempFileSink(self.config.temp_dir)
        return MemorySink()

    def __call__(self) -> Result[ParquetColumnarWriter, WriteError]:
        writer = ParquetColumnarWriter(
            self.schema,
            self.make_sink(),
            row_group_size=self.config.row_group_size,
            compression=self.config.parquet_compression,
        )
        opened = writer.open()
        if isinstance(opened, Err):
            for err in writer.release():
                logger.warning("Cleanup after failed writer open: %s", err)
            return opened
        return Ok(writer)
