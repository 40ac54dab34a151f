"""
Export orchestration: RawRecord sequence → Parquet bytes.

Lifecycle of one `ExportOrchestrator` (single use):

    IDLE → DRAINING → WRITING → FINALIZING → DONE
                 \\         \\           \\
                  +---------+-----------+→ FAILED

- Zero records: DRAINING → DONE with b"" and no writer is ever built.
- First record: the writer is acquired through a ResourceGuard.
- Any source, mapping, write, or finalize failure (and cancellation)
  abandons the export; the guard releases the writer and no bytes are
  returned.

Buffering strategies (ExportConfig.strategy):
- "streaming": map and write each record as it is pulled. Memory stays at
  one row group; the writer lives as long as the source iteration.
- "buffered":  pull and map every record first, then open the writer and
  write the list. Memory grows with the result set; mapping failures are
  found before any encoding starts.

Records are never reordered; ordering is the source's job.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Iterator, List, Literal, Optional

from ..config import ExportConfig
from ..dto import ExportState, MappedRow, RawRecord
from ..errors import (
    ExportError,
    ExportErrorKind,
    ResourceError,
    ResourceErrorKind,
    SourceError,
    SourceErrorKind,
    TraceExportError,
    WriteError,
)
from ..intake.decompress import get_codec
from ..pipeline.guard import ResourceGuard
from ..pipeline.mapper import map_record
from ..pipeline.writer import ColumnarWriterFactory
from ..ports import ColumnarWriterPort, PayloadCodecPort
from ..result import Err, Ok, Result
from ..schema import ExportSchema, default_schema
from .cancellation import CancelToken

WriterFactory = Callable[[], Result[ColumnarWriterPort, WriteError]]

_FAILURE_MESSAGE = "Failed to convert data to Parquet"


class ExportOrchestrator:
    """
    Drives one export from source to bytes.

    Parameters
    ----------
    writer_factory : callable
        Returns Ok(opened writer) or Err(WriteError). Called at most once,
        and only when the source yields at least one record.
    codec : PayloadCodecPort
        Payload decompressor.
    strategy : "streaming" | "buffered"
    cancel_token : CancelToken, optional
        Checked before every record pull.
    logger : logging.Logger, optional
    """

    def __init__(
        self,
        writer_factory: WriterFactory,
        *,
        codec: PayloadCodecPort,
        strategy: Literal["streaming", "buffered"] = "streaming",
        cancel_token: Optional[CancelToken] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._writer_factory = writer_factory
        self._codec = codec
        self._strategy = strategy
        self._cancel = cancel_token or CancelToken()
        self._logger = logger or logging.getLogger(__name__)

        self._state = ExportState.IDLE
        self.rows_exported = 0
        self.release_errors: List[ResourceError] = []

    @property
    def state(self) -> ExportState:
        return self._state

    # ---------------------------- Public methods ---------------------------

    def export(self, records: Iterable[RawRecord]) -> Result[bytes, ExportError]:
        """
        Run the export. Returns Ok(b"") for an empty source, Ok(file bytes)
        otherwise, or Err(ExportError) carrying the originating cause.
        """
        if self._state is not ExportState.IDLE:
            raise RuntimeError(f"orchestrator already used (state={self._state.value})")
        self._state = ExportState.DRAINING

        try:
            source: Optional[Iterator[RawRecord]] = iter(records)
        except Exception as e:
            source = None
            result = self._fail(
                ExportErrorKind.SOURCE,
                SourceError(SourceErrorKind.FETCH, f"record source failed to open: {e}", e),
            )

        if source is not None:
            try:
                if self._strategy == "buffered":
                    result = self._run_buffered(source)
                else:
                    result = self._run_streaming(source)
            except Exception:
                self._state = ExportState.FAILED
                self._logger.exception("Unexpected error during Parquet conversion process")
                raise
            finally:
                self._close_source(source)

        if isinstance(result, Err):
            self._state = ExportState.FAILED
            self._logger.error("Error during Parquet conversion process: %s", result.error.message)
        else:
            self._state = ExportState.DONE
            if result.value:
                self._logger.info(
                    "Generated Parquet file: rows=%d bytes=%d", self.rows_exported, len(result.value)
                )
        return result

    # --------------------------- Strategies ---------------------------

    def _run_streaming(self, source: Iterator[RawRecord]) -> Result[bytes, ExportError]:
        pulled = self._pull(source)
        if isinstance(pulled, Err):
            return pulled
        record = pulled.value
        if record is None:
            self._logger.debug("Input data stream is empty. Returning empty byte array.")
            return Ok(b"")

        guard: ResourceGuard[ColumnarWriterPort] = ResourceGuard(self._writer_factory, logger=self._logger)
        self.release_errors = guard.release_errors
        with guard as acquired:
            if isinstance(acquired, Err):
                return self._fail(ExportErrorKind.WRITE, acquired.error)
            writer = acquired.value
            self._state = ExportState.WRITING

            while record is not None:
                mapped = map_record(record, self._codec)
                if isinstance(mapped, Err):
                    return self._fail(ExportErrorKind.MAPPING, mapped.error)
                written = self._write(writer, mapped.value)
                if isinstance(written, Err):
                    return written

                pulled = self._pull(source)
                if isinstance(pulled, Err):
                    return pulled
                record = pulled.value

            return self._finalize(writer)

    def _run_buffered(self, source: Iterator[RawRecord]) -> Result[bytes, ExportError]:
        rows: List[MappedRow] = []
        while True:
            pulled = self._pull(source)
            if isinstance(pulled, Err):
                return pulled
            if pulled.value is None:
                break
            mapped = map_record(pulled.value, self._codec)
            if isinstance(mapped, Err):
                return self._fail(ExportErrorKind.MAPPING, mapped.error)
            rows.append(mapped.value)

        if not rows:
            self._logger.debug("Input data stream is empty. Returning empty byte array.")
            return Ok(b"")

        guard: ResourceGuard[ColumnarWriterPort] = ResourceGuard(self._writer_factory, logger=self._logger)
        self.release_errors = guard.release_errors
        with guard as acquired:
            if isinstance(acquired, Err):
                return self._fail(ExportErrorKind.WRITE, acquired.error)
            writer = acquired.value
            self._state = ExportState.WRITING

            for row in rows:
                written = self._write(writer, row)
                if isinstance(written, Err):
                    return written

            return self._finalize(writer)

    # --------------------------- Private helpers ---------------------------

    def _pull(self, source: Iterator[RawRecord]) -> Result[Optional[RawRecord], ExportError]:
        """Next record, Ok(None) at end of source, or Err on cancellation/source failure."""
        if self._cancel.cancelled:
            return Err(ExportError(ExportErrorKind.CANCELLED, "export cancelled"))
        try:
            return Ok(next(source))
        except StopIteration:
            return Ok(None)
        except TimeoutError as e:
            err = SourceError(SourceErrorKind.TIMEOUT, f"record source timed out: {e}", e)
            return self._fail(ExportErrorKind.SOURCE, err)
        except Exception as e:
            err = SourceError(SourceErrorKind.FETCH, f"record source failed: {e}", e)
            return self._fail(ExportErrorKind.SOURCE, err)

    def _write(self, writer: ColumnarWriterPort, row: MappedRow) -> Result[None, ExportError]:
        written = writer.write(row)
        if isinstance(written, Err):
            return self._fail(ExportErrorKind.WRITE, written.error)
        self.rows_exported += 1
        return Ok(None)

    def _finalize(self, writer: ColumnarWriterPort) -> Result[bytes, ExportError]:
        self._state = ExportState.FINALIZING
        finished = writer.finish()
        if isinstance(finished, Err):
            return self._fail(ExportErrorKind.FINALIZE, finished.error)
        return Ok(finished.value)

    @staticmethod
    def _fail(kind: ExportErrorKind, cause: TraceExportError) -> Err[ExportError]:
        return Err(ExportError(kind, f"{_FAILURE_MESSAGE}: {cause.message}", cause))

    def _close_source(self, source: Iterator[RawRecord]) -> None:
        # Generators (e.g. a SQL cursor) hold a connection until closed.
        close = getattr(source, "close", None)
        if close is None:
            return
        try:
            close()
        except Exception as e:
            err = ResourceError(ResourceErrorKind.RELEASE, f"failed to close record source: {e}", e)
            self._logger.error("Failed to release export resource: %s", err.message)
            self.release_errors.append(err)


def export(
    records: Iterable[RawRecord],
    *,
    config: Optional[ExportConfig] = None,
    schema: Optional[ExportSchema] = None,
    codec: Optional[PayloadCodecPort] = None,
    cancel_token: Optional[CancelToken] = None,
    writer_factory: Optional[WriterFactory] = None,
    logger: Optional[logging.Logger] = None,
) -> Result[bytes, ExportError]:
    """
    Convert `records` into one Parquet file.

    Returns Ok(b"") when the source yields no records (never a failure),
    Ok(file bytes) on success, or Err(ExportError).
    """
    cfg = config or ExportConfig()
    if writer_factory is None:
        writer_factory = ColumnarWriterFactory(schema or default_schema(), cfg)
    orchestrator = ExportOrchestrator(
        writer_factory,
        codec=codec or get_codec(cfg.payload_codec),
        strategy=cfg.strategy,
        cancel_token=cancel_token,
        logger=logger,
    )
    return orchestrator.export(records)
