"""
Export worker pool.

Runs exports on a ThreadPoolExecutor so request handlers only wait on a
Future while decompression and Parquet encoding happen elsewhere. Each
submitted export gets its own orchestrator; workers share only the
immutable schema and configuration.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Iterable, Optional

from ..config import ExportConfig
from ..dto import RawRecord
from ..errors import ExportError
from ..intake.decompress import get_codec
from ..pipeline.writer import ColumnarWriterFactory
from ..result import Result
from ..schema import ExportSchema
from .cancellation import CancelToken
from .runner import ExportOrchestrator


class ExportWorker:
    """
    Parameters
    ----------
    schema : ExportSchema
        Loaded once at startup; captured by the writer factory.
    config : ExportConfig
    logger : logging.Logger, optional
    """

    def __init__(
        self,
        schema: ExportSchema,
        config: Optional[ExportConfig] = None,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.config = config or ExportConfig()
        self._factory = ColumnarWriterFactory(schema, self.config)
        self._logger = logger or logging.getLogger(__name__)
        self._executor = ThreadPoolExecutor(
            max_workers=self.config.worker_threads,
            thread_name_prefix="parquet-export",
        )

    def submit(
        self,
        records: Callable[[], Iterable[RawRecord]],
        cancel_token: Optional[CancelToken] = None,
    ) -> "Future[Result[bytes, ExportError]]":
        """
        Schedule one export.

        `records` is called on the worker thread so that a lazy source (a
        database cursor, for instance) is opened and consumed on the same
        thread that writes the file.
        """
        return self._executor.submit(self._run, records, cancel_token)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait, cancel_futures=not wait)

    def _run(
        self,
        records: Callable[[], Iterable[RawRecord]],
        cancel_token: Optional[CancelToken],
    ) -> Result[bytes, ExportError]:
        orchestrator = ExportOrchestrator(
            self._factory,
            codec=get_codec(self.config.payload_codec),
            strategy=self.config.strategy,
            cancel_token=cancel_token,
            logger=self._logger,
        )
        return orchestrator.export(_Deferred(records))


class _Deferred:
    """Iterable that calls the source factory only when iteration starts."""

    def __init__(self, factory: Callable[[], Iterable[RawRecord]]) -> None:
        self._factory = factory

    def __iter__(self):
        return iter(self._factory())
