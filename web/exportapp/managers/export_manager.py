"""
Export manager.

Wires the SQL record source to the export worker pool for the HTTP layer.
One instance per app, stored in `app.extensions["export_mgr"]`.
"""

from __future__ import annotations

import logging
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy.engine import Engine

from trace_export import CancelToken, ExportError, ExportWorker, Result, SqlRecordSource

from ..schemas import DataExportRequest


@dataclass
class ExportManager:
    """
    Attributes:
        engine: Engine for the trace store.
        worker: Thread pool running the exports.
        fetch_size: Rows fetched per database round trip.
        timeout: Seconds a request waits before the export is cancelled; None waits forever.
    """
    engine: Engine
    worker: ExportWorker
    fetch_size: int = 1000
    timeout: Optional[float] = None
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger("exportapp"))

    def export_parquet(
        self,
        req: DataExportRequest,
        cancel_token: Optional[CancelToken] = None,
    ) -> Result[bytes, ExportError]:
        """
        Export every trace for `req` as one Parquet file.

        Blocks the calling request thread on the worker's Future; the export
        itself (query, decompression, encoding) runs on the pool. When
        `timeout` expires the token is cancelled and the abandoned export's
        CANCELLED result is returned once its writer has been released.
        """
        token = cancel_token or CancelToken()
        source = SqlRecordSource(
            engine=self.engine,
            keys=tuple(req.parameter_indices),
            start_time=req.start_time,
            end_time=req.end_time,
            fetch_size=self.fetch_size,
        )
        future = self.worker.submit(source.fetch, token)
        try:
            return future.result(timeout=self.timeout)
        except FutureTimeout:
            self.logger.warning("Export exceeded %.1fs; cancelling", self.timeout)
            token.cancel()
            return future.result()

    def shutdown(self) -> None:
        self.worker.shutdown(wait=True)
        self.engine.dispose()
