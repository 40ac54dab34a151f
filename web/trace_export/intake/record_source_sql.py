"""
SQL-backed RecordSource adapter.

Reads trace rows from the `TD_FD_TRACE_PARAM` table:

    PARAM_INDEX  BIGINT     -> RawRecord.key
    START_TIME   TIMESTAMP  -> RawRecord.range_start
    END_TIME     TIMESTAMP  -> RawRecord.range_end
    TRACE_DATA   BLOB       -> RawRecord.payload (gzip-compressed JSON)

Rows are filtered by key set and START_TIME window (both bounds inclusive),
ordered by (PARAM_INDEX, START_TIME), and streamed with `yield_per` so the
export never holds the whole result set. The connection is held only while
the returned iterator is being consumed and is returned to the pool when it
is exhausted or closed.

Range validation (start after end) belongs to the request layer; an empty key
set yields nothing without touching the database.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Iterator, Sequence

from sqlalchemy import BigInteger, Column, DateTime, LargeBinary, MetaData, Table, select
from sqlalchemy.engine import Engine

from ..dto import RawRecord
from ..ports import RecordSourcePort

metadata = MetaData()

trace_param_table = Table(
    "TD_FD_TRACE_PARAM",
    metadata,
    Column("PARAM_INDEX", BigInteger, nullable=False),
    Column("START_TIME", DateTime, nullable=False),
    Column("END_TIME", DateTime, nullable=False),
    Column("TRACE_DATA", LargeBinary),
)


@dataclass(frozen=True)
class SqlRecordSource(RecordSourcePort):
    """
    Stream trace records for a key set and time window.

    Parameters
    ----------
    engine : sqlalchemy.engine.Engine
        Engine owning the connection pool.
    keys : Sequence[int]
        Parameter indices to export.
    start_time, end_time : datetime
        Inclusive START_TIME window.
    fetch_size : int
        Rows fetched per round trip.
    """

    engine: Engine
    keys: Sequence[int]
    start_time: datetime
    end_time: datetime
    fetch_size: int = 1000

    def fetch(self) -> Iterable[RawRecord]:
        if not self.keys:
            return []
        return self._iter()

    def _iter(self) -> Iterator[RawRecord]:
        t = trace_param_table.c
        stmt = (
            select(t.PARAM_INDEX, t.START_TIME, t.END_TIME, t.TRACE_DATA)
            .where(t.PARAM_INDEX.in_(list(self.keys)))
            .where(t.START_TIME >= self.start_time)
            .where(t.START_TIME <= self.end_time)
            .order_by(t.PARAM_INDEX, t.START_TIME)
        )
        with self.engine.connect() as conn:
            result = conn.execution_options(yield_per=self.fetch_size).execute(stmt)
            for row in result:
                yield RawRecord(
                    key=int(row.PARAM_INDEX),
                    range_start=row.START_TIME,
                    range_end=row.END_TIME,
                    payload=bytes(row.TRACE_DATA) if row.TRACE_DATA is not None else None,
                )
