"""Shared fixtures for the export pipeline tests."""

import gzip
from datetime import datetime, timedelta
from typing import List

import pyarrow as pa
import pyarrow.parquet as pq
import pytest

from trace_export import RawRecord, default_schema, get_codec


@pytest.fixture
def codec():
    return get_codec("gzip")


@pytest.fixture
def schema():
    return default_schema()


@pytest.fixture
def make_record():
    """Build a RawRecord with a gzip payload and a 5-second range."""
    base = datetime(2024, 1, 10, 10, 0, 0)

    def _make(key: int, text: str = '{"v": 1}', offset_s: int = 0) -> RawRecord:
        start = base + timedelta(seconds=offset_s)
        return RawRecord(
            key=key,
            range_start=start,
            range_end=start + timedelta(seconds=5),
            payload=gzip.compress(text.encode("utf-8")),
        )

    return _make


@pytest.fixture
def read_rows():
    """Decode Parquet bytes into plain dict rows with timestamps as epoch millis."""

    def _read(data: bytes) -> List[dict]:
        table = pq.read_table(pa.BufferReader(data))
        columns = {}
        for name in table.column_names:
            col = table.column(name)
            if pa.types.is_timestamp(col.type):
                col = col.cast(pa.int64())
            columns[name] = col.to_pylist()
        return [dict(zip(columns, values)) for values in zip(*columns.values())]

    return _read
