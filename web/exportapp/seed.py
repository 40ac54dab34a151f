"""
Sample data seeding for development.

Creates the trace table if needed, clears it, and inserts a handful of
gzip-compressed JSON trace rows so the export endpoint has something to
return. Enabled with SEED_SAMPLE_DATA.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional, Sequence, Tuple

from sqlalchemy import delete, insert
from sqlalchemy.engine import Engine

from trace_export.intake.decompress import get_codec
from trace_export.intake.record_source_sql import metadata, trace_param_table
from trace_export.ports import PayloadCodecPort

# (param_index, start, end, raw JSON)
SAMPLE_TRACES: Tuple[Tuple[int, str, str, str], ...] = (
    (1, "2024-01-10T10:00:00", "2024-01-10T10:00:05", '{"value": 100, "status": "OK"}'),
    (2, "2024-01-10T10:01:00", "2024-01-10T10:01:10", '{"value": 250, "status": "WARN", "temp": 45.5}'),
    (3, "2024-01-10T10:02:00", "2024-01-10T10:02:15", '{"value": 500, "status": "CRITICAL", "pressure": 1.5}'),
)


def seed_sample_data(
    engine: Engine,
    *,
    samples: Sequence[Tuple[int, str, str, str]] = SAMPLE_TRACES,
    codec: Optional[PayloadCodecPort] = None,
    logger: Optional[logging.Logger] = None,
) -> int:
    """Replace the table contents with `samples`; returns the number of rows inserted."""
    log = logger or logging.getLogger(__name__)
    codec = codec or get_codec("gzip")

    rows = [
        {
            "PARAM_INDEX": index,
            "START_TIME": datetime.fromisoformat(start),
            "END_TIME": datetime.fromisoformat(end),
            "TRACE_DATA": codec.compress(raw_json),
        }
        for index, start, end, raw_json in samples
    ]

    log.info("Starting sample data initialization...")
    metadata.create_all(engine)
    with engine.begin() as conn:
        conn.execute(delete(trace_param_table))
        if rows:
            conn.execute(insert(trace_param_table), rows)
    log.info("Sample data initialization completed: %d rows", len(rows))
    return len(rows)
