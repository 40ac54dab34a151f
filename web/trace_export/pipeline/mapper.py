"""
Record → row mapping.

Turns one `RawRecord` into the columnar-ready `MappedRow`:
- key checked to fit a signed 64-bit column
- range_start / range_end converted to epoch milliseconds
- payload decompressed to text through the configured codec

Pure and stateless: safe to call from any thread on independent records.

Public API:
- map_record(record, codec) -> Result[MappedRow, MapError]
- to_epoch_millis(value) -> Result[int, MapError]
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

from ..dto import MappedRow, RawRecord, TimestampLike
from ..errors import MapError, MapErrorKind
from ..ports import PayloadCodecPort
from ..result import Err, Ok, Result

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1

_EPOCH = datetime(1970, 1, 1)
_ONE_MS = timedelta(milliseconds=1)


def to_epoch_millis(value: Optional[TimestampLike]) -> Result[int, MapError]:
    """
    Convert a timestamp to epoch milliseconds.

    - aware datetime: converted to UTC first
    - naive datetime: taken as already in the canonical zone; no local-zone lookup
    - int: already epoch milliseconds

    Sub-millisecond precision is floored.
    """
    if isinstance(value, datetime):
        try:
            if value.tzinfo is not None:
                value = value.astimezone(timezone.utc).replace(tzinfo=None)
            millis = (value - _EPOCH) // _ONE_MS
        except (OverflowError, ValueError) as e:
            return Err(MapError(MapErrorKind.TIMESTAMP_RANGE, f"timestamp {value!r} not representable in UTC: {e}", e))
    elif isinstance(value, int) and not isinstance(value, bool):
        millis = value
    else:
        return Err(MapError(MapErrorKind.TIMESTAMP_RANGE, f"not a timestamp: {value!r}"))

    if not INT64_MIN <= millis <= INT64_MAX:
        return Err(MapError(MapErrorKind.TIMESTAMP_RANGE, f"timestamp {millis} ms outside int64"))
    return Ok(millis)


def map_record(record: RawRecord, codec: PayloadCodecPort) -> Result[MappedRow, MapError]:
    """Map one record; the first failing field decides the error."""
    key = record.key
    if not isinstance(key, int) or isinstance(key, bool) or not INT64_MIN <= key <= INT64_MAX:
        return Err(MapError(MapErrorKind.KEY_RANGE, f"key {key!r} is not an int64"))

    start = to_epoch_millis(record.range_start)
    if isinstance(start, Err):
        return start
    end = to_epoch_millis(record.range_end)
    if isinstance(end, Err):
        return end

    text = codec.decompress(record.payload)
    if isinstance(text, Err):
        return Err(
            MapError(
                MapErrorKind.PAYLOAD_DECODE,
                f"payload of key {key} could not be decoded: {text.error.message}",
                text.error,
            )
        )

    return Ok(MappedRow(key=key, range_start_ms=start.value, range_end_ms=end.value, text=text.value))
