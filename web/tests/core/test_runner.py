"""Tests for the export orchestrator and how it maps and cleans up after failures."""

import logging
from datetime import datetime, timedelta, timezone

import pytest
import zstandard

from trace_export import CancelToken, ExportConfig, ExportOrchestrator, export
from trace_export.dto import ExportState, RawRecord
from trace_export.errors import (
    CodecError,
    CodecErrorKind,
    ExportErrorKind,
    MapError,
    MapErrorKind,
    ResourceError,
    ResourceErrorKind,
    SourceError,
    SourceErrorKind,
    WriteError,
    WriteErrorKind,
)
from trace_export.pipeline.writer import ColumnarWriterFactory
from trace_export.result import Err, Ok

STRATEGIES = ["streaming", "buffered"]


class SpyFactory:
    """Wraps a real writer factory; counts calls and remembers the writers it built."""

    def __init__(self, schema, config=None):
        self._inner = ColumnarWriterFactory(schema, config or ExportConfig())
        self.calls = 0
        self.writers = []

    def __call__(self):
        self.calls += 1
        result = self._inner()
        if isinstance(result, Ok):
            self.writers.append(result.value)
        return result


class FakeWriter:
    def __init__(self, write_error=None, finish_error=None, release_errors=None):
        self.rows = []
        self.released = 0
        self._write_error = write_error
        self._finish_error = finish_error
        self._release_errors = release_errors or []

    def write(self, row):
        if self._write_error is not None:
            return Err(self._write_error)
        self.rows.append(row)
        return Ok(None)

    def finish(self):
        if self._finish_error is not None:
            return Err(self._finish_error)
        return Ok(b"fake-bytes")

    def release(self):
        self.released += 1
        return list(self._release_errors)


@pytest.fixture
def spy(schema):
    return SpyFactory(schema)


# ---------------------------------------------------------------------------
# Success paths
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("strategy", STRATEGIES)
def test_empty_source_yields_empty_bytes_without_writer(spy, codec, strategy):
    orchestrator = ExportOrchestrator(spy, codec=codec, strategy=strategy)
    assert orchestrator.export([]) == Ok(b"")
    assert spy.calls == 0
    assert orchestrator.state is ExportState.DONE


@pytest.mark.parametrize("strategy", STRATEGIES)
def test_exports_rows_in_file(spy, codec, make_record, read_rows, strategy):
    records = [make_record(10, '{"v":1}'), make_record(20, '{"v":2}'), make_record(30, "")]
    orchestrator = ExportOrchestrator(spy, codec=codec, strategy=strategy)

    result = orchestrator.export(records)

    assert isinstance(result, Ok)
    rows = read_rows(result.value)
    assert [r["paramIndex"] for r in rows] == [10, 20, 30]
    assert [r["traceData"] for r in rows] == ['{"v":1}', '{"v":2}', ""]
    assert rows[0]["startTime"] == 1_704_880_800_000
    assert rows[0]["endTime"] == 1_704_880_805_000
    assert orchestrator.rows_exported == 3
    assert orchestrator.state is ExportState.DONE
    assert spy.calls == 1


@pytest.mark.parametrize("keys", [[1, 2, 3], [3, 1, 2]])
def test_source_order_is_preserved(schema, codec, make_record, read_rows, keys):
    records = [make_record(k, f'{{"k":{k}}}', offset_s=i) for i, k in enumerate(keys)]
    result = export(records, schema=schema, codec=codec)
    assert [r["paramIndex"] for r in read_rows(result.value)] == keys


def test_empty_payload_row(schema, codec, read_rows):
    record = RawRecord(key=5, range_start=0, range_end=1, payload=None)
    result = export([record], schema=schema, codec=codec)
    assert read_rows(result.value) == [{"paramIndex": 5, "startTime": 0, "endTime": 1, "traceData": ""}]


def test_lazy_generator_source(schema, codec, make_record, read_rows):
    def _records():
        for k in range(50):
            yield make_record(k, offset_s=k)

    result = export(_records(), config=ExportConfig(row_group_size=7), schema=schema, codec=codec)
    assert len(read_rows(result.value)) == 50


def test_zstd_payload_codec_from_config(schema, read_rows):
    payload = zstandard.ZstdCompressor().compress(b'{"z":1}')
    record = RawRecord(key=1, range_start=0, range_end=0, payload=payload)
    result = export([record], config=ExportConfig(payload_codec="zstd"), schema=schema)
    assert read_rows(result.value)[0]["traceData"] == '{"z":1}'


def test_tempfile_sink_leaves_nothing_behind(schema, codec, make_record, read_rows, tmp_path):
    config = ExportConfig(sink="tempfile", temp_dir=str(tmp_path))
    result = export([make_record(1), make_record(2)], config=config, schema=schema, codec=codec)
    assert len(read_rows(result.value)) == 2
    assert list(tmp_path.iterdir()) == []


def test_success_logs_summary(spy, codec, make_record, caplog):
    logger = logging.getLogger("runner_test")
    with caplog.at_level(logging.INFO, logger="runner_test"):
        ExportOrchestrator(spy, codec=codec, logger=logger).export([make_record(1)])
    assert "Generated Parquet file: rows=1" in caplog.text


# ---------------------------------------------------------------------------
# Failure paths
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("strategy", STRATEGIES)
def test_malformed_payload_fails_with_codec_cause(spy, codec, make_record, strategy):
    bad = RawRecord(key=2, range_start=0, range_end=0, payload=bytes([0x00, 0x01]))
    orchestrator = ExportOrchestrator(spy, codec=codec, strategy=strategy)

    result = orchestrator.export([make_record(1), bad, make_record(3)])

    assert isinstance(result, Err)
    assert result.error.kind is ExportErrorKind.MAPPING
    assert result.error.message.startswith("Failed to convert data to Parquet")
    assert isinstance(result.error.cause, MapError)
    assert isinstance(result.error.cause.cause, CodecError)
    assert result.error.cause.cause.kind is CodecErrorKind.INVALID_FORMAT
    assert result.error.retryable is False
    assert orchestrator.state is ExportState.FAILED
    for writer in spy.writers:
        assert writer.finished


def test_buffered_mapping_failure_never_builds_writer(spy, codec, make_record):
    bad = RawRecord(key=2, range_start=0, range_end=0, payload=b"\x1f")
    result = ExportOrchestrator(spy, codec=codec, strategy="buffered").export([make_record(1), bad])
    assert result.error.kind is ExportErrorKind.MAPPING
    assert result.error.cause.cause.kind is CodecErrorKind.TRUNCATED
    assert spy.calls == 0


def test_source_failure_is_retryable(spy, codec, make_record):
    def _records():
        yield make_record(1)
        raise ConnectionError("database went away")

    result = ExportOrchestrator(spy, codec=codec).export(_records())

    assert isinstance(result, Err)
    assert result.error.kind is ExportErrorKind.SOURCE
    assert isinstance(result.error.cause, SourceError)
    assert result.error.cause.kind is SourceErrorKind.FETCH
    assert result.error.retryable is True
    assert isinstance(result.error.unwrap_cause(), ConnectionError)


def test_source_timeout(spy, codec):
    def _records():
        raise TimeoutError("statement timeout")
        yield  # pragma: no cover

    result = ExportOrchestrator(spy, codec=codec).export(_records())
    assert result.error.kind is ExportErrorKind.SOURCE
    assert result.error.cause.kind is SourceErrorKind.TIMEOUT
    assert spy.calls == 0


def test_source_that_cannot_be_iterated(spy, codec):
    class Broken:
        def __iter__(self):
            raise OSError("cannot open cursor")

    result = ExportOrchestrator(spy, codec=codec).export(Broken())
    assert result.error.kind is ExportErrorKind.SOURCE
    assert result.error.cause.kind is SourceErrorKind.FETCH


def test_cancellation_before_start(spy, codec, make_record):
    token = CancelToken()
    token.cancel()
    result = ExportOrchestrator(spy, codec=codec, cancel_token=token).export([make_record(1)])
    assert result.error.kind is ExportErrorKind.CANCELLED
    assert spy.calls == 0


def test_cancellation_mid_stream_releases_writer(codec, make_record, tmp_path, schema):
    spy = SpyFactory(schema, ExportConfig(sink="tempfile", temp_dir=str(tmp_path)))
    token = CancelToken()

    def _records():
        yield make_record(1)
        token.cancel()
        yield make_record(2)
        yield make_record(3)

    orchestrator = ExportOrchestrator(spy, codec=codec, cancel_token=token)
    result = orchestrator.export(_records())

    assert isinstance(result, Err)
    assert result.error.kind is ExportErrorKind.CANCELLED
    assert spy.writers[0].finished
    assert list(tmp_path.iterdir()) == []


def test_writer_factory_failure_is_write_error(codec, make_record):
    error = WriteError(WriteErrorKind.SINK, "disk full")
    result = ExportOrchestrator(lambda: Err(error), codec=codec).export([make_record(1)])
    assert result.error.kind is ExportErrorKind.WRITE
    assert result.error.cause is error


def test_write_failure_releases_writer(codec, make_record):
    writer = FakeWriter(write_error=WriteError(WriteErrorKind.ENCODE, "rejected"))
    result = ExportOrchestrator(lambda: Ok(writer), codec=codec).export([make_record(1)])
    assert result.error.kind is ExportErrorKind.WRITE
    assert writer.released == 1


def test_finish_failure_is_finalize_error(codec, make_record):
    writer = FakeWriter(finish_error=WriteError(WriteErrorKind.FINALIZE, "footer"))
    orchestrator = ExportOrchestrator(lambda: Ok(writer), codec=codec)
    result = orchestrator.export([make_record(1), make_record(2)])
    assert result.error.kind is ExportErrorKind.FINALIZE
    assert len(writer.rows) == 2
    assert writer.released == 1


def test_release_error_does_not_replace_success(codec, make_record):
    failure = ResourceError(ResourceErrorKind.RELEASE, "temp file stuck")
    writer = FakeWriter(release_errors=[failure])
    orchestrator = ExportOrchestrator(lambda: Ok(writer), codec=codec)

    assert orchestrator.export([make_record(1)]) == Ok(b"fake-bytes")
    assert orchestrator.release_errors == [failure]


def test_abandoned_generator_is_closed(spy, codec, make_record):
    closed = []

    def _records():
        try:
            yield RawRecord(key=1, range_start=0, range_end=0, payload=b"\x00\x01")
            yield make_record(2)
        finally:
            closed.append(True)

    result = ExportOrchestrator(spy, codec=codec).export(_records())
    assert isinstance(result, Err)
    assert closed == [True]


def test_orchestrator_is_single_use(spy, codec):
    orchestrator = ExportOrchestrator(spy, codec=codec)
    orchestrator.export([])
    with pytest.raises(RuntimeError):
        orchestrator.export([])


@pytest.mark.parametrize("strategy", STRATEGIES)
def test_unconvertible_timestamp_fails_export(spy, codec, strategy):
    early = datetime(1, 1, 1, tzinfo=timezone(timedelta(hours=5)))
    orchestrator = ExportOrchestrator(spy, codec=codec, strategy=strategy)

    result = orchestrator.export([RawRecord(key=1, range_start=early, range_end=0, payload=b"")])

    assert isinstance(result, Err)
    assert result.error.kind is ExportErrorKind.MAPPING
    assert result.error.cause.kind is MapErrorKind.TIMESTAMP_RANGE
    assert orchestrator.state is ExportState.FAILED


def test_unexpected_exception_leaves_terminal_state(spy, make_record):
    class ExplodingCodec:
        name = "exploding"

        def decompress(self, payload):
            raise RuntimeError("codec bug")

    orchestrator = ExportOrchestrator(spy, codec=ExplodingCodec())
    with pytest.raises(RuntimeError, match="codec bug"):
        orchestrator.export([make_record(1)])

    assert orchestrator.state is ExportState.FAILED
    assert orchestrator.state.is_terminal
    assert spy.writers[0].finished
