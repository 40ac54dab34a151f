"""Tests for the payload codecs: byte-level behavior only, no pipeline."""

import gzip

import pytest

from trace_export.errors import CodecError, CodecErrorKind
from trace_export.intake.decompress import GzipPayloadCodec, ZstdPayloadCodec, get_codec
from trace_export.result import Err, Ok


@pytest.mark.parametrize("payload", [None, b"", bytearray()])
def test_empty_payload_decodes_to_empty_string(payload):
    assert GzipPayloadCodec().decompress(payload) == Ok("")
    assert ZstdPayloadCodec().decompress(payload) == Ok("")


@pytest.mark.parametrize("text", ["", '{"v":1}', "température ✓ 温度", "x" * 100_000])
def test_gzip_round_trip(text):
    codec = GzipPayloadCodec()
    assert codec.decompress(codec.compress(text)) == Ok(text)


@pytest.mark.parametrize("text", ["", '{"value": 250, "status": "WARN"}', "ünïcödé"])
def test_zstd_round_trip(text):
    codec = ZstdPayloadCodec()
    assert codec.decompress(codec.compress(text)) == Ok(text)


def test_decodes_payload_compressed_by_stdlib_gzip():
    payload = gzip.compress(b'{"value": 100, "status": "OK"}')
    assert GzipPayloadCodec().decompress(payload) == Ok('{"value": 100, "status": "OK"}')


def test_non_gzip_bytes_are_invalid_format():
    result = GzipPayloadCodec().decompress(bytes([0x00, 0x01]))
    assert isinstance(result, Err)
    assert isinstance(result.error, CodecError)
    assert result.error.kind is CodecErrorKind.INVALID_FORMAT
    assert result.error.retryable is False


def test_payload_cut_inside_magic_is_truncated():
    result = GzipPayloadCodec().decompress(b"\x1f")
    assert isinstance(result, Err)
    assert result.error.kind is CodecErrorKind.TRUNCATED


def test_stream_cut_before_end_is_truncated():
    payload = gzip.compress(("trace " * 500).encode())
    result = GzipPayloadCodec().decompress(payload[: len(payload) // 2])
    assert isinstance(result, Err)
    assert result.error.kind is CodecErrorKind.TRUNCATED


def test_corrupt_deflate_body_is_invalid_format():
    header = gzip.compress(b"abc")[:10]
    result = GzipPayloadCodec().decompress(header + b"\xff" * 20)
    assert isinstance(result, Err)
    assert result.error.kind is CodecErrorKind.INVALID_FORMAT


def test_non_utf8_content_is_encoding_error():
    result = GzipPayloadCodec().decompress(gzip.compress(b"\xff\xfe\xfa"))
    assert isinstance(result, Err)
    assert result.error.kind is CodecErrorKind.ENCODING


def test_zstd_rejects_gzip_payload():
    result = ZstdPayloadCodec().decompress(gzip.compress(b"{}"))
    assert isinstance(result, Err)
    assert result.error.kind is CodecErrorKind.INVALID_FORMAT


def test_get_codec_resolves_names():
    assert get_codec().name == "gzip"
    assert get_codec("zstd").name == "zstd"
    with pytest.raises(ValueError):
        get_codec("lz4")
