"""
Per-record payload codecs.

Provides `GzipPayloadCodec` (the storage format of trace payloads) and
`ZstdPayloadCodec`, both exposing `decompress(payload) -> Result[str, CodecError]`
and the symmetric `compress(text) -> bytes`. `get_codec(name)` resolves the
configured one.

Decompression checks the magic bytes first so that arbitrary bytes are
reported as INVALID_FORMAT, a stream that stops early as TRUNCATED, and
undecodable text as ENCODING. None of these are worth retrying.
"""

from __future__ import annotations

import gzip
import zlib
from typing import Dict, Final, Optional

import zstandard  # type: ignore

from ..errors import CodecError, CodecErrorKind
from ..result import Err, Ok, Result

# Compression magic (as it appears at the start of the stream)
MAGIC_GZIP: Final[bytes] = bytes.fromhex("1f 8b")
MAGIC_ZSTD: Final[bytes] = bytes.fromhex("28 b5 2f fd")


def _check_magic(payload: bytes, magic: bytes, codec: str) -> Optional[CodecError]:
    if payload.startswith(magic):
        return None
    if len(payload) < len(magic) and magic.startswith(payload):
        return CodecError(CodecErrorKind.TRUNCATED, f"{codec} payload ends inside the header")
    return CodecError(CodecErrorKind.INVALID_FORMAT, f"payload does not start with the {codec} magic")


def _decode_utf8(raw: bytes) -> Result[str, CodecError]:
    try:
        return Ok(raw.decode("utf-8"))
    except UnicodeDecodeError as e:
        return Err(CodecError(CodecErrorKind.ENCODING, f"decompressed payload is not UTF-8: {e}", e))


class GzipPayloadCodec:
    name = "gzip"

    def __init__(self, level: int = 6) -> None:
        self._level = level

    def decompress(self, payload: Optional[bytes]) -> Result[str, CodecError]:
        if not payload:
            return Ok("")
        payload = bytes(payload)

        bad_magic = _check_magic(payload, MAGIC_GZIP, self.name)
        if bad_magic is not None:
            return Err(bad_magic)

        try:
            raw = gzip.decompress(payload)
        except EOFError as e:
            return Err(CodecError(CodecErrorKind.TRUNCATED, f"gzip stream ended early: {e}", e))
        except (gzip.BadGzipFile, zlib.error) as e:
            return Err(CodecError(CodecErrorKind.INVALID_FORMAT, f"corrupt gzip stream: {e}", e))

        return _decode_utf8(raw)

    def compress(self, text: str) -> bytes:
        return gzip.compress(text.encode("utf-8"), compresslevel=self._level)


class ZstdPayloadCodec:
    name = "zstd"

    def __init__(self, level: int = 3) -> None:
        self._level = level

    def decompress(self, payload: Optional[bytes]) -> Result[str, CodecError]:
        if not payload:
            return Ok("")
        payload = bytes(payload)

        bad_magic = _check_magic(payload, MAGIC_ZSTD, self.name)
        if bad_magic is not None:
            return Err(bad_magic)

        # A fresh decompressor per payload; zstandard contexts are not thread-safe.
        dobj = zstandard.ZstdDecompressor().decompressobj()
        try:
            raw = dobj.decompress(payload)
        except zstandard.ZstdError as e:
            return Err(CodecError(CodecErrorKind.INVALID_FORMAT, f"corrupt zstd stream: {e}", e))
        if not dobj.eof:
            return Err(CodecError(CodecErrorKind.TRUNCATED, "zstd frame ended early"))

        return _decode_utf8(raw)

    def compress(self, text: str) -> bytes:
        return zstandard.ZstdCompressor(level=self._level).compress(text.encode("utf-8"))


_CODECS: Dict[str, type] = {
    GzipPayloadCodec.name: GzipPayloadCodec,
    ZstdPayloadCodec.name: ZstdPayloadCodec,
}


def get_codec(name: str = "gzip"):
    """Return a codec instance for `name` ("gzip" or "zstd")."""
    try:
        return _CODECS[name]()
    except KeyError:
        raise ValueError(f"unknown payload codec: {name!r}") from None
