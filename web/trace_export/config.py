"""
Configuration schema for the Parquet export pipeline.

Keep this lean and opinionated: only the knobs the pipeline actually reads
(buffering strategy, sink variant, row-group sizing, codecs, schema source,
and the worker pool size).
"""

from __future__ import annotations

from typing import Any, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field


class ExportConfig(BaseModel):
    """
    Centralized, validated configuration shared by every export in a process.
    """

    model_config = ConfigDict(frozen=True)  # shared by worker threads

    # === Buffering ===
    strategy: Literal["streaming", "buffered"] = Field(
        default="streaming",
        description="streaming: map and write each record as it is pulled. "
        "buffered: pull and map every record first, then write them all.",
    )
    sink: Literal["memory", "tempfile"] = Field(
        default="memory",
        description="Where the Parquet writer encodes into before bytes are returned.",
    )
    temp_dir: Optional[str] = Field(
        default=None,
        description="Directory for the tempfile sink; None uses the system default.",
    )

    # === Columnar encoding ===
    row_group_size: int = Field(
        default=10_000,
        ge=1,
        description="Rows buffered by the writer before a row group is emitted.",
    )
    parquet_compression: Literal["snappy", "gzip", "zstd", "none"] = Field(
        default="snappy",
        description="Column chunk compression inside the Parquet file.",
    )

    # === Payloads ===
    payload_codec: Literal["gzip", "zstd"] = Field(
        default="gzip",
        description="Compression scheme of the stored per-record payloads.",
    )

    # === Schema ===
    schema_path: Optional[str] = Field(
        default=None,
        description="Schema declaration file; None loads the packaged declaration.",
    )

    # === Offload ===
    worker_threads: int = Field(
        default=4,
        ge=1,
        description="Threads in the export worker pool.",
    )

    @classmethod
    def from_mapping(cls, cfg: Mapping[str, Any]) -> "ExportConfig":
        """Build from a Flask-style upper-case config mapping, ignoring unset keys."""
        keys = {
            "EXPORT_STRATEGY": "strategy",
            "EXPORT_SINK": "sink",
            "EXPORT_TEMP_DIR": "temp_dir",
            "EXPORT_ROW_GROUP_SIZE": "row_group_size",
            "PARQUET_COMPRESSION": "parquet_compression",
            "PAYLOAD_CODEC": "payload_codec",
            "EXPORT_SCHEMA_PATH": "schema_path",
            "EXPORT_WORKERS": "worker_threads",
        }
        values = {field: cfg[key] for key, field in keys.items() if cfg.get(key) not in (None, "")}
        return cls(**values)
