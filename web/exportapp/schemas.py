"""
Request schema for the Parquet export endpoint.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, List

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from werkzeug.datastructures import MultiDict


class DataExportRequest(BaseModel):
    """
    Query parameters:
      parameterIndices  comma-separated and/or repeated integers (required, non-empty)
      startTime         ISO-8601 datetime (required)
      endTime           ISO-8601 datetime (required, not before startTime)
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    parameter_indices: List[int] = Field(
        alias="parameterIndices",
        min_length=1,
        description="Parameter indices to export.",
    )
    start_time: datetime = Field(alias="startTime")
    end_time: datetime = Field(alias="endTime")

    @field_validator("parameter_indices", mode="before")
    @classmethod
    def _split_indices(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = [value]
        if isinstance(value, (list, tuple)):
            parts: List[Any] = []
            for item in value:
                if isinstance(item, str):
                    parts.extend(p.strip() for p in item.split(",") if p.strip())
                else:
                    parts.append(item)
            return parts
        return value

    @field_validator("start_time", "end_time")
    @classmethod
    def _to_canonical_zone(cls, value: datetime) -> datetime:
        # Stored timestamps are naive UTC.
        if value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value

    @model_validator(mode="after")
    def _check_range(self) -> "DataExportRequest":
        if self.start_time > self.end_time:
            raise ValueError("Invalid date range: startTime cannot be after endTime.")
        return self

    @classmethod
    def from_query(cls, args: MultiDict) -> "DataExportRequest":
        return cls.model_validate(
            {
                "parameterIndices": args.getlist("parameterIndices"),
                "startTime": args.get("startTime"),
                "endTime": args.get("endTime"),
            }
        )


def describe_validation_error(exc: ValidationError) -> str:
    """Flatten pydantic errors into one human-readable line."""
    messages = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "__root__")
        messages.append(f"{loc}: {err['msg']}" if loc else err["msg"])
    return "; ".join(messages)
