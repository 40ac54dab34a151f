"""
Explicit success/failure values returned at every component boundary.

Components never raise for expected failures (corrupt payloads, encoder
rejections, source errors); they return `Ok(value)` or `Err(error)` and the
caller branches with `isinstance`. Exceptions stay reserved for programming
errors.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def is_ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err(Generic[E]):
    error: E

    @property
    def is_ok(self) -> bool:
        return False


Result = Union[Ok[T], Err[E]]
