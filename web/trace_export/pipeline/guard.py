"""
Scoped acquisition of the columnar writer.

    with ResourceGuard(factory) as acquired:
        if isinstance(acquired, Err): ...
        writer = acquired.value
        ...

`__exit__` releases an acquired writer on every exit path: normal
completion, an `Err` returned mid-stream, cancellation, or an exception
escaping the block. Release failures are logged and kept in
`release_errors`; they never replace the block's own outcome and never
suppress an exception.
"""

from __future__ import annotations

import logging
from typing import Callable, Generic, List, Optional, TypeVar

from ..errors import ResourceError, ResourceErrorKind, WriteError
from ..ports import ColumnarWriterPort
from ..result import Ok, Result

W = TypeVar("W", bound=ColumnarWriterPort)


class ResourceGuard(Generic[W]):
    def __init__(
        self,
        acquire: Callable[[], Result[W, WriteError]],
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._acquire = acquire
        self._logger = logger or logging.getLogger(__name__)
        self._resource: Optional[W] = None
        self.release_errors: List[ResourceError] = []

    @property
    def acquired(self) -> bool:
        return self._resource is not None

    def __enter__(self) -> Result[W, WriteError]:
        acquired = self._acquire()
        if isinstance(acquired, Ok):
            self._resource = acquired.value
        return acquired

    def __exit__(self, exc_type, exc, tb) -> bool:
        resource, self._resource = self._resource, None
        if resource is None:
            return False

        try:
            errors = resource.release()
        except Exception as e:
            self._logger.exception("Writer release raised")
            errors = [ResourceError(ResourceErrorKind.RELEASE, f"writer release raised: {e}", e)]

        for err in errors:
            self._logger.error("Failed to release export resource: %s", err.message)
        self.release_errors.extend(errors)
        return False
