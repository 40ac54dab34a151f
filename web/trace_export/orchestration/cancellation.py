"""
Cooperative cancellation for in-flight exports.

The request layer keeps the token and calls `cancel()` (e.g. on client
disconnect); the orchestrator checks it before every record pull and, once
set, abandons the export and releases the writer.
"""

from __future__ import annotations

import threading


class CancelToken:
    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()
