"""
Database engine creation.

The export only reads; connection pooling and transactions are SQLAlchemy's.
"""

from __future__ import annotations

import logging

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

_IN_MEMORY_SQLITE = ("sqlite://", "sqlite:///:memory:")


def create_db_engine(url: str, *, echo: bool = False) -> Engine:
    """
    Create the engine for the trace store.

    SQLite connections are opened with `check_same_thread=False` because
    exports run on worker threads; an in-memory SQLite database is pinned to
    a single shared connection so every thread sees the same data.
    """
    kwargs = {}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if url in _IN_MEMORY_SQLITE:
            kwargs["poolclass"] = StaticPool

    engine = create_engine(url, echo=echo, pool_pre_ping=True, **kwargs)
    logger.info("Database engine created: %s", engine.url.render_as_string(hide_password=True))
    return engine
