"""Event log storage in ClickHouse."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from .models import Good

_INSERT_EVENT = (
    "INSERT INTO goods_log "
    "(Id, ProjectId, Name, Description, Priority, Removed, EventTime) VALUES"
)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ClickhouseRepository:
    """Writes good events through a connection offering ``execute(query, rows)``."""

    def __init__(self, conn: Any, clock: Callable[[], datetime] = _utc_now) -> None:
        self._conn = conn
        self._clock = clock

    def log_good_event(self, good: Good) -> None:
        row = (
            good.id,
            good.project_id,
            good.name,
            good.description,
            good.priority,
            good.removed,
            self._clock(),
        )
        self._conn.execute(_INSERT_EVENT, [row])