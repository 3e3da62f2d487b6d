"""Goods storage in a relational database through a DB-API connection."""

from __future__ import annotations

import dataclasses
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any

from .models import Good, NotFoundError

_CREATE = """
    INSERT INTO goods (project_id, name, description, priority)
    VALUES (%s, %s, %s, (
        SELECT COALESCE(MAX(priority), 0) + 1
        FROM goods
        WHERE project_id = %s AND NOT removed
    ))
    RETURNING id, priority, created_at"""

_UPDATE = """
    UPDATE goods
    SET name = %s, description = %s
    WHERE id = %s AND project_id = %s
    RETURNING name, description, priority, created_at"""

_SHIFT_PROJECT = """
    UPDATE goods
    SET priority = priority + 1
    WHERE project_id = %s
    AND priority >= %s
    AND id != %s
    AND NOT removed"""

_SET_PRIORITY = """
    UPDATE goods
    SET priority = %s
    WHERE id = %s AND project_id = %s"""

_SHIFT_OTHERS = """
    UPDATE goods
    SET priority = priority + 1
    WHERE id != %s
    AND project_id != %s
    AND priority >= %s
    AND NOT removed"""

_SELECT_SHIFTED = """
    SELECT id, project_id, name, description, priority, removed
    FROM goods
    WHERE priority >= %s
    AND NOT removed
    ORDER BY priority"""

_LIST = """
    SELECT id, project_id, name, description, priority, removed, created_at
    FROM goods
    WHERE removed = false
    LIMIT %s OFFSET %s"""

_GET = """
    SELECT id, project_id, name, description, priority, removed, created_at
    FROM goods
    WHERE id = %s AND project_id = %s AND removed = false"""

_REMOVE = """
    UPDATE goods
    SET removed = true
    WHERE id = %s AND project_id = %s AND removed = false
    RETURNING name, description, priority"""

_COUNT_ACTIVE = "SELECT COUNT(*) FROM goods WHERE removed = false"
_COUNT_REMOVED = "SELECT COUNT(*) FROM goods WHERE removed = true"

_EXISTS = """
    SELECT EXISTS (
        SELECT 1
        FROM goods
        WHERE id = %s
        AND project_id = %s
        AND NOT removed
    )"""

_PLACEHOLDERS = {"format": "%s", "pyformat": "%s", "qmark": "?"}


def _as_datetime(value: Any) -> datetime:
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if not isinstance(value, datetime):
        raise ValueError(f"cannot read {value!r} as a timestamp")
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def _good_from_row(row: Sequence[Any]) -> Good:
    good = Good(
        id=row[0],
        project_id=row[1],
        name=row[2],
        description=row[3],
        priority=row[4],
        removed=bool(row[5]),
    )
    if len(row) > 6:
        good.created_at = _as_datetime(row[6])
    return good


class PostgresRepository:
    """Reads and writes the goods table; every call runs in its own transaction."""

    def __init__(self, connection: Any, paramstyle: str = "format") -> None:
        if paramstyle not in _PLACEHOLDERS:
            raise ValueError(f"unsupported paramstyle: {paramstyle}")
        self._connection = connection
        self._placeholder = _PLACEHOLDERS[paramstyle]

    @contextmanager
    def _transaction(self) -> Iterator[Any]:
        cursor = self._connection.cursor()
        try:
            yield cursor
        except BaseException:
            self._connection.rollback()
            raise
        else:
            self._connection.commit()
        finally:
            cursor.close()

    def _run(self, cursor: Any, query: str, params: Sequence[Any] = ()) -> list[Sequence[Any]]:
        cursor.execute(query.replace("%s", self._placeholder), tuple(params))
        if cursor.description is None:
            return []
        return list(cursor.fetchall())

    def _one(self, cursor: Any, query: str, params: Sequence[Any] = ()) -> Sequence[Any]:
        rows = self._run(cursor, query, params)
        if not rows:
            raise LookupError("no rows in result set")
        return rows[0]

    def create_good(self, good: Good) -> Good:
        """Insert a good at the end of its project's priorities and return the stored copy."""
        with self._transaction() as cursor:
            row = self._one(
                cursor,
                _CREATE,
                (good.project_id, good.name, good.description, good.project_id),
            )
        return dataclasses.replace(good, id=row[0], priority=row[1], created_at=_as_datetime(row[2]))

    def update_good(self, good: Good) -> Good:
        """Change a good's name and description and return the stored copy."""
        with self._transaction() as cursor:
            row = self._one(
                cursor, _UPDATE, (good.name, good.description, good.id, good.project_id)
            )
        return dataclasses.replace(
            good, name=row[0], description=row[1], priority=row[2], created_at=_as_datetime(row[3])
        )

    def reprioritize_goods(self, good_id: int, project_id: int, new_priority: int) -> list[Good]:
        """Move a good to a new priority, shifting the others, and return every shifted good."""
        if not self.check_good_exists(good_id, project_id):
            raise NotFoundError()
        with self._transaction() as cursor:
            self._run(cursor, _SHIFT_PROJECT, (project_id, new_priority, good_id))
            self._run(cursor, _SET_PRIORITY, (new_priority, good_id, project_id))
            self._run(cursor, _SHIFT_OTHERS, (good_id, project_id, new_priority))
            rows = self._run(cursor, _SELECT_SHIFTED, (new_priority,))
        return [_good_from_row(row) for row in rows]

    def list_goods(self, limit: int, offset: int) -> list[Good]:
        if limit == 0:
            limit = 10
        offset = max(offset, 0)
        with self._transaction() as cursor:
            rows = self._run(cursor, _LIST, (limit, offset))
        return [_good_from_row(row) for row in rows]

    def get_good(self, good_id: int, project_id: int) -> Good | None:
        with self._transaction() as cursor:
            rows = self._run(cursor, _GET, (good_id, project_id))
        return _good_from_row(rows[0]) if rows else None

    def mark_as_removed(self, good: Good) -> Good:
        """Flag a good as removed and return it with its stored name, description and priority."""
        if not self.check_good_exists(good.id, good.project_id):
            raise LookupError("good not found")
        with self._transaction() as cursor:
            row = self._one(cursor, _REMOVE, (good.id, good.project_id))
        return dataclasses.replace(good, name=row[0], description=row[1], priority=row[2])

    def get_total_count(self) -> int:
        with self._transaction() as cursor:
            return int(self._one(cursor, _COUNT_ACTIVE)[0])

    def get_removed_count(self) -> int:
        with self._transaction() as cursor:
            return int(self._one(cursor, _COUNT_REMOVED)[0])

    def check_good_exists(self, good_id: int, project_id: int) -> bool:
        with self._transaction() as cursor:
            return bool(self._one(cursor, _EXISTS, (good_id, project_id))[0])