"""Business operations on goods: storage, caching and event publishing."""

from __future__ import annotations

import json
import logging
from typing import Any

from .clickhouse_repository import ClickhouseRepository
from .models import ClickhouseEvent, Good, NotFoundError, PriorityItem, PriorityResponse
from .postgres_repository import PostgresRepository
from .redis_repository import RedisRepository

log = logging.getLogger(__name__)


class GoodService:
    """Coordinates the goods store, its cache and the event bus.

    ``publisher`` is any object offering ``publish(subject, data)`` with
    ``data`` as bytes.
    """

    def __init__(
        self,
        postgres_repo: PostgresRepository,
        redis_repo: RedisRepository,
        clickhouse_repo: ClickhouseRepository,
        publisher: Any,
    ) -> None:
        self._postgres = postgres_repo
        self._redis = redis_repo
        self._clickhouse = clickhouse_repo
        self._publisher = publisher

    def create_good(self, good: Good) -> Good:
        """Store a new good, cache it, announce it and return the stored copy."""
        created = self._postgres.create_good(good)
        self._invalidate_counts()
        self._redis.set_good(created)
        self._publish_event("good.created", created)
        return created

    def delete_good(self, good_id: int, project_id: int) -> Good:
        """Mark a good as removed and return what was stored for it."""
        if not self._postgres.check_good_exists(good_id, project_id):
            raise NotFoundError()
        removed = self._postgres.mark_as_removed(Good(id=good_id, project_id=project_id))
        self._invalidate_counts()
        self._redis.invalidate_good(good_id, project_id)
        self._publish_event("good.deleted", removed)
        return removed

    def update_good(self, good: Good) -> Good:
        """Change a good's name and description and return the stored copy."""
        if not self._postgres.check_good_exists(good.id, good.project_id):
            raise NotFoundError()
        updated = self._postgres.update_good(good)
        self._redis.invalidate_good(updated.id, updated.project_id)
        self._publish_event("good.updated", updated)
        return updated

    def get_good(self, good_id: int, project_id: int) -> Good:
        """Return a good, from the cache when it is there."""
        if not self._postgres.check_good_exists(good_id, project_id):
            raise NotFoundError()
        cached = self._redis.get_good(good_id, project_id)
        if cached is not None:
            return cached
        good = self._postgres.get_good(good_id, project_id)
        if good is None:
            raise LookupError("good not found")
        self._redis.set_good(good)
        return good

    def list_goods(self, limit: int, offset: int) -> list[Good]:
        return self._postgres.list_goods(limit, offset)

    def reprioritize_good(self, good_id: int, project_id: int, new_priority: int) -> PriorityResponse:
        """Move a good to a new priority and report every good whose priority changed."""
        shifted = self._postgres.reprioritize_goods(good_id, project_id, new_priority)
        items = []
        for good in shifted:
            items.append(PriorityItem(id=good.id, priority=good.priority))
            try:
                self._redis.invalidate_good(good.id, project_id)
            except Exception as exc:
                log.warning("error invalidating Redis cache for good %d: %s", good.id, exc)
            try:
                self._publish_event("good.reprioritized", good)
            except Exception as exc:
                log.warning("error publishing reprioritize event: %s", exc)
        return PriorityResponse(priorities=items)

    def get_total_count(self) -> int:
        """Number of goods not removed, cached for a minute."""
        try:
            return self._redis.get_total_count()
        except Exception:
            pass
        count = self._postgres.get_total_count()
        try:
            self._redis.set_total_count(count)
        except Exception as exc:
            log.warning("Failed to cache total count: %s", exc)
        return count

    def get_removed_count(self) -> int:
        """Number of removed goods, cached for a minute."""
        try:
            return self._redis.get_removed_count()
        except Exception:
            pass
        count = self._postgres.get_removed_count()
        try:
            self._redis.set_removed_count(count)
        except Exception as exc:
            log.warning("Failed to cache removed count: %s", exc)
        return count

    def _invalidate_counts(self) -> None:
        try:
            self._redis.invalidate_counts()
        except Exception as exc:
            log.warning("Failed to invalidate counts cache: %s", exc)

    def _publish_event(self, subject: str, good: Good) -> None:
        event = ClickhouseEvent.from_good(good)
        try:
            payload = json.dumps(event.to_dict()).encode()
        except (TypeError, ValueError) as exc:
            raise RuntimeError(f"error marshaling event: {exc}") from exc
        try:
            self._publisher.publish(subject, payload)
        except Exception as exc:
            raise RuntimeError(f"error publishing to NATS: {exc}") from exc