"""Cache of goods and counters in Redis."""

from __future__ import annotations

import json
from typing import Any

from .models import Good

TOTAL_COUNT_KEY = "goods:total_count"
REMOVED_COUNT_KEY = "goods:removed_count"
COUNT_TTL_SECONDS = 60
GOOD_TTL_SECONDS = 60


class CacheMissError(LookupError):
    """Raised when a cached counter is absent."""


def good_key(good_id: int, project_id: int) -> str:
    return f"good:{project_id}:{good_id}"


class RedisRepository:
    """Caches goods and counters through a redis client."""

    def __init__(self, client: Any) -> None:
        self._client = client

    def set_good(self, good: Good) -> None:
        data = json.dumps(good.to_dict())
        self._client.set(good_key(good.id, good.project_id), data, ex=GOOD_TTL_SECONDS)

    def get_good(self, good_id: int, project_id: int) -> Good | None:
        data = self._client.get(good_key(good_id, project_id))
        if data is None:
            return None
        return Good.from_dict(json.loads(data))

    def invalidate_good(self, good_id: int, project_id: int) -> None:
        self._client.delete(good_key(good_id, project_id))

    def _get_count(self, key: str, label: str) -> int:
        value = self._client.get(key)
        if value is None:
            raise CacheMissError(f"{label} not found in cache")
        return int(value)

    def get_total_count(self) -> int:
        return self._get_count(TOTAL_COUNT_KEY, "total count")

    def set_total_count(self, count: int) -> None:
        self._client.set(TOTAL_COUNT_KEY, count, ex=COUNT_TTL_SECONDS)

    def get_removed_count(self) -> int:
        return self._get_count(REMOVED_COUNT_KEY, "removed count")

    def set_removed_count(self, count: int) -> None:
        self._client.set(REMOVED_COUNT_KEY, count, ex=COUNT_TTL_SECONDS)

    def invalidate_counts(self) -> None:
        """Drop both cached counters in one round trip."""
        pipe = self._client.pipeline()
        pipe.delete(TOTAL_COUNT_KEY)
        pipe.delete(REMOVED_COUNT_KEY)
        pipe.execute()