"""Subscriber that copies good events from the message bus into the event log."""

from __future__ import annotations

import json
import logging
from typing import Any

from .clickhouse_repository import ClickhouseRepository
from .models import Good

log = logging.getLogger(__name__)

SUBJECT = "good.*"


class NatsSubscriber:
    """Listens on ``good.*`` and logs each event.

    ``conn`` is any object offering ``subscribe(subject, callback)``, where the
    callback receives the message subject and its raw data.
    """

    def __init__(self, conn: Any, clickhouse_repo: ClickhouseRepository) -> None:
        self._conn = conn
        self._clickhouse = clickhouse_repo

    def subscribe(self) -> None:
        self._conn.subscribe(SUBJECT, self.handle_message)
        log.info("successfully subscribed to NATS topics: %s", SUBJECT)

    def handle_message(self, subject: str, data: bytes | str) -> bool:
        """Log one event; return whether it reached the event log."""
        log.info("received NATS message: subject=%s", subject)
        try:
            payload = json.loads(data)
            good = Good() if payload is None else Good.from_dict(payload)
        except ValueError as exc:
            log.warning("error unmarshalling NATS message: %s", exc)
            return False

        try:
            self._clickhouse.log_good_event(good)
        except Exception as exc:
            log.warning("error logging NATS message: %s", exc)
            return False

        log.info(
            "successfully logged event to ClickHouse: good_id=%d, project_id=%d",
            good.id,
            good.project_id,
        )
        return True