"""Domain records and their JSON shapes."""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)

_FRACTION = re.compile(r"\.(\d+)")


class NotFoundError(LookupError):
    """Raised when a requested good does not exist."""

    def __init__(self, message: str = "not found") -> None:
        super().__init__(message)


def _format_time(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    text = (
        f"{moment.year:04d}-{moment.month:02d}-{moment.day:02d}"
        f"T{moment.hour:02d}:{moment.minute:02d}:{moment.second:02d}"
    )
    if moment.microsecond:
        text += "." + f"{moment.microsecond:06d}".rstrip("0")
    offset = moment.utcoffset()
    if not offset:
        return text + "Z"
    minutes = int(offset.total_seconds()) // 60
    sign = "+" if minutes >= 0 else "-"
    hours, minutes = divmod(abs(minutes), 60)
    return f"{text}{sign}{hours:02d}:{minutes:02d}"


def _parse_time(text: str) -> datetime:
    value = text.strip()
    if value[-1:] in ("Z", "z"):
        value = value[:-1] + "+00:00"
    value = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), value, count=1)
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _decode(name: str, kind: type, raw: Any) -> Any:
    if kind is int:
        if isinstance(raw, bool) or not isinstance(raw, int):
            raise ValueError(f"cannot decode {raw!r} into field {name} of type int")
        return raw
    if kind is bool:
        if not isinstance(raw, bool):
            raise ValueError(f"cannot decode {raw!r} into field {name} of type bool")
        return raw
    if kind is str:
        if not isinstance(raw, str):
            raise ValueError(f"cannot decode {raw!r} into field {name} of type string")
        return raw
    if not isinstance(raw, str):
        raise ValueError(f"cannot decode {raw!r} into field {name} of type time")
    return _parse_time(raw)


_GOOD_FIELDS = {
    "id": ("id", int),
    "projectid": ("project_id", int),
    "name": ("name", str),
    "description": ("description", str),
    "priority": ("priority", int),
    "removed": ("removed", bool),
    "createdat": ("created_at", datetime),
}


@dataclass
class Good:
    """A good belonging to a project."""

    id: int = 0
    project_id: int = 0
    name: str = ""
    description: str = ""
    priority: int = 0
    removed: bool = False
    created_at: datetime = ZERO_TIME

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "projectId": self.project_id,
            "name": self.name,
            "description": self.description,
            "priority": self.priority,
            "removed": self.removed,
            "createdAt": _format_time(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Good":
        """Decode a JSON object; keys match case-insensitively, unknown keys are ignored."""
        if not isinstance(data, Mapping):
            raise ValueError(f"cannot decode {type(data).__name__} into a good")
        values = {}
        for key, raw in data.items():
            spec = _GOOD_FIELDS.get(key.lower()) if isinstance(key, str) else None
            if spec is None or raw is None:
                continue
            name, kind = spec
            values[name] = _decode(name, kind, raw)
        return cls(**values)


@dataclass
class Project:
    """A project that owns goods."""

    id: int = 0
    name: str = ""
    created_at: datetime = ZERO_TIME

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "createdAt": _format_time(self.created_at)}


@dataclass
class ClickhouseEvent:
    """A snapshot of a good at the moment something happened to it."""

    id: int = 0
    project_id: int = 0
    name: str = ""
    description: str = ""
    priority: int = 0
    removed: bool = False
    event_time: datetime = ZERO_TIME

    @classmethod
    def from_good(cls, good: Good) -> "ClickhouseEvent":
        return cls(
            id=good.id,
            project_id=good.project_id,
            name=good.name,
            description=good.description,
            priority=good.priority,
            removed=good.removed,
            event_time=datetime.now(timezone.utc),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "Id": self.id,
            "ProjectId": self.project_id,
            "Name": self.name,
            "Description": self.description,
            "Priority": self.priority,
            "Removed": self.removed,
            "EventTime": _format_time(self.event_time),
        }


@dataclass
class PriorityItem:
    """A good's new priority; the project id is kept out of the JSON."""

    id: int = 0
    priority: int = 0
    project_id: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "priority": self.priority}


@dataclass
class PriorityResponse:
    """The priorities changed by a reprioritisation."""

    priorities: list[PriorityItem] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        items = [item.to_dict() for item in self.priorities]
        return {"priorities": items or None}