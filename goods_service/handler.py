"""HTTP handlers for the goods API."""

from __future__ import annotations

import json
import re
from http import HTTPStatus
from typing import Any

from werkzeug.wrappers import Request, Response

from .models import Good, NotFoundError

DEFAULT_LIMIT = 10
MAX_LIMIT = 100

_INTEGER = re.compile(r"[+-]?[0-9]+")
_INT_MIN = -(2**63)
_INT_MAX = 2**63 - 1

_HTML_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


def _reject_constant(name: str) -> Any:
    raise ValueError(f"invalid JSON value {name}")


_DECODER = json.JSONDecoder(parse_constant=_reject_constant)


def _parse_int(text: str) -> int:
    """Parse a decimal integer strictly: optional sign, ASCII digits, 64-bit range."""
    if not _INTEGER.fullmatch(text):
        raise ValueError(f"invalid integer {text!r}")
    value = int(text)
    if not _INT_MIN <= value <= _INT_MAX:
        raise ValueError(f"integer out of range {text!r}")
    return value


def _positive_query_param(request: Request, label: str) -> int:
    raw = request.args.get("projectId", "")
    if raw == "":
        raise ValueError("projectId is required")
    try:
        value = _parse_int(raw)
    except ValueError:
        raise ValueError("invalid projectId parameter") from None
    if value <= 0:
        raise ValueError(f"{label} must be positive numbers")
    return value


def get_id(request: Request) -> int:
    """Read the good id from the query; it is carried in the ``projectId`` parameter."""
    return _positive_query_param(request, "id")


def get_project_id(request: Request) -> int:
    """Read the project id from the ``projectId`` query parameter."""
    return _positive_query_param(request, "projectId")


def get_pagination_params(request: Request) -> tuple[int, int]:
    """Return ``(limit, offset)``; bad values fall back to defaults, limit is capped."""
    limit, offset = DEFAULT_LIMIT, 0

    limit_text = request.args.get("limit", "")
    if limit_text:
        try:
            parsed = _parse_int(limit_text)
        except ValueError:
            parsed = 0
        if parsed > 0:
            limit = parsed

    offset_text = request.args.get("offset", "")
    if offset_text:
        try:
            parsed = _parse_int(offset_text)
        except ValueError:
            parsed = -1
        if parsed >= 0:
            offset = parsed

    return min(limit, MAX_LIMIT), offset


def _dumps(payload: Any) -> str:
    text = json.dumps(payload, ensure_ascii=False, separators=(",", ":"))
    for char, escaped in _HTML_ESCAPES.items():
        text = text.replace(char, escaped)
    return text


def json_response(status: int, payload: Any) -> Response:
    """Encode a payload as compact JSON with the given status."""
    return Response(_dumps(payload), status=status, content_type="application/json")


def error_response(status: int, code: int, message: str) -> Response:
    """Build the API's error body: code, message and empty details."""
    return json_response(status, {"code": code, "message": message, "details": {}})


def _decode_body(request: Request) -> Any:
    """Decode the first JSON value of the request body."""
    text = request.get_data().decode("utf-8", errors="replace").lstrip(" \t\r\n")
    value, _ = _DECODER.raw_decode(text)
    return value


def _decode_good(request: Request) -> Good:
    payload = _decode_body(request)
    return Good() if payload is None else Good.from_dict(payload)


def _decode_new_priority(request: Request) -> int:
    payload = _decode_body(request)
    if payload is None:
        return 0
    if not isinstance(payload, dict):
        raise ValueError("request body must be an object")
    new_priority = 0
    for key, raw in payload.items():
        if key.lower() != "newpriority" or raw is None:
            continue
        if isinstance(raw, bool) or not isinstance(raw, int):
            raise ValueError(f"cannot decode {raw!r} into newPriority")
        new_priority = raw
    return new_priority


def _bad_request(code: int, message: str) -> Response:
    return error_response(HTTPStatus.BAD_REQUEST, code, message)


def _internal_error(code: int = 5) -> Response:
    return error_response(HTTPStatus.INTERNAL_SERVER_ERROR, code, "Internal server error")


class Handler:
    """Turns HTTP requests into calls on a goods service."""

    def __init__(self, good_service: Any) -> None:
        self._service = good_service

    def _ids(self, request: Request) -> tuple[int, int]:
        try:
            good_id = get_id(request)
        except ValueError:
            raise _RequestRejected(_bad_request(4, "Invalid good ID")) from None
        try:
            project_id = get_project_id(request)
        except ValueError:
            raise _RequestRejected(_bad_request(4, "Invalid project ID")) from None
        return good_id, project_id

    def create_good(self, request: Request) -> Response:
        try:
            project_id = get_project_id(request)
        except ValueError:
            return _bad_request(4, "Invalid project ID")
        try:
            good = _decode_good(request)
        except ValueError:
            return _bad_request(4, "Invalid request payload")
        good.project_id = project_id
        try:
            created = self._service.create_good(good)
        except Exception:
            return _internal_error()
        return json_response(HTTPStatus.CREATED, created.to_dict())

    def update_good(self, request: Request) -> Response:
        try:
            good_id, project_id = self._ids(request)
        except _RequestRejected as rejected:
            return rejected.response
        try:
            good = _decode_good(request)
        except ValueError:
            return _bad_request(4, "Invalid request payload")
        good.id = good_id
        good.project_id = project_id
        try:
            updated = self._service.update_good(good)
        except NotFoundError:
            return _bad_request(3, "errors.common.notFound")
        except Exception:
            return _internal_error()
        return json_response(HTTPStatus.OK, updated.to_dict())

    def get_good(self, request: Request) -> Response:
        try:
            good_id, project_id = self._ids(request)
        except _RequestRejected as rejected:
            return rejected.response
        try:
            good = self._service.get_good(good_id, project_id)
        except Exception:
            return _bad_request(3, "errors.common.notFound")
        return json_response(HTTPStatus.OK, good.to_dict())

    def delete_good(self, request: Request) -> Response:
        try:
            good_id, project_id = self._ids(request)
        except _RequestRejected as rejected:
            return rejected.response
        try:
            self._service.delete_good(good_id, project_id)
        except NotFoundError:
            return _bad_request(3, "errors.common.notFound")
        except Exception:
            return _internal_error(4)
        return json_response(
            HTTPStatus.OK, {"id": good_id, "campaignId": project_id, "removed": True}
        )

    def reprioritize_good(self, request: Request) -> Response:
        try:
            good_id, project_id = self._ids(request)
        except _RequestRejected as rejected:
            return rejected.response
        try:
            new_priority = _decode_new_priority(request)
        except ValueError:
            return _bad_request(4, "Invalid request payload")
        if new_priority < 1:
            return _bad_request(4, "Priority must be greater than 0")
        try:
            result = self._service.reprioritize_good(good_id, project_id, new_priority)
        except NotFoundError:
            return _bad_request(3, "errors.common.notFound")
        except Exception:
            return _internal_error()
        return json_response(HTTPStatus.OK, result.to_dict())

    def list_goods(self, request: Request) -> Response:
        limit, offset = get_pagination_params(request)
        try:
            goods = self._service.list_goods(limit, offset)
            total = self._service.get_total_count()
            removed = self._service.get_removed_count()
        except Exception:
            return _internal_error()
        payload = {
            "meta": {"total": total, "removed": removed, "limit": limit, "offset": offset},
            "goods": [good.to_dict() for good in goods] or None,
        }
        return json_response(HTTPStatus.OK, payload)


class _RequestRejected(Exception):
    def __init__(self, response: Response) -> None:
        super().__init__(response.status)
        self.response = response