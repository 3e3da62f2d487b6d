"""WSGI application routing requests to the goods handlers."""

from __future__ import annotations

import posixpath
from collections.abc import Callable, Iterable
from http import HTTPStatus
from typing import Any

from werkzeug.wrappers import Request, Response

from .handler import Handler

API_PREFIX = "/api/v1"


def _clean_path(path: str) -> str:
    """Canonicalise a URL path, keeping a trailing slash."""
    if not path:
        return "/"
    if not path.startswith("/"):
        path = "/" + path
    cleaned = posixpath.normpath(path)
    if cleaned.startswith("//"):
        cleaned = "/" + cleaned.lstrip("/")
    if path.endswith("/") and cleaned != "/":
        cleaned += "/"
    return cleaned


def _empty(status: int, headers: dict[str, str] | None = None) -> Response:
    response = Response(b"", status=status, headers=headers)
    del response.headers["Content-Type"]
    return response


class Router:
    """Maps method and path to a handler, answering 404, 405 or a redirect otherwise."""

    def __init__(self, handler: Handler) -> None:
        self._routes: dict[str, dict[str, Callable[[Request], Response]]] = {
            f"{API_PREFIX}/goods/list": {"GET": handler.list_goods},
            f"{API_PREFIX}/good/create": {"POST": handler.create_good},
            f"{API_PREFIX}/goods": {"GET": handler.get_good},
            f"{API_PREFIX}/good/update": {"PATCH": handler.update_good},
            f"{API_PREFIX}/good/remove": {"DELETE": handler.delete_good},
            f"{API_PREFIX}/good/reprioritiize": {"PATCH": handler.reprioritize_good},
        }

    def dispatch(self, request: Request) -> Response:
        path = request.path
        if request.method != "CONNECT":
            cleaned = _clean_path(path)
            if cleaned != path:
                query = request.query_string.decode("latin-1")
                location = f"{cleaned}?{query}" if query else cleaned
                return _empty(HTTPStatus.MOVED_PERMANENTLY, {"Location": location})

        methods = self._routes.get(path)
        if methods is None:
            response = Response("404 page not found\n", status=HTTPStatus.NOT_FOUND)
            response.headers["Content-Type"] = "text/plain; charset=utf-8"
            response.headers["X-Content-Type-Options"] = "nosniff"
            return response

        endpoint = methods.get(request.method)
        if endpoint is None:
            return _empty(HTTPStatus.METHOD_NOT_ALLOWED)

        response = endpoint(request)
        response.headers["Content-Type"] = "application/json"
        return response

    def __call__(self, environ: dict[str, Any], start_response: Callable) -> Iterable[bytes]:
        response = self.dispatch(Request(environ))
        return response(environ, start_response)