"""Protocol-agnostic request and response values."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Mapping

METHODS = frozenset({"GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"})

CT_JSON = "application/json"
CT_MSGPACK = "application/x-msgpack"

HTTP_200_OK = 200
HTTP_204_NO_CONTENT = 204
HTTP_400_BAD_REQUEST = 400
HTTP_405_METHOD_NOT_ALLOWED = 405
HTTP_500_INTERNAL_SERVER_ERROR = 500
HTTP_501_NOT_IMPLEMENTED = 501


@dataclass(frozen=True)
class Request:
    """Normalized inbound request.

    ``body`` stays ``None`` until the payload has been decoded; use
    :meth:`with_body` to attach it.
    """

    method: str
    headers: dict[str, str] = field(default_factory=dict)
    bindings: dict[str, Any] = field(default_factory=dict)
    query: dict[str, Any] = field(default_factory=dict)
    body: Any = None
    path: str = "/"
    version: str = "HTTP/1.1"
    peer: str | None = None

    def with_body(self, body: Any) -> "Request":
        """Return a copy carrying the decoded *body*."""
        return replace(self, body=body)


@dataclass
class Response:
    """HTTP response produced by handler code or by error handling."""

    status_code: int = HTTP_200_OK
    headers: dict[str, str] = field(default_factory=dict)
    body: Any = None

    def set_header(self, key: str, value: str) -> None:
        """Set or replace a header."""
        self.headers[key.lower()] = value


def normalize_request(
    method: str,
    headers: Mapping[str, str] | None = None,
    bindings: Mapping[str, Any] | None = None,
    query: Mapping[str, Any] | None = None,
    *,
    path: str = "/",
    version: str = "HTTP/1.1",
    peer: str | None = None,
) -> Request:
    """Build a :class:`Request` from transport primitives."""

    return Request(
        method=method.upper(),
        headers={k.lower(): v for k, v in (headers or {}).items()},
        bindings=dict(bindings or {}),
        query=dict(query or {}),
        path=path or "/",
        version=version,
        peer=peer,
    )


def get_header(request: Request, name: str, default: Any = None) -> Any:
    """Return header *name* from *request* or *default* when absent."""
    return request.headers.get(name.lower(), default)


__all__ = [
    "CT_JSON",
    "CT_MSGPACK",
    "HTTP_200_OK",
    "HTTP_204_NO_CONTENT",
    "HTTP_400_BAD_REQUEST",
    "HTTP_405_METHOD_NOT_ALLOWED",
    "HTTP_500_INTERNAL_SERVER_ERROR",
    "HTTP_501_NOT_IMPLEMENTED",
    "METHODS",
    "Request",
    "Response",
    "get_header",
    "normalize_request",
]
