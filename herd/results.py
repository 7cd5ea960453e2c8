"""Handler chain results and protocol signals."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, TypeVar, Union

from .http import Response

S = TypeVar("S")


@dataclass(frozen=True)
class Continue(Generic[S]):
    """Hand *state* to the next function in the chain."""

    state: S


@dataclass(frozen=True)
class Ok:
    """Finish the chain successfully with *response*."""

    response: Response


@dataclass(frozen=True)
class Fail:
    """Finish the chain with *error*.

    A :class:`Response` error with an integer status is treated as a protocol
    signal; any other value is an opaque failure.
    """

    error: Any

    @property
    def status_code(self) -> int | None:
        if isinstance(self.error, Response) and isinstance(
            self.error.status_code, int
        ):
            return self.error.status_code
        return None


HandlerResult = Union[Continue[Any], Ok, Fail]


def ok(body: Any = None, status_code: int = 200) -> Ok:
    """Shortcut for ``Ok(Response(status_code, body=body))``."""
    return Ok(Response(status_code=status_code, body=body))


def fail(status_code: int, body: Any = None) -> Fail:
    """Shortcut for a failure carrying a status and response."""
    return Fail(Response(status_code=status_code, body=body))


class HTTPSignal(Exception):
    """Short-circuit carrying an HTTP status and response body."""

    def __init__(
        self,
        status_code: int,
        body: Any = None,
        *,
        response: Response | None = None,
    ) -> None:
        super().__init__(body)
        self.status_code = status_code
        self.body = body
        self._response = response

    @classmethod
    def from_response(cls, response: Response) -> "HTTPSignal":
        return cls(response.status_code, response.body, response=response)

    @property
    def response(self) -> Response:
        if self._response is not None:
            return self._response
        return Response(status_code=self.status_code, body=self.body)


@dataclass(frozen=True)
class Failure:
    """Opaque failure as a ``(category, detail)`` pair."""

    category: str
    detail: Any

    @classmethod
    def from_exception(cls, exc: BaseException) -> "Failure":
        return cls("exception", exc)

    @property
    def exception(self) -> BaseException | None:
        return self.detail if isinstance(self.detail, BaseException) else None


__all__ = [
    "Continue",
    "Fail",
    "Failure",
    "HTTPSignal",
    "HandlerResult",
    "Ok",
    "fail",
    "ok",
]
