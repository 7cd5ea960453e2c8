"""Two-tier error handling.

Signals and failures first go to the handler's own ``handle_signal`` /
``handle_failure`` when it defines them. If the handler has none, or its
error handler raises, the built-in defaults below produce the response.
"""

from __future__ import annotations

import copy
import inspect
import logging
from typing import Any, Awaitable, Callable, cast

from .handler import Handler
from .http import HTTP_500_INTERNAL_SERVER_ERROR, Request, Response
from .results import Failure

_LOGGER = logging.getLogger("herd.fallback")

INTERNAL_SERVER_ERROR = "Internal server error"


def default_signal_handler(
    request: Request, status_code: int, response: Response
) -> Response:
    """Pass the signal's response through unchanged."""
    return response


def default_failure_handler(request: Request, failure: Failure) -> Response:
    """Log *failure* and answer with a generic 500."""

    exc = failure.exception
    if exc is not None:
        _LOGGER.error(
            "Unhandled %s while serving %s %s",
            type(exc).__name__,
            request.method,
            request.path,
            exc_info=(type(exc), exc, exc.__traceback__),
        )
    else:
        _LOGGER.error(
            "Handler failure (%s) while serving %s %s: %r",
            failure.category,
            request.method,
            request.path,
            failure.detail,
        )
    return Response(
        status_code=HTTP_500_INTERNAL_SERVER_ERROR, body=INTERNAL_SERVER_ERROR
    )


async def _call_custom(func: Callable[..., Any], *args: Any) -> Response:
    result = func(*args)
    if inspect.isawaitable(result):
        result = await cast(Awaitable[Any], result)
    if not isinstance(result, Response):
        raise TypeError(
            f"error handler returned {type(result).__name__}, expected Response"
        )
    return result


def _isolated(response: Response) -> Response:
    try:
        return copy.deepcopy(response)
    except Exception:
        _LOGGER.debug("response body cannot be copied; passing it as is")
        return response


async def resolve_signal(
    handler: Handler, request: Request, status_code: int, response: Response
) -> Response:
    """Turn a status-carrying signal into the response to send."""

    custom = handler.handle_signal
    if custom is not None:
        try:
            return await _call_custom(
                custom, request, status_code, _isolated(response)
            )
        except Exception:
            _LOGGER.error(
                "error handler: %r, status: %d", handler, status_code, exc_info=True
            )
    return default_signal_handler(request, status_code, response)


async def resolve_failure(
    handler: Handler, request: Request, failure: Failure
) -> Response:
    """Turn an opaque failure into the response to send."""

    custom = handler.handle_failure
    if custom is not None:
        try:
            return await _call_custom(custom, request, failure)
        except Exception:
            _LOGGER.error(
                "error handler: %r, failure: %r", handler, failure, exc_info=True
            )
    return default_failure_handler(request, failure)


__all__ = [
    "INTERNAL_SERVER_ERROR",
    "default_failure_handler",
    "default_signal_handler",
    "resolve_failure",
    "resolve_signal",
]
