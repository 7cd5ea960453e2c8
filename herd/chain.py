"""Ordered execution of the handler functions bound to a method."""

from __future__ import annotations

import inspect
import logging
from typing import Any, Awaitable, Mapping, Sequence, cast

from .handler import Handler
from .http import (
    HTTP_204_NO_CONTENT,
    HTTP_405_METHOD_NOT_ALLOWED,
    HTTP_501_NOT_IMPLEMENTED,
    METHODS,
    Request,
)
from .results import Continue, Fail, HTTPSignal, Ok

_LOGGER = logging.getLogger("herd.chain")

METHOD_NOT_ALLOWED = "Method not allowed"
NOT_IMPLEMENTED = "Not implemented"


def resolve_chain(
    request: Request, methods_spec: Mapping[str, Sequence[str]]
) -> tuple[str, ...]:
    """Return the function names bound to ``request.method``."""

    if request.method not in METHODS:
        _LOGGER.debug("unknown request method %r", request.method)
    names = methods_spec.get(request.method)
    if not names:
        raise HTTPSignal(HTTP_405_METHOD_NOT_ALLOWED, METHOD_NOT_ALLOWED)
    return tuple(names)


async def run_chain(
    handler: Handler,
    request: Request,
    names: Sequence[str],
    state: Any = None,
) -> Ok | Fail:
    """Call *names* in order, threading *state*, until one is terminal.

    Raises :class:`HTTPSignal` with 204 when every function continues and
    with 501 when a name is not implemented by *handler*.
    """

    for name in names:
        func = handler.lookup(name)
        if func is None:
            _LOGGER.debug("%r does not implement %r", handler, name)
            raise HTTPSignal(HTTP_501_NOT_IMPLEMENTED, NOT_IMPLEMENTED)
        result = func(request, state)
        if inspect.isawaitable(result):
            result = await cast(Awaitable[Any], result)
        if isinstance(result, Continue):
            state = result.state
            continue
        if isinstance(result, (Ok, Fail)):
            return result
        raise TypeError(
            f"handler function {name!r} returned {type(result).__name__}; "
            "expected Continue, Ok or Fail"
        )
    raise HTTPSignal(HTTP_204_NO_CONTENT, "")


__all__ = ["METHOD_NOT_ALLOWED", "NOT_IMPLEMENTED", "resolve_chain", "run_chain"]
