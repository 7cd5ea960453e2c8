"""Request pipeline: decode, run the handler chain, encode, reply."""

from __future__ import annotations

import inspect
import logging
from typing import Any, Awaitable, Mapping, Protocol, cast

from .chain import resolve_chain, run_chain
from .codecs import CodecSpec, decode_payload, encode_payload
from .config import Settings
from .fallback import resolve_failure, resolve_signal
from .handler import Handler, HandlerConfig, iter_chain_names
from .http import CT_JSON, Request, Response, get_header, normalize_request
from .results import Failure, HTTPSignal, Ok

_LOGGER = logging.getLogger("herd.pipeline")
_ACCESS_LOGGER = logging.getLogger("herd.access")


class Transport(Protocol):
    """What the pipeline needs from the underlying HTTP server."""

    method: str
    path: str
    version: str
    peer: str | None
    headers: Mapping[str, str]
    bindings: Mapping[str, Any]
    query: Mapping[str, Any]
    has_body: bool

    async def read_body(self) -> bytes: ...

    async def reply(
        self, status_code: int, headers: Mapping[str, str], body: bytes
    ) -> None: ...


class Pipeline:
    """Serve one :class:`Handler` over any :class:`Transport`.

    The pipeline holds no per-request state and may serve concurrent
    requests.
    """

    def __init__(
        self,
        handler: Handler,
        options: Any = None,
        *,
        settings: Settings | None = None,
    ) -> None:
        self.handler = handler
        self.options = options
        self.settings = settings or Settings()
        missing = iter_chain_names(handler.methods_spec) - handler.functions
        if missing:
            _LOGGER.debug(
                "%r leaves %s unimplemented; those methods answer 501",
                handler,
                ", ".join(sorted(missing)),
            )

    async def handle(self, transport: Transport) -> Response:
        """Process one request and write exactly one response."""

        request = normalize_request(
            transport.method,
            transport.headers,
            transport.bindings,
            transport.query,
            path=transport.path,
            version=transport.version,
            peer=transport.peer,
        )
        codecs = self.handler.codecs
        try:
            config, state = await self._init(request)
            codecs = self._codecs(config)
            methods_spec = (
                config.methods_spec
                if config.methods_spec is not None
                else self.handler.methods_spec
            )
            raw = await transport.read_body() if transport.has_body else b""
            content_type = get_header(request, "content-type", CT_JSON)
            request = request.with_body(decode_payload(raw, content_type, codecs))
            names = resolve_chain(request, methods_spec)
            outcome = await run_chain(self.handler, request, names, state)
            if isinstance(outcome, Ok):
                response = self._encode(request, outcome.response, codecs)
            elif outcome.status_code is not None:
                response = await self._on_signal(
                    request, outcome.status_code, outcome.error, codecs
                )
            else:
                response = await self._on_failure(
                    request, Failure("error", outcome.error), codecs
                )
        except HTTPSignal as signal:
            response = await self._on_signal(
                request, signal.status_code, signal.response, codecs
            )
        except Exception as exc:
            response = await self._on_failure(
                request, Failure.from_exception(exc), codecs
            )
        await self._reply(transport, request, response)
        return response

    async def _init(self, request: Request) -> tuple[HandlerConfig, Any]:
        init = self.handler.init
        if init is None:
            return HandlerConfig(), None
        result = init(request, self.options)
        if inspect.isawaitable(result):
            result = await cast(Awaitable[Any], result)
        if not isinstance(result, tuple) or len(result) != 2:
            raise TypeError(
                f"{type(self.handler).__name__}.init must return (config, state)"
            )
        config, state = result
        return HandlerConfig.coerce(config), state

    def _codecs(self, config: HandlerConfig) -> CodecSpec:
        if config.decode_spec is None and config.encode_spec is None:
            return self.handler.codecs
        return CodecSpec.build(
            config.decode_spec
            if config.decode_spec is not None
            else self.handler.codecs.decoders,
            config.encode_spec
            if config.encode_spec is not None
            else self.handler.codecs.encoders,
        )

    def _encode(
        self, request: Request, response: Response, codecs: CodecSpec
    ) -> Response:
        return encode_payload(
            response,
            get_header(request, "accept", CT_JSON),
            codecs,
            merge_headers=self.settings.merge_response_headers,
        )

    async def _on_signal(
        self,
        request: Request,
        status_code: int,
        response: Response,
        codecs: CodecSpec,
    ) -> Response:
        resolved = await resolve_signal(self.handler, request, status_code, response)
        return await self._encode_resolved(request, resolved, codecs)

    async def _on_failure(
        self, request: Request, failure: Failure, codecs: CodecSpec
    ) -> Response:
        resolved = await resolve_failure(self.handler, request, failure)
        return await self._encode_resolved(request, resolved, codecs)

    async def _encode_resolved(
        self, request: Request, resolved: Response, codecs: CodecSpec
    ) -> Response:
        try:
            return self._encode(request, resolved, codecs)
        except HTTPSignal as signal:
            _LOGGER.error(
                "Could not encode %d error response: %s",
                resolved.status_code,
                signal.body,
            )
            retry = await resolve_signal(
                self.handler, request, signal.status_code, signal.response
            )
        try:
            return self._encode(request, retry, codecs)
        except HTTPSignal as last:
            return encode_payload(last.response, CT_JSON, CodecSpec.default())

    async def _reply(
        self, transport: Transport, request: Request, response: Response
    ) -> None:
        await transport.reply(response.status_code, response.headers, response.body)
        log_access(request, response.status_code)


def log_access(request: Request, status_code: int) -> None:
    """Emit one access-log line for *request*."""

    fields = {
        "remote_addr": request.peer or "-",
        "host": get_header(request, "host", "-"),
        "method": request.method,
        "path": request.path,
        "version": request.version,
        "status": status_code,
        "user_agent": get_header(request, "user-agent", "-"),
    }
    _ACCESS_LOGGER.info(
        '%s %s - "%s %s %s" %d %s',
        fields["remote_addr"],
        fields["host"],
        fields["method"],
        fields["path"],
        fields["version"],
        fields["status"],
        fields["user_agent"],
        extra={"access": fields},
    )


__all__ = ["Pipeline", "Transport", "log_access"]
