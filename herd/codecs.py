"""Content-type keyed payload decoding and encoding."""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Iterable, Mapping, Tuple

import msgpack

from .http import (
    CT_JSON,
    CT_MSGPACK,
    HTTP_204_NO_CONTENT,
    HTTP_400_BAD_REQUEST,
    HTTP_500_INTERNAL_SERVER_ERROR,
    Response,
)
from .results import HTTPSignal

Decoder = Callable[[bytes], Any]
Encoder = Callable[[Any], bytes]
CodecTable = Tuple[Tuple[str, Callable[..., Any]], ...]

_LABELS = {CT_JSON: "JSON", CT_MSGPACK: "MsgPack"}

UNSUPPORTED_CONTENT_TYPE = "Not supported 'content-type'"


def json_decode(data: bytes) -> Any:
    return json.loads(data)


def json_encode(data: Any) -> bytes:
    return json.dumps(data, separators=(",", ":"), allow_nan=False).encode()


def msgpack_decode(data: bytes) -> Any:
    return msgpack.unpackb(data, raw=False, strict_map_key=False)


def msgpack_encode(data: Any) -> bytes:
    return msgpack.packb(data, use_bin_type=True)


def _table(pairs: Iterable[tuple[str, Callable[..., Any]]] | Mapping[str, Any]) -> CodecTable:
    items = pairs.items() if isinstance(pairs, Mapping) else pairs
    table: list[tuple[str, Callable[..., Any]]] = []
    for content_type, func in items:
        if not callable(func):
            raise TypeError(f"codec for {content_type!r} is not callable")
        table.append((content_type, func))
    return tuple(table)


def _lookup(table: CodecTable, content_type: str) -> Callable[..., Any] | None:
    for candidate, func in table:
        if candidate == content_type:
            return func
    return None


def _label(content_type: str) -> str:
    return _LABELS.get(content_type, content_type)


DEFAULT_DECODERS: CodecTable = ((CT_JSON, json_decode), (CT_MSGPACK, msgpack_decode))
DEFAULT_ENCODERS: CodecTable = ((CT_JSON, json_encode), (CT_MSGPACK, msgpack_encode))


@dataclass(frozen=True)
class CodecSpec:
    """Ordered ``(content_type, function)`` pairs for each direction."""

    decoders: CodecTable = field(default=DEFAULT_DECODERS)
    encoders: CodecTable = field(default=DEFAULT_ENCODERS)

    @classmethod
    def default(cls) -> "CodecSpec":
        return _DEFAULT_SPEC

    @classmethod
    def build(
        cls,
        decode_spec: Iterable[tuple[str, Decoder]] | Mapping[str, Decoder] | None = None,
        encode_spec: Iterable[tuple[str, Encoder]] | Mapping[str, Encoder] | None = None,
    ) -> "CodecSpec":
        """Return a spec, keeping the built-in table for any side left out."""
        spec = _DEFAULT_SPEC
        if decode_spec is not None:
            spec = replace(spec, decoders=_table(decode_spec))
        if encode_spec is not None:
            spec = replace(spec, encoders=_table(encode_spec))
        return spec

    def decoder(self, content_type: str) -> Decoder | None:
        return _lookup(self.decoders, content_type)

    def encoder(self, content_type: str) -> tuple[str, Encoder]:
        """Return ``(negotiated_type, encoder)``, falling back to JSON."""
        func = _lookup(self.encoders, content_type)
        if func is not None:
            return content_type, func
        func = _lookup(self.encoders, CT_JSON)
        return CT_JSON, func or json_encode


_DEFAULT_SPEC = CodecSpec()


def decode_payload(raw: bytes | None, content_type: str, spec: CodecSpec) -> Any:
    """Decode *raw* according to *content_type*.

    An empty body decodes to ``{}`` without consulting *spec*.
    """

    if not raw:
        return {}
    decoder = spec.decoder(content_type)
    if decoder is None:
        raise HTTPSignal(HTTP_400_BAD_REQUEST, UNSUPPORTED_CONTENT_TYPE)
    try:
        return decoder(raw)
    except Exception as exc:
        raise HTTPSignal(
            HTTP_400_BAD_REQUEST, f"Can't decode {_label(content_type)} payload"
        ) from exc


def encode_payload(
    response: Response,
    accept: str,
    spec: CodecSpec,
    *,
    merge_headers: bool = False,
) -> Response:
    """Return a copy of *response* with its body encoded for *accept*.

    The headers are replaced by a single ``content-type`` entry unless
    *merge_headers* is set.
    """

    content_type, encoder = spec.encoder(accept)
    try:
        if response.status_code == HTTP_204_NO_CONTENT:
            body = b""
        else:
            body = encoder(response.body)
        if isinstance(body, str):
            body = body.encode()
        if not isinstance(body, (bytes, bytearray)):
            raise TypeError(f"encoder returned {type(body).__name__}")
        headers = (
            {k.lower(): v for k, v in dict(response.headers or {}).items()}
            if merge_headers
            else {}
        )
    except Exception as exc:
        raise HTTPSignal(
            HTTP_500_INTERNAL_SERVER_ERROR,
            f"Can't encode {_label(content_type)} payload",
        ) from exc
    headers["content-type"] = content_type
    return Response(status_code=response.status_code, headers=headers, body=body)


__all__ = [
    "CodecSpec",
    "DEFAULT_DECODERS",
    "DEFAULT_ENCODERS",
    "UNSUPPORTED_CONTENT_TYPE",
    "decode_payload",
    "encode_payload",
    "json_decode",
    "json_encode",
    "msgpack_decode",
    "msgpack_encode",
]
