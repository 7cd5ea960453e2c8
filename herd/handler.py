"""Handler capability interface."""

from __future__ import annotations

import inspect
from dataclasses import dataclass
from importlib import import_module
from types import MappingProxyType
from typing import Any, Callable, ClassVar, Iterable, Mapping, Sequence

from .codecs import CodecSpec

DEFAULT_METHODS_SPEC: Mapping[str, tuple[str, ...]] = MappingProxyType(
    {
        "GET": ("read",),
        "POST": ("create",),
        "PUT": ("update",),
        "PATCH": ("patch",),
        "DELETE": ("delete",),
    }
)

_SLOTS = ("init", "handle_signal", "handle_failure")
_CONFIG_ATTRS = ("methods_spec", "decode_spec", "encode_spec")
_RESERVED = frozenset(
    _SLOTS + _CONFIG_ATTRS + ("lookup", "functions", "codecs")
)


def _freeze_methods(spec: Mapping[str, Sequence[str]]) -> Mapping[str, tuple[str, ...]]:
    return MappingProxyType(
        {method.upper(): tuple(names) for method, names in spec.items()}
    )


@dataclass(frozen=True)
class HandlerConfig:
    """Per-request overrides returned by :meth:`Handler.init`."""

    methods_spec: Mapping[str, tuple[str, ...]] | None = None
    decode_spec: Any = None
    encode_spec: Any = None

    @classmethod
    def coerce(cls, value: Any) -> "HandlerConfig":
        """Accept a ``HandlerConfig``, a mapping or ``(key, value)`` pairs.

        Unknown keys are ignored.
        """
        if value is None:
            return cls()
        if isinstance(value, HandlerConfig):
            return value
        if not isinstance(value, Mapping):
            value = dict(value)
        methods = value.get("methods_spec")
        return cls(
            methods_spec=_freeze_methods(methods) if methods is not None else None,
            decode_spec=value.get("decode_spec"),
            encode_spec=value.get("encode_spec"),
        )


class Handler:
    """Base class for handler modules.

    Every public method defined on a subclass can be named in a methods
    spec and is called as ``func(request, state)``. Optional slots:

    ``init(request, options) -> (config, state)``
        Per-request configuration and initial chain state.
    ``handle_signal(request, status_code, response) -> Response``
        Error handler for status-carrying signals.
    ``handle_failure(request, failure) -> Response``
        Error handler for opaque failures.

    ``methods_spec``, ``decode_spec`` and ``encode_spec`` class attributes set
    handler-wide defaults that ``init`` may override per request.
    """

    methods_spec: ClassVar[Mapping[str, Sequence[str]]] = DEFAULT_METHODS_SPEC
    decode_spec: ClassVar[Any] = None
    encode_spec: ClassVar[Any] = None

    init: ClassVar[Callable[..., Any] | None] = None
    handle_signal: ClassVar[Callable[..., Any] | None] = None
    handle_failure: ClassVar[Callable[..., Any] | None] = None

    functions: ClassVar[frozenset[str]] = frozenset()
    codecs: ClassVar[CodecSpec] = CodecSpec.default()

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        names: set[str] = set()
        for klass in cls.__mro__:
            if klass is Handler or klass is object:
                continue
            for name, attr in vars(klass).items():
                if name.startswith("_") or name in _RESERVED:
                    continue
                if inspect.isfunction(attr):
                    names.add(name)
        for slot in _SLOTS:
            value = getattr(cls, slot, None)
            if value is not None and not callable(value):
                raise TypeError(f"{cls.__name__}.{slot} must be callable")
        cls.functions = frozenset(names)
        cls.methods_spec = _freeze_methods(cls.methods_spec)
        cls.codecs = CodecSpec.build(cls.decode_spec, cls.encode_spec)

    def lookup(self, name: str) -> Callable[..., Any] | None:
        """Return the bound handler function *name* or ``None``."""
        if name not in self.functions:
            return None
        return getattr(self, name)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} functions={sorted(self.functions)}>"


def _parse_handler_path(path: str) -> tuple[str, str]:
    module_name, _, attr = path.partition(":")
    if not module_name or not attr:
        raise RuntimeError(
            f"Handler path {path!r} must look like 'package.module:HandlerClass'"
        )
    return module_name, attr


def load_handler(path: str) -> Handler:
    """Import ``module:attr`` and return a :class:`Handler` instance."""

    module_name, attr_name = _parse_handler_path(path)
    module = import_module(module_name)
    if not hasattr(module, attr_name):
        raise RuntimeError(f"Module '{module_name}' does not define '{attr_name}'")
    target = getattr(module, attr_name)
    if inspect.isclass(target) and issubclass(target, Handler):
        return target()
    if isinstance(target, Handler):
        return target
    raise RuntimeError(f"'{path}' is not a herd Handler")


def iter_chain_names(spec: Mapping[str, Iterable[str]]) -> set[str]:
    """Return every function name referenced by *spec*."""
    return {name for names in spec.values() for name in names}


__all__ = [
    "DEFAULT_METHODS_SPEC",
    "Handler",
    "HandlerConfig",
    "iter_chain_names",
    "load_handler",
]
