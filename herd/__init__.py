"""herd: a request pipeline between an HTTP transport and handler chains."""

__version__ = "0.1.0"

from .asgi import HerdASGI
from .codecs import CodecSpec
from .config import Settings, load_settings
from .fallback import default_failure_handler, default_signal_handler
from .handler import DEFAULT_METHODS_SPEC, Handler, HandlerConfig, load_handler
from .http import Request, Response, get_header, normalize_request
from .pipeline import Pipeline, Transport
from .results import Continue, Fail, Failure, HTTPSignal, Ok, fail, ok
from .testclient import TestClient, TestResponse

__all__ = [
    "__version__",
    "CodecSpec",
    "Continue",
    "DEFAULT_METHODS_SPEC",
    "Fail",
    "Failure",
    "HTTPSignal",
    "Handler",
    "HandlerConfig",
    "HerdASGI",
    "Ok",
    "Pipeline",
    "Request",
    "Response",
    "Settings",
    "TestClient",
    "TestResponse",
    "Transport",
    "default_failure_handler",
    "default_signal_handler",
    "fail",
    "get_header",
    "load_handler",
    "load_settings",
    "normalize_request",
    "ok",
]
