"""Command line entry point for serving a handler."""

from __future__ import annotations

import argparse
import logging
import os
from typing import Any

from .asgi import HerdASGI
from .config import Settings, configure_logging, load_settings
from .handler import load_handler

LOGGER = logging.getLogger("herd.cli")


def _resolve_host_port(args: argparse.Namespace) -> tuple[str, int]:
    host = (
        args.host
        or os.getenv("HERD_HOST")
        or os.getenv("HOST")
        or "127.0.0.1"
    )
    raw_port: Any = args.port
    if raw_port is None:
        raw_port = os.getenv("HERD_PORT") or os.getenv("PORT") or "8000"
    try:
        port = int(raw_port)
    except (TypeError, ValueError) as exc:  # noqa: TRY003
        raise RuntimeError("Port must be an integer value") from exc
    return host, port


def build_app(path: str, settings: Settings | None = None) -> HerdASGI:
    """Load the handler at *path* and wrap it as an ASGI application."""
    return HerdASGI(load_handler(path), settings=settings or load_settings())


def _cmd_run(args: argparse.Namespace) -> None:
    import uvicorn

    settings = load_settings()
    configure_logging(settings)
    host, port = _resolve_host_port(args)
    app = build_app(args.app_path, settings)
    LOGGER.info("Serving %s on http://%s:%d", args.app_path, host, port)
    uvicorn.run(
        app,
        host=host,
        port=port,
        log_level=settings.log_level.lower(),
        access_log=False,
    )


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(prog="herd")
    sub = parser.add_subparsers(dest="cmd")

    run_parser = sub.add_parser("run")
    run_parser.add_argument(
        "--app",
        dest="app_path",
        default=os.getenv("HERD_APP"),
        help="Python path to the handler class, e.g. 'widgets:Widgets'",
    )
    run_parser.add_argument(
        "--host",
        help="Host interface to bind (default: HERD_HOST/HOST or 127.0.0.1)",
    )
    run_parser.add_argument(
        "--port",
        type=int,
        help="Port to bind (default: HERD_PORT/PORT or 8000)",
    )
    run_parser.set_defaults(func=_cmd_run)

    args = parser.parse_args(argv)
    if not hasattr(args, "func"):
        parser.print_help()
        return
    if args.cmd == "run" and not args.app_path:
        parser.error("--app is required (or set HERD_APP)")
    args.func(args)


if __name__ == "__main__":
    main()
