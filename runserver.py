from __future__ import annotations

import argparse
import os

import uvicorn


def _uvicorn_level(name: str) -> str:
    level = name.strip().lower()
    return "warning" if level == "warn" else level or "info"


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the CSV validator API server.")
    parser.add_argument(
        "--host",
        default=os.getenv("HOST", "0.0.0.0"),
        help="Host to bind (default: %(default)s or env HOST)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=int(os.getenv("PORT", "8080")),
        help="Port to bind (default: %(default)s or env PORT)",
    )
    parser.add_argument(
        "--app",
        default="csv_validator.main:create_app",
        help="ASGI app factory (default: %(default)s)",
    )
    parser.add_argument(
        "--reload",
        action=argparse.BooleanOptionalAction,
        default=False,
        help="Enable auto-reload (default: False)",
    )
    parser.add_argument(
        "--log-level",
        default=_uvicorn_level(os.getenv("LOG_LEVEL", "info")),
        choices=("critical", "error", "warning", "info", "debug", "trace"),
        help="Uvicorn log level (default: %(default)s or env LOG_LEVEL)",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    uvicorn.run(
        app=args.app,
        host=args.host,
        port=args.port,
        reload=args.reload,
        factory=True,
        log_level=args.log_level,
    )


if __name__ == "__main__":
    main()
