"""Entry point for running the DiagramForge export service."""

from __future__ import annotations

import argparse
import logging
from typing import Final

import uvicorn

from .config import ServiceSettings
from .logging_config import configure_logging

LOGGER = logging.getLogger(__name__)

DEFAULT_HOST: Final[str] = "127.0.0.1"
DEFAULT_PORT: Final[int] = 8765


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run the DiagramForge export service.")
    parser.add_argument(
        "--host",
        default=DEFAULT_HOST,
        help="Host interface to bind (default: 127.0.0.1).",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=DEFAULT_PORT,
        help=f"TCP port to bind (default: {DEFAULT_PORT}).",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable Uvicorn autoreload. Development use only.",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """Run the FastAPI service using Uvicorn."""

    parser = _build_parser()
    args = parser.parse_args(argv)

    if not (1 <= args.port <= 65535):
        parser.error("Port must be between 1 and 65535.")

    settings = ServiceSettings.from_environment()
    configure_logging(settings.log_level)

    LOGGER.info("Starting export service on %s:%s", args.host, args.port)
    uvicorn.run(
        "diagramforge.services.app:create_app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        factory=True,
        log_config=None,
    )


if __name__ == "__main__":
    main()
