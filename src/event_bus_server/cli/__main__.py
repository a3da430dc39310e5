"""CLI entry point.

Usage:
    python -m event_bus_server.cli run myapp.events:bus
    python -m event_bus_server.cli routes myapp.events:bus
    event-bus run myapp.events:bus --port 8000
"""

import sys

from loguru import logger

import event_bus_server
from event_bus_server.cli.app import app


def _configure_cli_logging() -> None:
    """Configure loguru for CLI (compact format: level + message, no timestamps)."""
    logger.remove()  # Remove default handler
    logger.add(
        sys.stderr,
        format="<level>{level: <8}</level> | <level>{message}</level>",
        level="INFO",
        colorize=True,
    )
    logger.enable(event_bus_server.__name__)


def main() -> None:
    """CLI entry point with logging configuration."""
    _configure_cli_logging()
    app()


if __name__ == "__main__":
    main()
