"""Main CLI application."""

import asyncio
import importlib

import typer
from loguru import logger

from event_bus_server.constants import WEBHOOK_FALLBACK_PATH
from event_bus_server.event_bus import EventBus, order_http_paths
from event_bus_server.logging import setup_logging, setup_sqlalchemy_logging
from event_bus_server.settings import get_settings

app = typer.Typer(
    name="event-bus",
    help="Event bus server - run a bus and inspect its routes",
    no_args_is_help=True,
)


TARGET_ARGUMENT = typer.Argument(
    ...,
    help="Import string of an EventBus or a factory returning one, e.g. 'myapp.events:bus'",
    metavar="<module:attribute>",
)  # fmt: skip
HOST_OPTION = typer.Option(
    None,
    help="Host to bind the listener to (overrides EVENT_BUS_HOST)",
    metavar="<host>",
)  # fmt: skip
PORT_OPTION = typer.Option(
    None,
    help="Port to bind the listener to (overrides EVENT_BUS_PORT / PORT)",
    metavar="<port>",
)  # fmt: skip
LOG_LEVEL_OPTION = typer.Option(
    None,
    help="Log level (overrides EVENT_BUS_LOG_LEVEL)",
    metavar="<level>",
    case_sensitive=False,
)  # fmt: skip


def load_bus(target: str) -> EventBus:
    """Resolve ``module:attribute`` to an EventBus.

    The attribute may be an ``EventBus`` or a zero-argument callable
    returning one.

    Raises:
        typer.BadParameter: If the target cannot be imported or is not a bus.
    """
    module_name, _, attribute = target.partition(":")
    if not module_name or not attribute:
        raise typer.BadParameter(f"Expected <module:attribute>, got: {target}")

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise typer.BadParameter(f"Cannot import module {module_name}: {e}") from e

    try:
        bus = getattr(module, attribute)
    except AttributeError as e:
        raise typer.BadParameter(f"Module {module_name} has no attribute {attribute}") from e

    if not isinstance(bus, EventBus) and callable(bus):
        bus = bus()
    if not isinstance(bus, EventBus):
        raise typer.BadParameter(f"{target} is not an EventBus: {type(bus).__name__}")
    return bus


@app.command()
def run(
    target: str = TARGET_ARGUMENT,
    host: str | None = HOST_OPTION,
    port: int | None = PORT_OPTION,
    log_level: str | None = LOG_LEVEL_OPTION,
) -> None:
    """Start the bus and serve its HTTP delegates."""
    settings = get_settings()
    if host is not None:
        settings.host = host
    if port is not None:
        settings.port = port
    if log_level is not None:
        settings.log_level = log_level.upper()

    setup_logging(settings.log_level)
    setup_sqlalchemy_logging()

    bus = load_bus(target)
    bus.start()
    logger.info(f"Starting event bus on {settings.host}:{settings.port}")

    try:
        asyncio.run(bus.listen(port=settings.port, host=settings.host))
    finally:
        bus.shutdown()


@app.command()
def routes(target: str = TARGET_ARGUMENT) -> None:
    """Print HTTP paths in the order they are installed."""
    bus = load_bus(target)
    paths = order_http_paths(bus.http_delegates)
    if not paths:
        typer.echo("No HTTP delegates registered")
        return

    for path in paths:
        delegates = ", ".join(d.id for d in bus.http_delegates[path].delegates) or "-"
        typer.echo(f"{path}  [{delegates}]")
    typer.echo(f"{WEBHOOK_FALLBACK_PATH}  [fallback: 501]")
