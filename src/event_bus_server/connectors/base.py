"""Connector base classes.

A connector is a pluggable source of events. It declares event
configurations on the bus it was created for, binds handlers to them and
later triggers dispatch by event id. The connector only keeps a weak
reference to its bus: it calls back into dispatch but never controls the
bus lifecycle.
"""

import weakref
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from loguru import logger

from event_bus_server.event_bus.core import EventConfiguration, EventHandler
from event_bus_server.event_bus.http import HttpContext, RouteResult
from event_bus_server.exceptions import ConnectorError
from event_bus_server.utils.id_generator import generate_short_id

if TYPE_CHECKING:
    from event_bus_server.event_bus.bus import EventBus

HandlerLike = EventHandler | Callable[..., Any]


class BaseConnector[T_Options](ABC):
    """Base class for all connectors.

    Creating a connector registers it with the bus. ``start`` is called once
    by ``EventBus.start``; ``stop`` is awaited by ``EventBus.unregister``.
    """

    def __init__(self, bus: "EventBus", connector_id: str | None = None) -> None:
        self.id = connector_id or f"{type(self).__name__}/{generate_short_id()}"
        self.event_configurations: dict[str, EventConfiguration[T_Options]] = {}
        self._bus_ref = weakref.ref(bus)
        bus.register(self)

    @property
    def bus(self) -> "EventBus":
        bus = self._bus_ref()
        if bus is None:
            raise ConnectorError(f"Event bus of connector {self.id} is no longer available")
        return bus

    @abstractmethod
    def on(self, options: Any, handler: HandlerLike, event_id: str | None = None) -> EventConfiguration:
        """Declare an event and bind ``handler`` to it.

        Returns:
            The stored event configuration.
        """

    def _store_configuration(self, event_id: str, options: T_Options) -> EventConfiguration:
        # Configuration storage overwrites by id; the bus registry appends
        configuration = EventConfiguration(id=event_id, source=self, options=options)
        self.event_configurations[configuration.id] = configuration
        return configuration

    def start(self) -> None:
        logger.info(f"Connector {self.id} started")

    async def stop(self) -> None:
        logger.info(f"Connector {self.id} stopped")

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id!r}, events={len(self.event_configurations)})"


class BaseHttpConnector[T_Options](BaseConnector[T_Options]):
    """Connector triggered by inbound HTTP requests.

    It registers itself as an HTTP delegate for its paths and decides per
    request whether it claims the request.
    """

    @abstractmethod
    async def handle(self, context: HttpContext) -> RouteResult:
        """Handle a request routed to one of this connector's paths.

        Returns:
            ``RouteResult.HANDLED`` to stop the multiplexer chain,
            ``RouteResult.DEFERRED`` to let the next delegate try.
        """
