"""Event Bus Implementation.

This module provides the ``EventBus`` that owns the connector table, the
handler registry and the HTTP delegate table, and dispatches events to the
handlers bound to them.

## Dispatch semantics

- Handlers of one event id run one after another, in registration order.
- A failing handler is logged and counts as not handled; the remaining
  handlers still run.
- ``handle_event`` returns True only when every handler succeeded, and False
  when no handler is registered for the id.

## Advanced Usage

```python
from event_bus_server.connectors import CustomEventConnector, HttpConnector
from event_bus_server.event_bus import EventBus

bus = EventBus()
emitter = CustomEventConnector(bus)
http = HttpConnector(bus)


async def cancel_order(event, bus):
    await emitter.dispatch("ORDER_CANCELED", await event.payload.body())
    event.payload.send_json({"status": "canceled"})


emitter.on({"event": "ORDER_CANCELED"}, notify_customer)
http.on({"method": "POST", "path": "/events/webhooks/orders/cancel"}, cancel_order)

bus.start()
await bus.listen()
```

"""

import asyncio
import concurrent.futures
from collections.abc import Callable, Coroutine
from functools import lru_cache
from typing import TYPE_CHECKING, Any

import uvicorn
from fastapi import FastAPI
from loguru import logger
from starlette.middleware import Middleware
from starlette.responses import PlainTextResponse, Response

from event_bus_server.constants import HTTP_METHODS, WEBHOOK_FALLBACK_PATH, WEBHOOK_NOT_REGISTERED_MESSAGE
from event_bus_server.exceptions import HandlerRegistrationError
from event_bus_server.persistence import MemoryStoreAdapter, PersistentStoreAdapter
from event_bus_server.settings import get_settings

from .core import EventConfiguration, EventHandler, FunctionHandler
from .http import CallNext, DelegateRouter, HttpContext, HttpMultiplexer, order_http_paths

if TYPE_CHECKING:
    from event_bus_server.connectors.base import BaseConnector, BaseHttpConnector


class EventBus:
    """In-process event bus with an optional HTTP surface.

    Every instance owns independent tables; nothing is shared between buses.

    Example:
        ```python
        bus = EventBus()
        emitter = CustomEventConnector(bus)
        emitter.on({"event": "ORDER_CANCELED"}, refund_order)
        bus.start()
        await emitter.dispatch("ORDER_CANCELED", {"orderNumber": "234"})
        ```
    """

    def __init__(self, server: FastAPI | None = None) -> None:
        """Initialize a new EventBus instance.

        Args:
            server: Application to install the HTTP routes on. When omitted a
                FastAPI application is created on first use.
        """
        self.connectors: dict[str, BaseConnector] = {}
        self.handlers: dict[str, list[EventHandler]] = {}
        self.http_delegates: dict[str, HttpMultiplexer] = {}
        self.middleware: list[Middleware] = []
        self.router = DelegateRouter()
        self._web_server = server
        self._persistent_store: PersistentStoreAdapter | None = None
        self._sync_executor: concurrent.futures.ThreadPoolExecutor | None = None
        self._routes_installed = False
        self._started_connectors: set[str] = set()
        logger.info("EventBus initializing")

    # Connectors

    def register(self, connector: "BaseConnector") -> "EventBus":
        """Add ``connector`` to the connector table, replacing any with the same id."""
        self.connectors[connector.id] = connector
        logger.debug(f"Registered connector {connector.id}")
        return self

    async def unregister(self, connector: "BaseConnector") -> None:
        """Stop ``connector`` and remove it from the connector table.

        Failures raised by ``connector.stop()`` propagate to the caller and
        leave the connector registered.
        """
        await connector.stop()
        self.connectors.pop(connector.id, None)
        logger.debug(f"Unregistered connector {connector.id}")

    def get_connector(self, connector_id: str) -> "BaseConnector | None":
        connector = self.connectors.get(connector_id)
        if connector is None:
            logger.error(f"Could not find connector [id={connector_id}]")
        return connector

    # HTTP delegates

    def register_http_delegate(self, path: str, delegate: "BaseHttpConnector") -> "EventBus":
        """Append ``delegate`` to the multiplexer of ``path``, creating it if needed."""
        multiplexer = self.http_delegates.get(path)
        if multiplexer is None:
            multiplexer = self.http_delegates[path] = HttpMultiplexer(path)
            if self._routes_installed:
                logger.warning(f"HTTP path {path} registered after routes were installed, call start() again to route it")
        multiplexer.add_delegate(delegate)
        logger.debug(f"Registered HTTP delegate {delegate.id} for {path}")
        return self

    def remove_http_delegate(self, path: str, delegate: "BaseHttpConnector") -> None:
        """Remove one delegate from ``path``, keeping the delegates of other connectors."""
        multiplexer = self.http_delegates.get(path)
        if multiplexer is not None and multiplexer.remove_delegate(delegate):
            logger.debug(f"Removed HTTP delegate {delegate.id} from {path}")

    def unregister_http_delegate(self, path: str) -> None:
        """Remove every delegate of ``path``. The multiplexer itself stays installed."""
        multiplexer = self.http_delegates.get(path)
        if multiplexer is not None:
            multiplexer.clear()
            logger.debug(f"Cleared HTTP delegates for {path}")

    def add_middleware(self, middleware_class: type, **options: Any) -> None:
        """Queue middleware for the application the bus creates itself."""
        self.middleware.append(Middleware(middleware_class, **options))

    def get_web_server(self) -> FastAPI:
        """Return the HTTP application, creating it on first use."""
        if self._web_server is None:
            self._web_server = FastAPI(
                title="Event bus",
                middleware=list(self.middleware),
                docs_url=None,
                redoc_url=None,
                openapi_url=None,
            )
        return self._web_server

    # Handlers

    def when(self, event_configuration: EventConfiguration, handler: EventHandler | Callable[..., Any]) -> "EventBus":
        """Append ``handler`` to the handlers of ``event_configuration.id``.

        Args:
            event_configuration: The event to bind to.
            handler: An ``EventHandler`` or a plain function, which is
                wrapped with a generated id.

        Raises:
            HandlerRegistrationError: If handler is neither an EventHandler nor callable
        """
        if not isinstance(handler, EventHandler):
            if not callable(handler):
                raise HandlerRegistrationError(f"Handler must be callable: {handler!r}")
            handler = FunctionHandler(handler)

        self.handlers.setdefault(event_configuration.id, []).append(handler)
        logger.info(f"EventBus registering event {event_configuration.id} (handler={handler.id})")
        return self

    def get_handler_count(self, event_id: str) -> int:
        return len(self.handlers.get(event_id, []))

    # Lifecycle

    def start(self, callback: Callable[[], Any] | None = None) -> None:
        """Start all connectors and install the HTTP routes.

        Each connector is started once, in connector table order; a connector
        that fails to start is logged and skipped. When HTTP delegate paths
        exist the route chain is rebuilt, so paths registered since an earlier
        call are routed too. The catch-all route is mounted only once.
        ``callback`` is invoked once setup is complete.
        """
        for connector in list(self.connectors.values()):
            if connector.id in self._started_connectors:
                continue
            try:
                connector.start()
            except Exception as e:  # noqa: BLE001
                logger.exception(f"Connector {connector.id} failed to start: {e}")
            self._started_connectors.add(connector.id)

        if self.http_delegates:
            self._install_routes(self.get_web_server())

        logger.info(f"EventBus started ({len(self.connectors)} connectors, {len(self.http_delegates)} HTTP paths)")

        if callback is not None:
            callback()

    def _install_routes(self, web_server: FastAPI) -> None:
        self.router.clear()
        for path in order_http_paths(self.http_delegates):
            self.router.all(path, self.http_delegates[path].handle)
        self.router.all(WEBHOOK_FALLBACK_PATH, self._webhook_not_registered)

        if not self._routes_installed:
            web_server.add_route(
                "/{request_path:path}",
                self.router.dispatch,
                methods=HTTP_METHODS,
                include_in_schema=False,
            )
            self._routes_installed = True

    async def _webhook_not_registered(self, context: HttpContext, call_next: CallNext) -> Response:
        logger.info(f"{WEBHOOK_NOT_REGISTERED_MESSAGE} for {context.method} {context.request.url}")
        return PlainTextResponse(WEBHOOK_NOT_REGISTERED_MESSAGE, status_code=501)

    async def listen(self, port: int | None = None, host: str | None = None) -> None:
        """Serve the HTTP application with uvicorn until the server exits."""
        settings = get_settings()
        config = uvicorn.Config(
            self.get_web_server(),
            host=host or settings.host,
            port=port or settings.port,
            log_level=settings.log_level.lower(),
        )
        logger.info(f"EventBus listening on {config.host}:{config.port}")
        await uvicorn.Server(config).serve()

    def shutdown(self) -> None:
        """Release the thread pool used for synchronous dispatch."""
        if self._sync_executor is not None:
            logger.debug("Shutting down EventBus sync executor")
            self._sync_executor.shutdown(wait=True)
            self._sync_executor = None
        logger.debug("EventBus shutdown complete")

    # Dispatch

    async def handle_event(self, event_id: str, event: Any) -> bool:
        """Invoke every handler bound to ``event_id``.

        Returns:
            False when no handler is bound; otherwise True only when every
            handler completed without raising. All handlers run regardless.
        """
        handlers = self.handlers.get(event_id)
        if not handlers:
            logger.debug(f"No handlers registered for {event_id}")
            return False

        handled = True
        for handler in list(handlers):
            succeeded = await self.on_handle_event(handler, event)
            handled = handled and succeeded

        return handled

    async def on_handle_event(self, handler: EventHandler, event: Any) -> bool:
        """Invoke one handler, containing any failure it raises."""
        with logger.contextualize(handler_id=handler.id):
            try:
                await handler(event, self)
                return True
            except Exception as e:  # noqa: BLE001
                logger.exception(f"Handler {handler.id} failed: {e}")
                return False

    def run_sync[T](self, coroutine: Coroutine[Any, Any, T]) -> T:
        """Run ``coroutine`` to completion from synchronous code.

        Inside a running event loop the coroutine runs on a dedicated worker
        thread with its own loop.
        """
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return asyncio.run(coroutine)

        if self._sync_executor is None:
            self._sync_executor = concurrent.futures.ThreadPoolExecutor(max_workers=1)
            logger.debug("Created sync executor for EventBus")
        return self._sync_executor.submit(asyncio.run, coroutine).result()

    def handle_event_sync(self, event_id: str, event: Any) -> bool:
        """Synchronous counterpart of ``handle_event``."""
        return self.run_sync(self.handle_event(event_id, event))

    # Shared collaborators

    def set_persistent_store(self, adapter: PersistentStoreAdapter) -> PersistentStoreAdapter:
        self._persistent_store = adapter
        return adapter

    def get_persistent_store(self) -> PersistentStoreAdapter:
        """Return the store, installing an in-memory one on first use."""
        if self._persistent_store is None:
            return self.set_persistent_store(MemoryStoreAdapter())
        return self._persistent_store

    def get_logger(self):
        return logger.bind(component="event_bus")


@lru_cache
def get_event_bus() -> EventBus:
    """Get or create the default EventBus instance.

    Returns:
        The EventBus instance
    """
    return EventBus()
