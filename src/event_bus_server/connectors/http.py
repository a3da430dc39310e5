"""HTTP request connector.

Binds (method, path) pairs to handlers. Handlers receive an ``Event`` whose
payload is the ``HttpContext`` of the request and answer through it:

```python
http = HttpConnector(bus)


async def hello(event):
    event.payload.send("Hello World!")


http.on({"method": "GET", "path": "/events/webhooks/hello"}, hello)
```
"""

from typing import TYPE_CHECKING, Any

from loguru import logger
from pydantic import BaseModel, field_validator

from event_bus_server.constants import HTTP_METHOD_ALL
from event_bus_server.event_bus.core import Event, EventConfiguration
from event_bus_server.event_bus.http import HttpContext, RouteResult

from .base import BaseHttpConnector, HandlerLike

if TYPE_CHECKING:
    from event_bus_server.event_bus.bus import EventBus


class HttpRouteOptions(BaseModel):
    """HTTP method and path pattern an event is bound to."""

    path: str
    method: str = HTTP_METHOD_ALL

    @field_validator("method", mode="before")
    @classmethod
    def normalize_method(cls, v: str | None) -> str:
        return str(v or HTTP_METHOD_ALL).upper()

    def accepts(self, method: str) -> bool:
        method = method.upper()
        if self.method in (HTTP_METHOD_ALL, method):
            return True
        return self.method == "GET" and method == "HEAD"


class HttpConnector(BaseHttpConnector[HttpRouteOptions]):
    """Connector that turns HTTP requests into events."""

    def __init__(self, bus: "EventBus", connector_id: str | None = None) -> None:
        super().__init__(bus, connector_id)
        self._paths: list[str] = []

    def on(
        self,
        options: HttpRouteOptions | dict[str, Any],
        handler: HandlerLike,
        event_id: str | None = None,
    ) -> EventConfiguration:
        """Bind ``handler`` to a method and path pattern.

        The first binding for a path registers this connector as an HTTP
        delegate of that path.

        Args:
            options: ``HttpRouteOptions`` or a dict with ``method`` and ``path``.
            handler: An ``EventHandler`` or a plain function.
            event_id: Explicit event id. Defaults to ``HTTP/<METHOD>/<path>/<connector id>``.

        Returns:
            The stored event configuration.
        """
        options = HttpRouteOptions.model_validate(options)
        if not event_id:
            event_id = f"HTTP/{options.method}/{options.path}/{self.id}"

        configuration = self._store_configuration(event_id, options)
        self.bus.when(configuration, handler)

        if options.path not in self._paths:
            self.bus.register_http_delegate(options.path, self)
            self._paths.append(options.path)

        return configuration

    async def handle(self, context: HttpContext) -> RouteResult:
        """Dispatch the request to the configurations matching its path and method.

        Returns ``DEFERRED`` when no configuration matches, so the next
        delegate of the path gets its chance. A failing handler that wrote no
        response turns into a 500.
        """
        matching = [
            c
            for c in self.event_configurations.values()
            if c.options.path == context.original_path and c.options.accepts(context.method)
        ]
        if not matching:
            return RouteResult.DEFERRED

        handled = True
        for configuration in matching:
            succeeded = await self.bus.handle_event(configuration.id, Event.from_configuration(configuration, context))
            handled = handled and succeeded

        if not handled and not context.responded:
            logger.warning(f"{context.method} {context.request.url.path} failed in connector {self.id}")
            context.send("Internal Server Error", status_code=500)

        return RouteResult.HANDLED

    async def stop(self) -> None:
        """Withdraw this connector from its paths. Other delegates of those paths stay."""
        for path in self._paths:
            self.bus.remove_http_delegate(path, self)
        self._paths.clear()
        await super().stop()
