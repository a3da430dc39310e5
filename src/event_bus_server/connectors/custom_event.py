"""In-process event connector.

Application code declares named events with ``on`` and triggers them with
``dispatch``:

```python
emitter = CustomEventConnector(bus)
emitter.on({"event": "ORDER_CANCELED"}, refund_order)
await emitter.dispatch("ORDER_CANCELED", {"orderNumber": "234"})
```
"""

from typing import Any

from loguru import logger
from pydantic import BaseModel

from event_bus_server.event_bus.core import Event, EventConfiguration

from .base import BaseConnector, HandlerLike


class CustomEventOptions(BaseModel):
    """Options of an in-process event: the logical event name."""

    event: str


class CustomEventConnector(BaseConnector[CustomEventOptions]):
    """Connector emitting named events from application code."""

    def on(
        self,
        options: CustomEventOptions | dict[str, Any],
        handler: HandlerLike,
        event_id: str | None = None,
    ) -> EventConfiguration:
        """Bind ``handler`` to the named event.

        Args:
            options: The event name, as ``CustomEventOptions`` or a plain dict.
            handler: An ``EventHandler`` or a plain function.
            event_id: Explicit event id. Defaults to ``Event/<event>/<connector id>``.

        Returns:
            The stored event configuration.
        """
        options = CustomEventOptions.model_validate(options)
        if not event_id:
            event_id = f"Event/{options.event}/{self.id}"

        configuration = self._store_configuration(event_id, options)
        self.bus.when(configuration, handler)
        return configuration

    async def dispatch(self, event: str, payload: Any = None) -> None:
        """Trigger every configuration declared for the event name.

        Matching configurations are dispatched one after another in
        declaration order; each receives the configuration fields together
        with ``payload``.
        """
        matching = [c for c in self.event_configurations.values() if c.options.event == event]
        if not matching:
            logger.debug(f"Connector {self.id} has no configuration for event {event}")
            return

        for configuration in matching:
            await self.bus.handle_event(configuration.id, Event.from_configuration(configuration, payload))

    def dispatch_sync(self, event: str, payload: Any = None) -> None:
        """Run ``dispatch`` from synchronous code and wait for it to finish."""
        self.bus.run_sync(self.dispatch(event, payload))
