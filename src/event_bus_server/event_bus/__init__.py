"""Event Bus System for Decoupled Component Communication.

This module provides an in-process event bus that decouples event producers
(connectors) from event consumers (handlers bound to event configurations),
and optionally exposes connector events over HTTP. It supports:

- **Ordered Dispatch**: Handlers of an event run sequentially, in registration order
- **Error Isolation**: A failing handler is logged and never aborts its siblings
- **HTTP Multiplexing**: Competing delegates per path, first to claim a request wins
- **Deterministic Routing**: Literal paths are tried before parameterized ones

## Quick Start

```python
from event_bus_server.connectors import CustomEventConnector
from event_bus_server.event_bus import EventBus

bus = EventBus()
emitter = CustomEventConnector(bus)


async def log_cancellation(event):
    print(f"Order {event.payload['orderNumber']} canceled")


emitter.on({"event": "ORDER_CANCELED"}, log_cancellation)
bus.start()
await emitter.dispatch("ORDER_CANCELED", {"orderNumber": "234"})
```

For the data model and handler base class, see `core.py`.
For HTTP routing, see `http.py`.
"""

from .bus import EventBus, get_event_bus
from .core import Event, EventConfiguration, EventHandler, FunctionHandler
from .http import HttpContext, HttpMultiplexer, RouteResult, order_http_paths

__all__ = [
    "Event",
    "EventBus",
    "EventConfiguration",
    "EventHandler",
    "FunctionHandler",
    "HttpContext",
    "HttpMultiplexer",
    "RouteResult",
    "get_event_bus",
    "order_http_paths",
]
