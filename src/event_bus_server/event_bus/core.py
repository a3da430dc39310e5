"""Core Event Bus Components.

This module contains the data model shared by the bus, its connectors and the
handlers bound to them. Nothing here knows about HTTP.

## Key Components

- **EventConfiguration**: Immutable descriptor of one registered event
- **Event**: What a handler receives (the configuration plus a payload)
- **EventHandler**: Base class for handlers with a stable id
- **FunctionHandler**: Wraps a plain function or coroutine function

## Usage Example

```python
from event_bus_server.event_bus.core import Event, EventHandler


class OrderCanceledHandler(EventHandler[Event]):
    def __init__(self, mailer: Mailer):
        super().__init__("order-canceled-mailer")
        self.mailer = mailer

    async def handle(self, event: Event, bus: EventBus) -> None:
        await self.mailer.send(event.payload["orderNumber"])
```

"""

import inspect
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, SkipValidation

from event_bus_server.utils.id_generator import generate_short_id

T_Options = TypeVar("T_Options")
T_Payload = TypeVar("T_Payload")


class EventConfiguration(BaseModel, Generic[T_Options]):
    """Descriptor binding an event id to its declaring connector and options.

    The ``source`` is a back-reference to the connector that declared the
    event; the configuration never owns it. ``options`` are connector specific
    and opaque to the bus.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    id: str
    source: Any = Field(default=None, repr=False)
    options: T_Options


class Event(BaseModel, Generic[T_Options, T_Payload]):
    """Event delivered to handlers: the configuration fields plus a payload."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    id: str
    source: Any = Field(default=None, repr=False)
    options: T_Options
    payload: SkipValidation[T_Payload] = None

    @classmethod
    def from_configuration(cls, configuration: EventConfiguration, payload: Any) -> "Event":
        """Merge a configuration with a dispatch payload."""
        return cls(
            id=configuration.id,
            source=configuration.source,
            options=configuration.options,
            payload=payload,
        )


class EventHandler[T_Event: Event](ABC):
    """Base class for event handlers.

    A handler has an ``id`` used to tag log records while it runs. Subclasses
    implement ``handle`` which may be a plain or a coroutine method.
    """

    def __init__(self, handler_id: str | None = None) -> None:
        self.id = handler_id or generate_short_id()

    @abstractmethod
    def handle(self, event: T_Event, bus: Any) -> Any:
        """Handle the event.

        Args:
            event: The event, carrying the configuration fields and the payload.
            bus: The bus that dispatched the event, for nested dispatch.

        Raises:
            Any exception that occurs during handling. Exceptions are caught
            and logged by the bus and turn the dispatch result to False.
        """

    async def __call__(self, event: T_Event, bus: Any) -> Any:
        """Run ``handle`` and await it when it returns an awaitable."""
        result = self.handle(event, bus)
        if inspect.isawaitable(result):
            result = await result
        return result

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id!r})"


class FunctionHandler(EventHandler[Event]):
    """Handler wrapping a bare function.

    The function is called with ``(event, bus)`` when it accepts two
    positional parameters and with ``(event)`` otherwise.
    """

    def __init__(self, func: Callable[..., Any], handler_id: str | None = None) -> None:
        super().__init__(handler_id)
        self.func = func
        self._pass_bus = _accepts_bus(func)

    def handle(self, event: Event, bus: Any) -> Any:
        if self._pass_bus:
            return self.func(event, bus)
        return self.func(event)

    def __repr__(self) -> str:
        name = getattr(self.func, "__qualname__", repr(self.func))
        return f"FunctionHandler(id={self.id!r}, func={name})"


def _accepts_bus(func: Callable[..., Any]) -> bool:
    try:
        parameters = list(inspect.signature(func).parameters.values())
    except (TypeError, ValueError):
        return True

    positional = [p for p in parameters if p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD)]
    has_var_args = any(p.kind is p.VAR_POSITIONAL for p in parameters)
    return has_var_args or len(positional) >= 2

