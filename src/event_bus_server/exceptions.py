"""Exceptions raised by the event bus server.

Handler failures are never raised out of a dispatch; these exceptions cover
misuse of the registration API and misconfigured collaborators.
"""


class EventBusError(Exception):
    """Base exception for all event bus related errors.

    Use this for catching any event bus related error:
        ```python
        try:
            bus.when(configuration, handler)
        except EventBusError as e:
            logger.error(f"Event bus error: {e}")
        ```
    """


class HandlerRegistrationError(EventBusError):
    """Raised when handler registration fails.

    This occurs when the handler is neither an ``EventHandler`` nor callable.
    """


class ConnectorError(EventBusError):
    """Raised when a connector can no longer reach its event bus."""


class PersistentStoreError(EventBusError):
    """Raised when a store adapter is misconfigured or its backend fails."""
