"""Connectors: pluggable sources of events for the event bus."""

from .base import BaseConnector, BaseHttpConnector
from .custom_event import CustomEventConnector, CustomEventOptions
from .http import HttpConnector, HttpRouteOptions

__all__ = [
    "BaseConnector",
    "BaseHttpConnector",
    "CustomEventConnector",
    "CustomEventOptions",
    "HttpConnector",
    "HttpRouteOptions",
]
