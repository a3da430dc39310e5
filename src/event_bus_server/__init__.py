"""In-process event bus with connectors and an HTTP delegate surface."""

from .settings import Settings, get_settings  # noqa: F401

__all__ = ["get_settings", "Settings"]
