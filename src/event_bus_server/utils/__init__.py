"""Utility helpers for the event bus server."""

from .id_generator import generate_short_id

__all__ = ["generate_short_id"]
