"""Command line interface for the event bus server."""
