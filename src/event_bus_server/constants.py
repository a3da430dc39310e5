"""Global constants for the event bus server.

This module defines constants used throughout the application to avoid
hardcoded strings and make the codebase more maintainable.
"""

# Listener
DEFAULT_PORT = 8000

# Route patterns
PATH_PARAMETER_MARKER = ":"
PATH_WILDCARD = "*"
WEBHOOK_FALLBACK_PATH = "/events/webhooks/*"
WEBHOOK_NOT_REGISTERED_MESSAGE = "Webhook not registered"

# HTTP methods a delegate route answers to
HTTP_METHOD_ALL = "ALL"
HTTP_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]
