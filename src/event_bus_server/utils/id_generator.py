"""Identifier generation for handlers and connectors."""

import secrets
import string
import time

ID_ALPHABET = string.ascii_letters + string.digits


def generate_short_id(length: int = 16) -> str:
    """Generate a short, URL-safe identifier.

    Used for handler and connector ids when the caller does not supply one.
    The ID consists of:
    - Current timestamp in milliseconds, base36 encoded
    - Random alphanumeric characters

    Args:
        length: The length of the ID to generate (default: 16)

    Returns:
        A string containing the generated ID
    """
    timestamp = to_base36(int(time.time() * 1000))
    random_part = "".join(secrets.choice(ID_ALPHABET) for _ in range(length))

    # Pad so callers always get the exact length they asked for
    return (timestamp + random_part)[:length].ljust(length, "0")


def to_base36(number: int) -> str:
    """Convert a non-negative number to base36."""
    alphabet = string.digits + string.ascii_lowercase
    base36 = ""

    while number:
        number, i = divmod(number, 36)
        base36 = alphabet[i] + base36

    return base36 or "0"
