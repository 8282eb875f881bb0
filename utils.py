"""
Provides common, stateless utility functions used across the application.

This module is a collection of simple, reusable helper functions that do not
fit into a more specific module: ids for sidebar entries and the text
massaging used for previews and greetings.
"""
import time

from config import PREVIEW_LENGTH
from tracer import trace

_last_id = 0


def next_id() -> int:
    """
    Returns a millisecond timestamp that is strictly greater than any
    previously returned value, so ids stay monotonic within a burst.
    """
    global _last_id
    candidate = int(time.time() * 1000)
    _last_id = max(candidate, _last_id + 1)
    return _last_id


@trace
def make_preview(text: str, length: int = PREVIEW_LENGTH) -> str:
    """Truncates text to `length` characters, appending an ellipsis if anything was cut."""
    if len(text) > length:
        return text[:length] + "…"
    return text


def email_local_part(email: str) -> str:
    return email.split("@")[0] if email else ""


def capitalize_first(name: str) -> str:
    return name[:1].upper() + name[1:]
