"""
Injection scope definitions.
"""

from enum import Enum


class InjectionScope(str, Enum):
    """Instance lifetime scopes."""

    SINGLETON = "singleton"  # One instance per process
    TRANSIENT = "transient"  # New instance every resolve
    REQUEST = "request"      # One instance per request


def coerce_scope(value) -> InjectionScope:
    """Accept an InjectionScope or its string value."""
    if isinstance(value, InjectionScope):
        return value
    try:
        return InjectionScope(str(value).lower())
    except ValueError:
        raise ValueError(
            f"Unknown injection scope {value!r}; expected one of "
            f"{', '.join(s.value for s in InjectionScope)}"
        ) from None
