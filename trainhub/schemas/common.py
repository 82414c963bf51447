"""Common schema module."""

from __future__ import annotations

from enum import Enum


def display_value(value):
    """Lowercase display form of a persisted enum value; ``None`` passes through."""
    if value is None:
        return None
    if isinstance(value, Enum):
        value = value.value
    return str(value).lower()
