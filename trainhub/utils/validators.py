"""Input sanitizers shared by services."""

from __future__ import annotations


def sanitize_text(value: str | None, max_len: int = 20000) -> str:
    """Sanitize free-form content before persistence/display."""
    if value is None:
        return ""
    cleaned = str(value).replace("\x00", "").strip()
    return cleaned[:max_len]
