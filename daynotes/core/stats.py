from __future__ import annotations


def count_chars(text: str) -> int:
    return len(text or "")


def count_words(text: str) -> int:
    """Whitespace-separated words; an empty or blank note has zero words."""
    return len((text or "").split())
