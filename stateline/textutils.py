"""Small string joining and splitting helpers."""

from __future__ import annotations

from typing import Iterable


def join_str(items: Iterable[str], delim: str) -> str:
    """Join strings with a delimiter; there must be at least one item."""
    parts = list(items)
    if not parts:
        raise ValueError("cannot join an empty collection")
    return delim.join(parts)


def split_str(text: str, delim: str) -> list[str]:
    """Split on a single character, keeping empty fields but not a trailing one."""
    if len(delim) != 1:
        raise ValueError("delimiter must be a single character")
    parts = text.split(delim)
    if parts[-1] == "":
        parts.pop()
    return parts