from __future__ import annotations


def truncate_string(s: str, max_chars: int) -> str:
    """Cut `s` to at most `max_chars` characters (code points, not bytes)."""
    if max_chars <= 0:
        return ""
    return s[:max_chars]
