"""
Shared formatting utilities for build output.
"""

from __future__ import annotations


def format_duration(seconds: float | None) -> str:
    """Format duration in human-readable format.

    Examples:
        >>> format_duration(None)
        '?'
        >>> format_duration(45.5)
        '45.5s'
        >>> format_duration(125)
        '2m 5s'
        >>> format_duration(3725)
        '1h 2m'
    """
    if seconds is None:
        return "?"
    if seconds < 60:
        return f"{seconds:.1f}s"
    elif seconds < 3600:
        mins = int(seconds // 60)
        secs = seconds % 60
        return f"{mins}m {secs:.0f}s"
    else:
        hours = int(seconds // 3600)
        mins = int((seconds % 3600) // 60)
        return f"{hours}h {mins}m"


def truncate_string(s: str, max_len: int = 50, suffix: str = "...") -> str:
    """Truncate a string with ellipsis if too long.

    Examples:
        >>> truncate_string("short", 10)
        'short'
        >>> truncate_string("this is a very long string", 15)
        'this is a ve...'
    """
    if len(s) <= max_len:
        return s
    return s[: max_len - len(suffix)] + suffix


def format_hash_prefix(hash_str: str | None, length: int = 12) -> str:
    """Format a fingerprint or digest as a prefix for display.

    Examples:
        >>> format_hash_prefix("abc123def456abc0")
        'abc123def456'
        >>> format_hash_prefix(None)
        '-'
    """
    if hash_str is None:
        return "-"
    return hash_str[:length]


def format_exit_code(exit_code: int | None) -> str:
    """Format an exit code for display.

    Examples:
        >>> format_exit_code(2)
        '2 (failure)'
        >>> format_exit_code(None)
        '-'
    """
    if exit_code is None:
        return "-"
    if exit_code == 0:
        return "0 (success)"
    return f"{exit_code} (failure)"
