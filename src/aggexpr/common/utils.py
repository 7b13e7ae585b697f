"""Small helpers shared across modules."""

from __future__ import annotations


def change_indentation(text: str, depth: int, indent: str = "  ") -> str:
    """Indent every line of *text* by *depth* levels."""
    prefix = indent * depth
    return "\n".join(prefix + line for line in text.splitlines() or [""])
