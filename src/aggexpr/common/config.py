"""Configuration defaults.

Configuration is a plain dictionary; callers pass only the keys they want
to override.

Supported keys:
    - ``strict_field_resolution``: when ``True`` (default) a schema-backed
      root context rejects names its schema does not know; when ``False``
      such names pass through unchanged and a warning is logged.
    - ``flatten_associative``: when ``True`` (default) the infix parser folds
      chains of the same associative operator (``a + b + c``) into a single
      n-ary operator instead of nesting binary ones.
"""

from __future__ import annotations

from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {
    "strict_field_resolution": True,
    "flatten_associative": True,
}


def merge_config(config: dict[str, Any] | None) -> dict[str, Any]:
    """Return ``DEFAULT_CONFIG`` overlaid with *config*."""
    merged = dict(DEFAULT_CONFIG)
    if config:
        merged.update(config)
    return merged
