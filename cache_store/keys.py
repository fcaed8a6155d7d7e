"""
Cache Key Builder - Deterministic, namespace-prefixed cache keys.

Keys look like ``namespace:part1|part2|part3`` and are always lower-cased,
so ``make_cache_key("provider", "SOCIAL_MENTIONS", "X", " Pepe ")`` and
``make_cache_key("provider", "social_mentions", "x", "pepe")`` collide on
purpose. Mapping parts are serialised with sorted keys so argument order
never changes the key.
"""

import json
from enum import Enum
from typing import Any, Mapping


KEY_SEPARATOR = "|"
NAMESPACE_SEPARATOR = ":"


def _render_part(part: Any) -> str:
    """Render one key component as a stable string."""
    if part is None:
        return ""
    if isinstance(part, Enum):
        return str(part.value)
    if isinstance(part, Mapping):
        return json.dumps(dict(part), sort_keys=True, default=str, separators=(",", ":"))
    if isinstance(part, (list, tuple)):
        return json.dumps(list(part), default=str, separators=(",", ":"))
    return str(part).strip()


def make_cache_key(namespace: str, *parts: Any) -> str:
    """
    Build a cache key.

    Args:
        namespace: Key prefix separating unrelated users of the same store
        *parts: Ordered key components (strings, enums, numbers, mappings)

    Returns:
        Lower-cased ``namespace:p1|p2|...`` key
    """
    if not namespace or not namespace.strip():
        raise ValueError("Cache key namespace must be a non-empty string")

    body = KEY_SEPARATOR.join(_render_part(p) for p in parts)
    return f"{namespace.strip()}{NAMESPACE_SEPARATOR}{body}".lower()


__all__ = ["make_cache_key", "KEY_SEPARATOR", "NAMESPACE_SEPARATOR"]
