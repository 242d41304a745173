"""
Canonical plain form for command representations.

Both the locally built target payloads and the projected remote commands pass
through :func:`normalize` before they are compared, so that:

- objects exposing ``to_dict()`` are compared by their plain form,
- empty lists/mappings (which Discord omits entirely) compare equal to absent,
- reference cycles terminate instead of recursing forever.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, Dict, Optional, Set

PRIMITIVES = (str, int, float, bool)


def _plain_entries(value: Any) -> Optional[Iterable[tuple[Any, Any]]]:
    """Return the key/value pairs of an object-like value, or None if it has none."""
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        plain = to_dict()
        return plain.items() if isinstance(plain, Mapping) else None
    if isinstance(value, Mapping):
        return value.items()
    if hasattr(value, "__dict__"):
        return ((key, item) for key, item in vars(value).items() if not key.startswith("_"))
    return None


def _normalize(value: Any, keys_to_keep: Optional[Set[str]], seen: Dict[int, Any], top_level: bool) -> Any:
    if value is None or isinstance(value, PRIMITIVES):
        return value

    # A container seen before anywhere in this traversal collapses to absent.
    # Visited values stay referenced until the traversal ends so their ids are not reused.
    marker = id(value)
    if marker in seen:
        return None
    seen[marker] = value

    if isinstance(value, (list, tuple)):
        items = [_normalize(item, keys_to_keep, seen, False) for item in value]
        items = [item for item in items if item is not None]
        return items or None

    entries = _plain_entries(value)
    if entries is None:
        return None

    result: dict[str, Any] = {}
    for key, item in entries:
        if top_level and keys_to_keep is not None and key not in keys_to_keep:
            continue
        normalized = _normalize(item, keys_to_keep, seen, False)
        if normalized is not None:
            result[key] = normalized
    return result or None


def normalize(value: Any, keys_to_keep: Optional[Iterable[str]] = None) -> Any:
    """Return the canonical, cycle-free, emptiness-collapsed form of ``value``.

    Args:
        value: Any mix of primitives, lists, tuples, mappings and objects.
        keys_to_keep: When given, only these keys survive at the top level.
            Used to restrict a remote command to the keys of the local target.

    Returns:
        A tree of plain ``dict``/``list``/primitive values, or ``None`` when
        nothing meaningful remains.
    """
    keys = set(keys_to_keep) if keys_to_keep is not None else None
    return _normalize(value, keys, {}, True)
