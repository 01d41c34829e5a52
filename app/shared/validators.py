"""Shared validation utilities"""

from typing import Any

# Max lengths for request fields
MAX_LENGTHS = {
    "title": 500,
    "tag": 100,  # per-item length of array tags
    "array_max": 50,  # max items in an array field
}


def sanitise_string_array(
    value: Any,
    max_items: int = MAX_LENGTHS["array_max"],
    max_item_len: int = MAX_LENGTHS["tag"],
) -> list[str]:
    """
    Clamp an untrusted array to a clean list of strings.

    Non-list input becomes an empty list. Non-string and blank items are
    dropped, items are trimmed and truncated, duplicates removed (first
    occurrence wins) and the result capped at ``max_items``.
    """
    if not isinstance(value, (list, tuple)):
        return []

    cleaned: list[str] = []
    seen: set[str] = set()
    for item in value:
        if not isinstance(item, str):
            continue
        item = item.strip()[:max_item_len]
        if not item or item in seen:
            continue
        seen.add(item)
        cleaned.append(item)
        if len(cleaned) >= max_items:
            break
    return cleaned
