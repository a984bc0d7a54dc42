"""Apply confirmed remote mutations to locally cached lists.

Only called after the management API has accepted the change, so the
local copy always reflects the last confirmed state. Rules and bindings
are position-addressed; nothing verifies that the remote list was not
reordered by another session in the meantime. API key configs and usage
entries are addressed by key.

All functions return new containers and never modify their input.
Out-of-range positions and unknown keys leave the content unchanged.
"""

from collections.abc import Callable
from typing import TypeVar

T = TypeVar("T")


def append(items: list[T], item: T) -> list[T]:
    """Remote create appends, so the new element goes last."""
    return [*items, item]


def replace_at(items: list[T], index: int, item: T) -> list[T]:
    return [item if i == index else existing for i, existing in enumerate(items)]


def remove_at(items: list[T], index: int) -> list[T]:
    return [existing for i, existing in enumerate(items) if i != index]


def replace_by_key(items: list[T], key: str, item: T, key_of: Callable[[T], str]) -> list[T]:
    return [item if key_of(existing) == key else existing for existing in items]


def remove_by_key(items: list[T], key: str, key_of: Callable[[T], str]) -> list[T]:
    return [existing for existing in items if key_of(existing) != key]


def remove_entry(mapping: dict[str, T], key: str) -> dict[str, T]:
    return {k: v for k, v in mapping.items() if k != key}
