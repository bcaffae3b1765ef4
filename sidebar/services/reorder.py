"""Index arithmetic for drag-and-drop reordering of the site list.

Both helpers are pure so the registry, the API and the tests share one
definition of the splice rules.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TypeVar

from sidebar.schemas.site import DropPosition

T = TypeVar("T")


def move_item(items: Sequence[T], from_index: int, to_index: int) -> list[T]:
    """Return a copy of ``items`` with one element moved.

    The element at ``from_index`` is spliced out and re-inserted at
    ``to_index`` clamped to ``[0, len(items) - 1]``. An out-of-range
    ``from_index`` leaves the order unchanged.
    """

    result = list(items)
    if not 0 <= from_index < len(result):
        return result

    moved = result.pop(from_index)
    target = max(0, min(to_index, len(items) - 1))
    result.insert(target, moved)
    return result


def drop_position(pointer_y: float, target_top: float, target_height: float) -> DropPosition:
    """Decide which side of the hovered row a drop lands on.

    A pointer strictly above the row's vertical midpoint drops above it;
    the midpoint itself and anything below drop below.
    """

    midpoint = target_top + target_height / 2
    return DropPosition.ABOVE if pointer_y < midpoint else DropPosition.BELOW


def drop_insertion_index(
    dragged_index: int, target_index: int, position: DropPosition
) -> int:
    """Translate a drop onto ``target_index`` into a ``move_item`` destination.

    "Above" inserts at the target's index and "below" right after it. When
    the dragged row starts before the target, removing it shifts the target
    up by one, so the insertion index is decremented to compensate.
    """

    insert_at = target_index if position is DropPosition.ABOVE else target_index + 1
    if dragged_index < target_index:
        insert_at -= 1
    return insert_at


def apply_drop(
    items: Sequence[T],
    dragged_index: int,
    target_index: int,
    position: DropPosition,
) -> list[T]:
    """Return ``items`` reordered as if ``dragged_index`` was dropped on a row."""

    if dragged_index == target_index:
        return list(items)
    return move_item(
        items,
        dragged_index,
        drop_insertion_index(dragged_index, target_index, position),
    )


__all__ = ["apply_drop", "drop_insertion_index", "drop_position", "move_item"]
