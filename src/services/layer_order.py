"""Layer order - the back-to-front sequence of characters in the scene."""

import logging
from typing import Iterable, Iterator

logger = logging.getLogger(__name__)

# Drop placements accepted by LayerOrder.move_to
PLACEMENTS = ("at", "before", "after")


class LayerOrder:
    """Ordered, duplicate-free sequence of character ids.

    Index 0 is the furthest back layer and the last index is the frontmost.
    The sequence doubles as the scene's selection: a character is in the
    scene exactly when its id is in the order.

    Presentation layers that list layers "top first" should use
    ``front_to_back()``, which is a read-only projection.
    """

    def __init__(self, ids: Iterable[str] = ()):
        self._ids: list[str] = []
        for character_id in ids:
            self.append(character_id)

    def __iter__(self) -> Iterator[str]:
        return iter(tuple(self._ids))

    def __len__(self) -> int:
        return len(self._ids)

    def __contains__(self, character_id: object) -> bool:
        return character_id in self._ids

    def __repr__(self) -> str:
        return f"LayerOrder({self._ids!r})"

    @property
    def ids(self) -> tuple[str, ...]:
        """Back-to-front snapshot of the order."""
        return tuple(self._ids)

    def front_to_back(self) -> tuple[str, ...]:
        """Top-layer-first projection for display."""
        return tuple(reversed(self._ids))

    def index(self, character_id: str) -> int:
        return self._ids.index(character_id)

    def append(self, character_id: str) -> bool:
        """Add a character as the new front layer.

        Returns:
            True if added, False if it was already in the order
        """
        if character_id in self._ids:
            return False
        self._ids.append(character_id)
        return True

    def remove(self, character_id: str) -> bool:
        """Remove a character from the order.

        Returns:
            True if removed, False if it was not in the order
        """
        if character_id not in self._ids:
            return False
        self._ids.remove(character_id)
        return True

    def toggle(self, character_id: str) -> bool:
        """Add the character if absent, remove it if present.

        Returns:
            True if the character is in the order afterwards
        """
        if self.remove(character_id):
            return False
        self.append(character_id)
        return True

    def move_to(self, character_id: str, target_id: str, placement: str = "at") -> bool:
        """Drag-and-drop reorder.

        With the default ``"at"`` placement the dragged id is spliced out and
        spliced back in at the target's original index, which puts it just in
        front of the target when dragging forward and just behind it when
        dragging backward. ``"before"``/``"after"`` place it directly behind
        or in front of the target regardless of drag direction. Untouched ids
        keep their relative order.

        Args:
            character_id: The dragged id
            target_id: The id it was dropped on
            placement: One of ``"at"``, ``"before"``, ``"after"``

        Returns:
            True if the order changed
        """
        if placement not in PLACEMENTS:
            raise ValueError(f"Unknown placement: {placement}")
        if character_id == target_id:
            return False
        if character_id not in self._ids or target_id not in self._ids:
            logger.debug(f"Ignoring move of {character_id} onto {target_id}: unknown id")
            return False

        before = list(self._ids)
        dragged_index = self._ids.index(character_id)
        target_index = self._ids.index(target_id)

        self._ids.pop(dragged_index)
        if placement == "at":
            insert_at = target_index
        else:
            insert_at = self._ids.index(target_id)
            if placement == "after":
                insert_at += 1
        self._ids.insert(insert_at, character_id)

        return self._ids != before

    def reorder(self, ids: Iterable[str]) -> None:
        """Replace the order with a permutation of the current ids.

        Raises:
            ValueError: If ``ids`` is not a permutation of the current order
        """
        new_ids = list(ids)
        if len(new_ids) != len(set(new_ids)) or set(new_ids) != set(self._ids):
            raise ValueError("Reorder must be a permutation of the current layers")
        self._ids = new_ids

    def clear(self) -> None:
        self._ids.clear()
