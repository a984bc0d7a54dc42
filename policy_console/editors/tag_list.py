"""Tag-list editor — ordered, de-duplicated string lists built from typed input.

Used for rule model lists, pattern order, provider allow-lists and
auth-id lists. Insertion order is kept; it only carries meaning for
pattern order.
"""

COMMIT_KEYS = ("Enter", ",")


class TagList:
    """An ordered list of trimmed, non-empty, unique strings plus a pending input buffer."""

    def __init__(self, items: list[str] | None = None):
        self._items: list[str] = []
        self.buffer = ""
        for item in items or []:
            self.add(item)
        self.buffer = ""

    @property
    def items(self) -> list[str]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(list(self._items))

    def __contains__(self, value: str) -> bool:
        return value in self._items

    def add(self, raw: str) -> bool:
        """Append ``raw`` trimmed. Returns True if the list grew.

        Blank input is ignored and leaves the buffer alone. A duplicate
        (case-sensitive) does not grow the list but still clears the buffer.
        """
        value = raw.strip()
        if not value:
            return False
        self.buffer = ""
        if value in self._items:
            return False
        self._items.append(value)
        return True

    def remove(self, index: int) -> bool:
        """Remove the item at ``index``; out-of-range is a no-op."""
        if not 0 <= index < len(self._items):
            return False
        del self._items[index]
        return True

    def set_input(self, text: str) -> None:
        self.buffer = text

    def press(self, key: str) -> bool:
        """Handle a key press in the input. Enter and comma commit the buffer."""
        if key not in COMMIT_KEYS:
            return False
        self.add(self.buffer)
        return True

    def flush(self) -> bool:
        """Commit whatever is pending in the buffer."""
        return self.add(self.buffer)

    # Focus loss commits pending input
    blur = flush

    def suggestions(self, options: list[str] | tuple[str, ...]) -> list[str]:
        """Options not yet in the list, in option order."""
        return [o for o in options if o not in self._items]
