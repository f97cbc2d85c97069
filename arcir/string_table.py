"""Interning table mapping strings to small integer ids."""

from __future__ import annotations


class StringTable:
    """Interns strings; the empty string always has id 0."""

    def __init__(self) -> None:
        self._ids: dict[str, int] = {}
        self._strings: list[str] = []
        self.clear()

    def intern(self, text: str) -> int:
        """Return the id of ``text``, adding it to the table if it is new."""
        if not text:
            return 0
        existing = self._ids.get(text)
        if existing is not None:
            return existing
        new_id = len(self._strings)
        self._ids[text] = new_id
        self._strings.append(text)
        return new_id

    def get(self, string_id: int) -> str:
        """Return the string interned under ``string_id``."""
        if string_id < 0 or string_id >= len(self._strings):
            raise IndexError(f"StringTable.get: invalid string id {string_id}")
        return self._strings[string_id]

    def __contains__(self, text: object) -> bool:
        return text in self._ids

    def __len__(self) -> int:
        return len(self._strings)

    def clear(self) -> None:
        """Drop every string except the empty one so the table can be reused."""
        self._ids = {"": 0}
        self._strings = [""]