from __future__ import annotations

from pddbot.services.records import RecordStore


def normalize_medication_name(name: str) -> str:
    return " ".join((name or "").split())


class MedicationRegistry:
    """
    Per-chat list of medication names shown as keyboard buttons.

    Notes:
    - Matching is case-insensitive; display keeps the first spelling added.
    - Insertion order is preserved (it drives the button layout).
    - The list is re-read from disk on every call, there is no cache.
    """

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    def names(self, chat_id: int) -> list[str]:
        result: list[str] = []
        seen: set[str] = set()
        for line in self._store.read_medication_lines(chat_id):
            name = normalize_medication_name(line)
            if not name:
                continue
            key = name.casefold()
            if key in seen:
                continue
            seen.add(key)
            result.append(name)
        return result

    def lookup(self, chat_id: int, name: str) -> str | None:
        """Return the registered spelling of `name`, if any."""
        key = normalize_medication_name(name).casefold()
        if not key:
            return None
        for existing in self.names(chat_id):
            if existing.casefold() == key:
                return existing
        return None

    def exists(self, chat_id: int, name: str) -> bool:
        return self.lookup(chat_id, name) is not None

    def add(self, chat_id: int, name: str) -> bool:
        normalized = normalize_medication_name(name)
        if not normalized:
            return False
        if self.exists(chat_id, normalized):
            return False
        self._store.append_medication_name(chat_id, normalized)
        return True
