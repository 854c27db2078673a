"""Short-term, per-user conversation memory.

Each user id maps to its committed exchanges, oldest first. Only the most
recent few are ever replayed into a session, so storage is trimmed to
``max_exchanges`` on append. Memory lives for the process lifetime.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional


@dataclass(frozen=True)
class Exchange:
    """One committed turn: what the user said and the raw reply accepted for it."""

    user_message: str
    assistant_reply: str


class MemoryStore:
    def __init__(self, max_exchanges: Optional[int] = None) -> None:
        if max_exchanges is not None and max_exchanges < 0:
            raise ValueError("max_exchanges must not be negative")
        self.max_exchanges = max_exchanges
        self._items: Dict[str, List[Exchange]] = {}

    def get(self, user_id: str) -> List[Exchange]:
        # Registers unseen ids so later appends find an entry.
        return list(self._items.setdefault(user_id, []))

    def append(self, user_id: str, exchange: Exchange) -> None:
        items = self._items.setdefault(user_id, [])
        items.append(exchange)
        if self.max_exchanges is not None and len(items) > self.max_exchanges:
            del items[: len(items) - self.max_exchanges]

    def windowed(self, user_id: str, window: int) -> List[Exchange]:
        if window <= 0:
            return []
        return list(self._items.get(user_id, [])[-window:])

    def size(self, user_id: str) -> int:
        return len(self._items.get(user_id, []))

    def clear(self, user_id: str) -> None:
        self._items.pop(user_id, None)

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._items

    def __len__(self) -> int:
        return len(self._items)
