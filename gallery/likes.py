"""
In-memory "like" toggles for the boolean voting variant.
"""

from __future__ import annotations

import threading
from collections import defaultdict
from typing import Dict, Set


class LikeStore:
    """Per-user sets of liked caption ids. Nothing is persisted."""

    def __init__(self):
        self._liked: Dict[str, Set[str]] = defaultdict(set)
        self._lock = threading.Lock()

    def toggle(self, user_id: str, caption_id: str) -> bool:
        """Flip the like and return the new state."""
        with self._lock:
            liked = self._liked[user_id]
            if caption_id in liked:
                liked.discard(caption_id)
                return False
            liked.add(caption_id)
            return True

    def is_liked(self, user_id: str, caption_id: str) -> bool:
        return caption_id in self._liked.get(user_id, ())

    def liked_ids(self, user_id: str) -> frozenset[str]:
        return frozenset(self._liked.get(user_id, ()))

    def reset(self) -> None:
        with self._lock:
            self._liked.clear()
