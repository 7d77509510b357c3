from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Set, Tuple


RECENT_CATEGORY_WINDOW = 2


@dataclass(frozen=True)
class UserState:
    visited_ids: FrozenSet[str] = frozenset()
    no_go_ids: FrozenSet[str] = frozenset()
    recent_categories: Tuple[str, ...] = ()


@dataclass
class _Entry:
    visited: Set[str] = field(default_factory=set)
    no_go: Set[str] = field(default_factory=set)
    recent: List[str] = field(default_factory=list)


class UserStateStore:
    """Simple in-memory store of per-user visit history and no-go lists."""

    def __init__(self, recent_window: int = RECENT_CATEGORY_WINDOW) -> None:
        self._users: Dict[str, _Entry] = {}
        self._lock = threading.Lock()
        self.recent_window = recent_window

    def snapshot(self, user_id: Optional[str]) -> UserState:
        if not user_id:
            return UserState()
        with self._lock:
            entry = self._users.get(user_id)
            if entry is None:
                return UserState()
            return UserState(
                visited_ids=frozenset(entry.visited),
                no_go_ids=frozenset(entry.no_go),
                recent_categories=tuple(entry.recent),
            )

    def record_visit(self, user_id: Optional[str], place_id: str, category: Optional[str] = None) -> None:
        """Add an accepted place to history and push its category onto the recent window."""
        if not user_id:
            return
        with self._lock:
            entry = self._users.setdefault(user_id, _Entry())
            entry.visited.add(place_id)
            if category:
                entry.recent.append(category)
                if len(entry.recent) > self.recent_window:
                    entry.recent = entry.recent[-self.recent_window :]

    def add_no_go(self, user_id: Optional[str], place_id: str) -> None:
        if not user_id:
            return
        with self._lock:
            self._users.setdefault(user_id, _Entry()).no_go.add(place_id)

    def remove_no_go(self, user_id: Optional[str], place_id: str) -> bool:
        if not user_id:
            return False
        with self._lock:
            entry = self._users.get(user_id)
            if entry is None or place_id not in entry.no_go:
                return False
            entry.no_go.discard(place_id)
            return True

    def clear_history(self, user_id: Optional[str]) -> None:
        """Forget visits and recent categories; the no-go list stays."""
        if not user_id:
            return
        with self._lock:
            entry = self._users.get(user_id)
            if entry is not None:
                entry.visited.clear()
                entry.recent.clear()

    def reset(self, user_id: Optional[str]) -> None:
        if not user_id:
            return
        with self._lock:
            self._users.pop(user_id, None)


# Global singleton
state_store = UserStateStore()
