from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)

Key = Tuple[str, ...]


def all_matches() -> Key:
    return ("matches",)


def stage_matches(stage_id: str) -> Key:
    return ("matches", "stage", stage_id)


def stage_readiness(stage_id: str) -> Key:
    return ("stage-readiness", stage_id)


def all_readiness() -> Key:
    return ("stage-readiness",)


def stage_rankings(stage_id: str) -> Key:
    return ("stage-rankings", stage_id)


def all_rankings() -> Key:
    return ("stage-rankings",)


def advancement_preview(stage_id: str, teams_to_advance: Optional[int] = None) -> Key:
    if teams_to_advance is None:
        return ("advancement-preview", stage_id)
    return ("advancement-preview", stage_id, str(teams_to_advance))


def stages() -> Key:
    return ("stages",)


def teams() -> Key:
    return ("teams",)


class _Entry:
    __slots__ = ("value", "loaded_at", "stale")

    def __init__(self, value: Any):
        self.value = value
        self.loaded_at = time.monotonic()
        self.stale = False


class QueryCache:
    """Shared read cache keyed by query tuples.

    Writers never mutate entries; they invalidate a key prefix and the next
    reader refetches. Readers of the same key share a single in-flight load.
    A load that was running when its key got invalidated still answers the
    readers already waiting on it, but its result is not stored.
    """

    def __init__(self, stale_seconds: Optional[float] = None):
        self.stale_seconds = stale_seconds
        self._entries: Dict[Key, _Entry] = {}
        self._loading: Dict[Key, asyncio.Task] = {}
        self._generation: Dict[Key, int] = {}

    def _fresh(self, entry: _Entry) -> bool:
        if entry.stale:
            return False
        if self.stale_seconds is None:
            return True
        return time.monotonic() - entry.loaded_at < self.stale_seconds

    def peek(self, key: Key) -> Any:
        entry = self._entries.get(key)
        return entry.value if entry else None

    def is_stale(self, key: Key) -> bool:
        entry = self._entries.get(key)
        return entry is None or not self._fresh(entry)

    async def get(self, key: Key, loader: Callable[[], Awaitable[Any]]) -> Any:
        entry = self._entries.get(key)
        if entry is not None and self._fresh(entry):
            return entry.value
        task = self._loading.get(key)
        if task is None:
            task = asyncio.ensure_future(self._load(key, loader, self._generation.get(key, 0)))
            # Readers may all be cancelled before a failing load finishes.
            task.add_done_callback(_consume_exception)
            self._loading[key] = task
        return await asyncio.shield(task)

    async def _load(self, key: Key, loader: Callable[[], Awaitable[Any]], generation: int) -> Any:
        try:
            value = await loader()
        finally:
            if self._loading.get(key) is asyncio.current_task():
                del self._loading[key]
        if self._generation.get(key, 0) == generation:
            self._entries[key] = _Entry(value)
        else:
            logger.debug("dropped result for %s, invalidated while loading", key)
        return value

    def invalidate(self, prefix: Key) -> int:
        n = 0
        for key, entry in self._entries.items():
            if key[: len(prefix)] == prefix:
                entry.stale = True
                n += 1
        for key in set(self._entries) | set(self._loading):
            if key[: len(prefix)] == prefix:
                self._generation[key] = self._generation.get(key, 0) + 1
                self._loading.pop(key, None)
        logger.debug("invalidated %d entries under %s", n, prefix)
        return n


def _consume_exception(task: asyncio.Task) -> None:
    if not task.cancelled():
        task.exception()
