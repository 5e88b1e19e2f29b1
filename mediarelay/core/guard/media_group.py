"""
Media group deduplication.

Albums arrive as several messages sharing one group id; the user should
be told only once to send files one at a time.
"""
import time
from typing import Callable, Hashable

from cachetools import TTLCache


class MediaGroupCache:
    """
    Time-bounded set of recently seen media group ids.

    Entries expire ttl seconds after being recorded. Expired entries are
    evicted on access, or explicitly with sweep().

    Example:
        >>> cache = MediaGroupCache(ttl=60)
        >>> cache.check_and_record("album-1")
        True
        >>> cache.check_and_record("album-1")
        False
    """

    def __init__(
        self,
        ttl: float = 60.0,
        maxsize: int = 1024,
        timer: Callable[[], float] = time.monotonic
    ):
        self._cache = TTLCache(maxsize=maxsize, ttl=ttl, timer=timer)

    def __len__(self) -> int:
        return len(self._cache)

    def seen(self, group_id: Hashable) -> bool:
        """True if group_id was recorded and has not expired."""
        return group_id in self._cache

    def record(self, group_id: Hashable) -> None:
        self._cache[group_id] = True

    def check_and_record(self, group_id: Hashable) -> bool:
        """Record group_id; True only the first time within the ttl."""
        if self.seen(group_id):
            return False
        self.record(group_id)
        return True

    def sweep(self) -> None:
        """Evict every expired entry now."""
        self._cache.expire()
