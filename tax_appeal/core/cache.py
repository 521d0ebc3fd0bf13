import threading
from typing import Generic, TypeVar

V = TypeVar("V")

class LookupCache(Generic[V]):
    """
    Process-lifetime exact-match cache for lookup results.

    No TTL and no eviction policy: entries stay until `evict`/`clear` or
    process exit. Stored values are immutable, so handing out the same
    instance to every caller is safe. The lock keeps reads and writes
    consistent when the owner is shared across threads; two concurrent
    misses for one key both write and the last writer wins.
    """
    def __init__(self):
        self._entries: dict[str, V] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> V | None:
        with self._lock:
            return self._entries.get(key)

    def set(self, key: str, value: V) -> None:
        with self._lock:
            self._entries[key] = value

    def evict(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> int:
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            return count

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
