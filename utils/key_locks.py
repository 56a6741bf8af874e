import threading
from contextlib import contextmanager
from typing import Dict, Hashable, List


class KeyedLock:
    """
    Mutual exclusion scoped to a key (a plate, a spot id, a sector/date pair).
    Locks are created on first use and dropped once no thread holds or waits on them.
    """

    def __init__(self, name: str):
        self.name = name
        self._registry_lock = threading.Lock()
        self._locks: Dict[Hashable, threading.Lock] = {}
        self._waiters: Dict[Hashable, int] = {}

    @contextmanager
    def hold(self, key: Hashable):
        with self._registry_lock:
            lock = self._locks.setdefault(key, threading.Lock())
            self._waiters[key] = self._waiters.get(key, 0) + 1
        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with self._registry_lock:
                self._waiters[key] -= 1
                if self._waiters[key] == 0:
                    del self._waiters[key]
                    del self._locks[key]

    def active_keys(self) -> List[Hashable]:
        with self._registry_lock:
            return list(self._locks.keys())
