"""In-process mutual exclusion keyed by record identifier."""

import threading
from collections.abc import Hashable, Iterator
from contextlib import contextmanager
from weakref import WeakValueDictionary


class _KeyLock:
    __slots__ = ("lock", "__weakref__")

    def __init__(self) -> None:
        self.lock = threading.Lock()


class KeyedLocks:
    """A registry handing out one lock per key.

    Entries are weakly held: a key's lock disappears once no thread holds or
    waits on it, so the registry does not grow with the number of records.
    Share one instance between every service that must serialize on the same
    keys.
    """

    def __init__(self, name: str = "keyed") -> None:
        self.name = name
        self._guard = threading.Lock()
        self._locks: WeakValueDictionary[Hashable, _KeyLock] = WeakValueDictionary()

    def _lock_for(self, key: Hashable) -> _KeyLock:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = _KeyLock()
                self._locks[key] = entry
            return entry

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        entry = self._lock_for(key)
        with entry.lock:
            yield

    def __len__(self) -> int:
        return len(self._locks)
