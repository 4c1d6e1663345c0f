"""Per-key in-process locks.

Request handlers run in FastAPI's threadpool; these locks serialize the
critical sections that must not interleave within one process:
reserve-if-free per facility, and materialization per recurring rule.
Reminder delivery takes one lock per reminder.
Cross-process serialization is the database's job (SELECT ... FOR UPDATE).
"""
import threading
from contextlib import contextmanager
from typing import Iterator


class KeyedLock:
    """One threading.Lock per key, dropped once no thread holds or waits on it."""

    def __init__(self):
        self._guard = threading.Lock()
        # key -> [lock, number of threads holding or waiting]
        self._locks: dict[str, list] = {}

    def _acquire_entry(self, key: str) -> threading.Lock:
        with self._guard:
            entry = self._locks.setdefault(key, [threading.Lock(), 0])
            entry[1] += 1
            return entry[0]

    def _release_entry(self, key: str) -> None:
        with self._guard:
            entry = self._locks[key]
            entry[1] -= 1
            if entry[1] == 0:
                del self._locks[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        lock = self._acquire_entry(key)
        try:
            with lock:
                yield
        finally:
            self._release_entry(key)


facility_locks = KeyedLock()
rule_locks = KeyedLock()
reminder_locks = KeyedLock()
