"""
Per-phone-number mutual exclusion for conversation updates.
"""
import threading
from contextlib import contextmanager
from typing import Dict, Generator, List


class PhoneLockRegistry:
    """
    Hands out one lock per phone number.

    Every read-modify-write of a conversation (inbound messages and payment
    continuations alike) runs while holding that number's lock. Entries are
    reference counted and dropped once nobody holds or waits on them.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[str, List] = {}

    @contextmanager
    def hold(self, phone_number: str) -> Generator[None, None, None]:
        """
        Hold the lock for ``phone_number`` for the duration of the block.

        Not re-entrant: do not nest ``hold`` for the same number.
        """
        with self._guard:
            entry = self._locks.get(phone_number)
            if entry is None:
                entry = [threading.Lock(), 0]
                self._locks[phone_number] = entry
            entry[1] += 1

        lock = entry[0]
        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[phone_number]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
