import threading
from contextlib import contextmanager
from datetime import date


class SlotLocks:
    """Process-wide locks keyed by (room_id, date).

    Held across conflict check, write and commit so that two requests for the
    same room and day cannot both pass the check.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks = {}

    def _lock_for(self, room_id: int, day: date) -> threading.Lock:
        with self._guard:
            return self._locks.setdefault((room_id, day), threading.Lock())

    @contextmanager
    def hold(self, room_id: int, day: date):
        lock = self._lock_for(room_id, day)
        with lock:
            yield


slot_locks = SlotLocks()
