import threading


class OneShotLatch:
    """A flag that can be set exactly once. `fire()` reports who won."""

    def __init__(self):
        self._lock = threading.Lock()
        self._fired = False

    @property
    def fired(self) -> bool:
        return self._fired

    def fire(self) -> bool:
        with self._lock:
            if self._fired:
                return False
            self._fired = True
            return True
