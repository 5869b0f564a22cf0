import threading
from contextlib import contextmanager
from typing import Dict


class _Entry:
    __slots__ = ('lock', 'holders')

    def __init__(self):
        self.lock = threading.RLock()
        self.holders = 0


class GameLocks:
    """One re-entrant lock per game code.

    Mutations of the same game (a late submit racing the host's close) run
    one at a time; different games never wait on each other. A code's lock
    is dropped once nobody holds or waits on it, so the registry only grows
    with concurrent games.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[str, _Entry] = {}

    @contextmanager
    def hold(self, game_code: str):
        with self._guard:
            entry = self._locks.get(game_code)
            if entry is None:
                entry = self._locks[game_code] = _Entry()
            entry.holders += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._guard:
                entry.holders -= 1
                if entry.holders == 0:
                    self._locks.pop(game_code, None)


game_locks = GameLocks()
