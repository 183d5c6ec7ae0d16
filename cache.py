import time

CATALOG_KEY = "items_list"


class TTLCache:
    """In-memory key/value cache whose entries expire after ``ttl_seconds``.

    No size bound; entries only leave on expiry or ``clear()``. The clock is
    injectable so expiry can be driven from tests.
    """

    def __init__(self, ttl_seconds: float = 300, clock=time.monotonic):
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._entries = {}

    def get(self, key: str, default=None):
        entry = self._entries.get(key)
        if entry is None:
            return default
        value, stored_at = entry
        if self.clock() - stored_at < self.ttl_seconds:
            return value
        # Only evict the entry read above; a newer set() for the key stays
        if self._entries.get(key) is entry:
            self._entries.pop(key, None)
        return default

    def set(self, key: str, value) -> None:
        self._entries[key] = (value, self.clock())

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self):
        return len(self._entries)
