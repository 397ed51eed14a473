"""Run-scoped parse cache.

Keyed by (resolved path, modification time) so an edited file is never served
stale. Bounded LRU; safe to share between worker threads of one run.
"""

import threading
from collections import OrderedDict
from pathlib import Path
from typing import Any, Callable, Hashable, Optional, Tuple


CacheKey = Tuple[str, int]


class ParseCache:
    """Least-recently-used cache of parsed files."""

    def __init__(self, max_entries: int = 1024):
        self.max_entries = max_entries
        self._entries: "OrderedDict[CacheKey, Any]" = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    @staticmethod
    def key_for(path: Path) -> CacheKey:
        """Build the cache key; raises OSError when the file cannot be stat'ed."""
        resolved = Path(path).resolve()
        return (str(resolved), resolved.stat().st_mtime_ns)

    def get(self, key: Hashable) -> Optional[Any]:
        with self._lock:
            if key not in self._entries:
                self.misses += 1
                return None
            self._entries.move_to_end(key)
            self.hits += 1
            return self._entries[key]

    def put(self, key: Hashable, value: Any) -> None:
        with self._lock:
            self._entries[key] = value
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def get_or_parse(self, path: Path, parse: Callable[[Path], Any]) -> Any:
        """Return the cached parse of path, parsing it on a miss.

        Two threads missing on the same key may both parse; the results are
        equivalent and the later one wins.
        """
        key = self.key_for(path)
        cached = self.get(key)
        if cached is not None:
            return cached
        value = parse(Path(path))
        self.put(key, value)
        return value

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
