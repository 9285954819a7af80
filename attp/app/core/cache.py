"""
Cache truy vấn trong bộ nhớ.

Key là tuple (tên truy vấn, tham số...). Sau mỗi lần ghi, service gọi
`invalidate(DASHBOARD_KEY)` để xoá mọi key bắt đầu bằng prefix đó.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Hashable

logger = logging.getLogger(__name__)

DASHBOARD_KEY = ("dashboard-stats",)
FACILITY_TYPES_KEY = ("facility_types",)


class QueryCache:
    def __init__(self) -> None:
        self._data: dict[tuple[Hashable, ...], Any] = {}
        self._lock = threading.Lock()

    def get_or_compute(self, key: tuple[Hashable, ...], compute: Callable[[], Any]) -> Any:
        with self._lock:
            if key in self._data:
                return self._data[key]
        value = compute()
        with self._lock:
            self._data[key] = value
        return value

    def invalidate(self, prefix: tuple[Hashable, ...]) -> int:
        """Xoá các key có prefix cho trước; trả về số key bị xoá."""
        n = len(prefix)
        with self._lock:
            stale = [k for k in self._data if k[:n] == prefix]
            for k in stale:
                del self._data[k]
        if stale:
            logger.debug("Invalidated %d cache entries for %s", len(stale), prefix)
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()


query_cache = QueryCache()


def invalidate_facility_data() -> None:
    """Gọi sau mọi thay đổi trên facilities / inspections."""
    query_cache.invalidate(DASHBOARD_KEY)
