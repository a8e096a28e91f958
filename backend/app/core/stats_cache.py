"""
管理后台统计缓存（进程内，固定TTL）
"""

import time
from typing import Any, Callable, Optional

from loguru import logger

from app.core.config import settings


class StatsCache:
    """key -> (timestamp, data)；过期条目在读取时淘汰"""

    def __init__(self, ttl: Optional[int] = None, clock: Callable[[], float] = time.time):
        self.ttl = ttl if ttl is not None else settings.STATS_CACHE_TTL
        self._clock = clock
        self._entries: dict = {}

    def get(self, key: str) -> Any:
        entry = self._entries.get(key)
        if entry is None:
            return None
        timestamp, data = entry
        if self._clock() - timestamp >= self.ttl:
            del self._entries[key]
            return None
        logger.debug(f"📦 统计缓存命中: {key}")
        return data

    def set(self, key: str, data: Any) -> None:
        self._entries[key] = (self._clock(), data)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


stats_cache = StatsCache()
