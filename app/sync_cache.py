"""
In-process TTL cache for purchased pack sync results
Avoids redundant remote reads; entries are advisory and never persisted.
"""

import time
import threading
import logging
from typing import Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


class SyncCacheEntry:
    """Most recent purchases and questions seen for one user"""

    def __init__(self, user_id: str, last_sync_timestamp: float, purchases: List[Dict], items: List[Dict]):
        self.user_id = user_id
        self.last_sync_timestamp = last_sync_timestamp
        self.purchases = purchases
        self.items = items

    @property
    def item_count(self) -> int:
        return len(self.items)

    @property
    def pack_ids(self) -> List[str]:
        return [p["pack_id"] for p in self.purchases]


class SyncCache:
    """Thread-safe per-user cache. An entry older than ttl_seconds is dropped on access."""

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.time):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, SyncCacheEntry] = {}
        self._lock = threading.Lock()
        self._stats = {"hits": 0, "misses": 0, "sets": 0, "expired": 0}

    def get(self, user_id: str) -> Optional[SyncCacheEntry]:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(user_id)
            if entry is None:
                self._stats["misses"] += 1
                return None
            age = now - entry.last_sync_timestamp
            if age < self.ttl_seconds:
                self._stats["hits"] += 1
                logger.debug(f"Sync cache HIT for {user_id} (age: {age:.1f}s)")
                return entry
            # Cache expired
            del self._entries[user_id]
            self._stats["expired"] += 1
            self._stats["misses"] += 1
            return None

    def put(self, user_id: str, purchases: List[Dict], items: List[Dict]) -> SyncCacheEntry:
        entry = SyncCacheEntry(user_id, self._clock(), list(purchases), list(items))
        with self._lock:
            self._entries[user_id] = entry
            self._stats["sets"] += 1
        return entry

    def invalidate(self, user_id: str) -> bool:
        with self._lock:
            return self._entries.pop(user_id, None) is not None

    def clear(self):
        with self._lock:
            self._entries.clear()
        logger.info("Sync cache cleared")

    def find_pack_items(self, pack_id: str) -> Optional[List[Dict]]:
        """Questions of a pack from any fresh entry that holds them"""
        now = self._clock()
        with self._lock:
            for entry in self._entries.values():
                if now - entry.last_sync_timestamp >= self.ttl_seconds:
                    continue
                items = [item for item in entry.items if item.get("pack_id") == pack_id]
                if items:
                    return items
        return None

    def stats(self) -> Dict:
        with self._lock:
            return {**self._stats, "size": len(self._entries)}

    def __len__(self):
        with self._lock:
            return len(self._entries)
