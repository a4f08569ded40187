"""
Purchased pack synchronization
Local-first: a fresh cache entry answers first, then the local store, and only
then the remote document service. Remote pack downloads fan out over a thread
pool and are persisted on the calling thread once all of them finished.
"""

import time
import uuid
import threading
import structlog
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Dict, List, Optional

from auth import IdentityProvider
from constants import COLLECTION_USERS, COLLECTION_PURCHASED_PACKS, COLLECTION_SYNC_TESTS, SYNC_RATE_LIMIT_MINUTES, \
    SYNC_MAX_WORKERS
from content_sync import PackFetchResult, fetch_pack_content, purchase_from_document, store_pack_content
from db import to_dict
from document_service import DocumentService
from exceptions import ItemFetchFailed, NotAuthenticatedException, RemoteServiceError, SyncFailedException
from metrics import ACTIVE_SYNCS, sync_requests_total, sync_failures_total, sync_duration_seconds
from repositories.purchasedpack_repository import PurchasedPackRepository
from repositories.question_repository import QuestionRepository
from sync_cache import SyncCache
from utils import now_utc

logger = structlog.get_logger("sync")


class SyncResult:
    """What a sync call answered with and where the answer came from"""

    SOURCE_CACHE = "cache"
    SOURCE_LOCAL = "local"
    SOURCE_REMOTE = "remote"

    def __init__(self, user_id: str, item_count: int, source: str, pack_count: int = 0,
                 failed_items: List[ItemFetchFailed] = None):
        self.user_id = user_id
        self.item_count = item_count
        self.source = source
        self.pack_count = pack_count
        self.failed_items = failed_items or []

    def to_dict(self) -> Dict:
        return {
            "user_id": self.user_id,
            "item_count": self.item_count,
            "source": self.source,
            "pack_count": self.pack_count,
            "failed_items": [f.to_dict() for f in self.failed_items],
        }

    def __repr__(self):
        return f"SyncResult(user_id={self.user_id!r}, item_count={self.item_count}, source={self.source!r})"


class SyncManager:
    """
    Coordinates purchased pack sync for the current user.

    Must be called inside an application context: local store reads and
    writes go through the Flask-SQLAlchemy session of the calling thread.
    """

    def __init__(
        self,
        remote: DocumentService,
        identity: IdentityProvider = None,
        cache: SyncCache = None,
        rate_limit_minutes: float = None,
        max_workers: int = SYNC_MAX_WORKERS,
        clock: Callable[[], float] = None,
    ):
        """
        Args:
            cache: prebuilt cache; it carries its own TTL and clock, so
                rate_limit_minutes and clock must not be given with it
            rate_limit_minutes: cache TTL when no cache is given (default 30)
            clock: time source in seconds when no cache is given
        """
        if cache is not None and (rate_limit_minutes is not None or clock is not None):
            raise ValueError("rate_limit_minutes and clock apply only when no cache is given")

        self.remote = remote
        self.identity = identity
        self.max_workers = max(1, int(max_workers))
        if cache is None:
            minutes = SYNC_RATE_LIMIT_MINUTES if rate_limit_minutes is None else rate_limit_minutes
            cache = SyncCache(ttl_seconds=minutes * 60, clock=clock or time.time)
        self.cache = cache
        self._user_locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _resolve_user(self, user_id: Optional[str]) -> str:
        if user_id:
            return user_id
        user_id = self.identity.current_user_id() if self.identity else None
        if not user_id:
            raise NotAuthenticatedException()
        return user_id

    def _user_lock(self, user_id: str) -> threading.Lock:
        with self._locks_guard:
            return self._user_locks.setdefault(user_id, threading.Lock())

    def sync_purchased_packs(self, user_id: str = None) -> SyncResult:
        """
        Make the user's purchased questions available locally.

        Returns:
            SyncResult whose item_count is the number of questions available
            (cache, local) or successfully fetched (remote)

        Raises:
            NotAuthenticatedException: no user id given and none signed in
            SyncFailedException: listing remote purchases failed
            StoreWriteFailedException: persisting fetched records failed
        """
        user_id = self._resolve_user(user_id)

        # Overlapping calls for one user wait here, then hit the fresh cache entry
        with self._user_lock(user_id):
            entry = self.cache.get(user_id)
            if entry is not None:
                logger.debug("Using cached sync result", user_id=user_id, items=entry.item_count)
                sync_requests_total.labels(source=SyncResult.SOURCE_CACHE).inc()
                return SyncResult(user_id, entry.item_count, SyncResult.SOURCE_CACHE, len(entry.purchases))

            local = self._load_from_local(user_id)
            if local is not None:
                return local

            return self._fetch_from_remote(user_id)

    def force_refresh(self, user_id: str = None) -> SyncResult:
        """Drop the user's cache entry and always go to the remote service"""
        user_id = self._resolve_user(user_id)
        with self._user_lock(user_id):
            self.cache.invalidate(user_id)
            logger.info("Forcing remote sync", user_id=user_id)
            return self._fetch_from_remote(user_id)

    def clear_cache(self):
        """Forget every cached sync result (logout) and the locks of idle users"""
        self.cache.clear()
        with self._locks_guard:
            for user_id in [u for u, lock in self._user_locks.items() if not lock.locked()]:
                del self._user_locks[user_id]

    def _load_from_local(self, user_id: str) -> Optional[SyncResult]:
        if not PurchasedPackRepository.has_any(user_id):
            return None

        purchases = [to_dict(p) for p in PurchasedPackRepository.get_by_user(user_id)]
        items = [to_dict(q) for q in QuestionRepository.get_by_pack_ids([p["pack_id"] for p in purchases])]
        self.cache.put(user_id, purchases, items)

        logger.info("Loaded purchased packs from local store", user_id=user_id, packs=len(purchases), items=len(items))
        sync_requests_total.labels(source=SyncResult.SOURCE_LOCAL).inc()
        return SyncResult(user_id, len(items), SyncResult.SOURCE_LOCAL, len(purchases))

    def _list_remote_purchases(self, user_id: str) -> List[Dict]:
        path = f"{COLLECTION_USERS}/{user_id}/{COLLECTION_PURCHASED_PACKS}"
        try:
            documents = self.remote.read_collection(path)
        except RemoteServiceError as e:
            sync_failures_total.labels(reason="list_purchases").inc()
            raise SyncFailedException(e.message)
        return [purchase_from_document(doc) for doc in documents]

    def _fetch_packs(self, pack_ids: List[str]) -> List[PackFetchResult]:
        """Fetch every pack concurrently; returns once all of them finished"""
        if not pack_ids:
            return []

        results = []
        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(pack_ids))) as executor:
            futures = {executor.submit(fetch_pack_content, self.remote, pack_id): pack_id for pack_id in pack_ids}
            for future in as_completed(futures):
                pack_id = futures[future]
                try:
                    results.append(future.result())
                except Exception as e:
                    logger.error("Pack fetch crashed", pack_id=pack_id, error=str(e))
                    results.append(PackFetchResult(pack_id, failures=[ItemFetchFailed(pack_id, str(e), pack_id)]))
        return results

    def _fetch_from_remote(self, user_id: str) -> SyncResult:
        logger.info("Syncing purchased packs from remote", user_id=user_id)
        ACTIVE_SYNCS.inc()
        try:
            with sync_duration_seconds.labels(operation="purchased_packs").time():
                purchases = self._list_remote_purchases(user_id)
                PurchasedPackRepository.upsert_all(user_id, purchases)

                pack_ids = list(dict.fromkeys(p["pack_id"] for p in purchases))
                results = self._fetch_packs(pack_ids)

                items = []
                failures = []
                for result in results:
                    store_pack_content(result, user_id=user_id)
                    items.extend(result.items)
                    failures.extend(result.failures)
        finally:
            ACTIVE_SYNCS.dec()

        # Cache what the store now holds, not just this run's downloads
        stored = [to_dict(q) for q in QuestionRepository.get_by_pack_ids(pack_ids)]
        self.cache.put(user_id, purchases, stored)
        sync_requests_total.labels(source=SyncResult.SOURCE_REMOTE).inc()

        if failures:
            logger.warning(
                "Sync finished with failed items",
                user_id=user_id,
                fetched=len(items),
                failed=[f.item_id for f in failures],
            )
        else:
            logger.info("Sync finished", user_id=user_id, packs=len(pack_ids), fetched=len(items))
        return SyncResult(user_id, len(items), SyncResult.SOURCE_REMOTE, len(pack_ids), failures)

    def get_questions_for_pack(self, pack_id: str) -> List[Dict]:
        """Questions of a pack from the cache, else the local store; empty if unknown"""
        cached = self.cache.find_pack_items(pack_id)
        if cached is not None:
            return cached
        return [to_dict(q) for q in QuestionRepository.get_by_pack_id(pack_id)]

    def is_pack_purchased(self, user_id: str, pack_id: str) -> bool:
        return PurchasedPackRepository.is_pack_purchased(user_id, pack_id)

    def test_connection(self) -> bool:
        """Write a probe document to check the remote service is reachable and writable"""
        probe_id = str(uuid.uuid4())
        user_id = self.identity.current_user_id() if self.identity else None
        try:
            self.remote.write_document(
                f"{COLLECTION_SYNC_TESTS}/{probe_id}",
                {"timestamp": now_utc(), "user_id": user_id, "probe": True},
            )
        except RemoteServiceError as e:
            logger.error("Remote connection test failed", error=e.message)
            return False
        logger.info("Remote connection test succeeded", probe_id=probe_id)
        return True
