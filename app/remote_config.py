"""
Remote configuration / feature flags
Active values start from the built-in defaults (overridable in settings.yaml)
and are replaced by the app_config/flags document when fetched.
"""

import time
import threading
import logging
from typing import Any, Callable, Dict

from constants import DEFAULT_REMOTE_CONFIG, REMOTE_CONFIG_DOCUMENT, REMOTE_CONFIG_MIN_FETCH_INTERVAL
from document_service import DocumentService
from exceptions import RemoteServiceError

# Retrieve main logger
logger = logging.getLogger("main")


def _as_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


class RemoteConfigManager:
    def __init__(self, remote: DocumentService, defaults: Dict[str, Any] = None,
                 min_fetch_interval: float = REMOTE_CONFIG_MIN_FETCH_INTERVAL, clock: Callable[[], float] = time.time):
        self.remote = remote
        self.min_fetch_interval = min_fetch_interval
        self._clock = clock
        self._defaults = dict(DEFAULT_REMOTE_CONFIG)
        self._defaults.update(defaults or {})
        self._active = dict(self._defaults)
        self._last_fetch = None
        self._lock = threading.Lock()

    def fetch_and_activate(self, force: bool = False) -> bool:
        """
        Fetch the flags document and activate it.

        Returns:
            True if new values were activated. Throttled or failed fetches
            return False and leave the active values untouched.
        """
        now = self._clock()
        if not force and self._last_fetch is not None and now - self._last_fetch < self.min_fetch_interval:
            logger.debug("Remote config fetch throttled")
            return False

        try:
            doc = self.remote.read_document(REMOTE_CONFIG_DOCUMENT)
        except RemoteServiceError as e:
            logger.error(f"Remote config fetch failed: {e.message}")
            return False

        values = dict(self._defaults)
        if doc is not None:
            values.update({k: v for k, v in doc.data.items() if v is not None})

        with self._lock:
            updated = values != self._active
            self._active = values
            self._last_fetch = now
        logger.info(f"Remote config params updated: {updated}")
        return updated

    def get_all(self) -> Dict[str, Any]:
        with self._lock:
            return dict(self._active)

    def _get(self, key):
        with self._lock:
            return self._active.get(key, self._defaults.get(key))

    def is_marketplace_enabled(self) -> bool:
        return _as_bool(self._get("marketplace_enabled"))

    def is_maintenance_mode(self) -> bool:
        return _as_bool(self._get("maintenance_mode"))

    def get_max_local_papers(self) -> int:
        try:
            return int(self._get("max_local_papers"))
        except (TypeError, ValueError):
            return int(self._defaults["max_local_papers"])

    def is_caps_validation_strict(self) -> bool:
        return _as_bool(self._get("caps_validation_strict"))
