"""
Trial state management
Keeps a per-user trial record in a local JSON file and reconciles it with the
server copy in trials/{uid}. Timestamps are epoch milliseconds.
"""

import json
import os
import threading
import structlog
from enum import Enum
from typing import Callable, Dict, Optional

from constants import COLLECTION_TRIALS, TRIAL_STATE_FILE, TRIAL_LENGTH_DAYS, TRIAL_SYNC_INTERVAL_HOURS, BUILD_VERSION
from document_service import Document, DocumentService
from exceptions import RemoteServiceError, TrialStateException
from utils import now_ms, safe_write_json

logger = structlog.get_logger("trial")

MS_PER_HOUR = 60 * 60 * 1000
MS_PER_DAY = 24 * MS_PER_HOUR


class TrialState(str, Enum):
    NONE = "NONE"
    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"
    CONVERTED = "CONVERTED"
    SUSPENDED = "SUSPENDED"
    CANCELLED = "CANCELLED"


# Allowed moves between distinct states; anything may leave NONE
ALLOWED_TRANSITIONS = {
    TrialState.ACTIVE: {TrialState.EXPIRED, TrialState.CONVERTED, TrialState.SUSPENDED, TrialState.CANCELLED},
    TrialState.EXPIRED: {TrialState.CONVERTED},
    TrialState.SUSPENDED: {TrialState.ACTIVE, TrialState.CANCELLED},
    TrialState.CONVERTED: set(),
    TrialState.CANCELLED: set(),
}


def is_valid_transition(from_state: Optional[TrialState], to_state: TrialState) -> bool:
    if from_state is None or from_state == TrialState.NONE:
        return True
    if from_state == to_state:
        return True
    return to_state in ALLOWED_TRANSITIONS.get(from_state, set())


class TrialStateData:
    def __init__(self, state: TrialState = TrialState.NONE, trial_start: int = 0, trial_end: int = 0,
                 last_sync: int = 0, device_hash: str = "", server_verified: bool = False, metadata: Dict = None):
        self.state = TrialState(state)
        self.trial_start = int(trial_start or 0)
        self.trial_end = int(trial_end or 0)
        self.last_sync = int(last_sync or 0)
        self.device_hash = device_hash or ""
        self.server_verified = bool(server_verified)
        self.metadata = dict(metadata or {})

    @classmethod
    def none(cls, last_sync: int = 0) -> "TrialStateData":
        return cls(TrialState.NONE, last_sync=last_sync)

    def is_valid(self) -> bool:
        return self.trial_start > 0 and self.trial_end > self.trial_start

    def is_active(self, now: int = None) -> bool:
        now = now_ms() if now is None else now
        return self.state == TrialState.ACTIVE and now < self.trial_end

    def days_remaining(self, now: int = None) -> int:
        now = now_ms() if now is None else now
        if not self.is_active(now):
            return 0
        return (self.trial_end - now) // MS_PER_DAY

    def hours_remaining(self, now: int = None) -> int:
        now = now_ms() if now is None else now
        if not self.is_active(now):
            return 0
        return (self.trial_end - now) // MS_PER_HOUR

    def copy(self, **changes) -> "TrialStateData":
        data = self.to_dict()
        data.update(changes)
        return TrialStateData.from_dict(data)

    def to_dict(self) -> Dict:
        return {
            "state": self.state.value,
            "trial_start": self.trial_start,
            "trial_end": self.trial_end,
            "last_sync": self.last_sync,
            "device_hash": self.device_hash,
            "server_verified": self.server_verified,
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "TrialStateData":
        return cls(
            state=data.get("state", TrialState.NONE),
            trial_start=data.get("trial_start", 0),
            trial_end=data.get("trial_end", 0),
            last_sync=data.get("last_sync", 0),
            device_hash=data.get("device_hash", ""),
            server_verified=data.get("server_verified", False),
            metadata=data.get("metadata"),
        )

    @classmethod
    def from_document(cls, doc: Document, now: int) -> "TrialStateData":
        """Server copy; whatever the server holds counts as verified"""
        return cls(
            state=doc.get("state", default=TrialState.NONE.value),
            trial_start=doc.get("trial_start", default=0),
            trial_end=doc.get("trial_end", default=0),
            last_sync=doc.get("last_sync", default=now),
            device_hash=doc.get("device_hash", default=""),
            server_verified=True,
            metadata=doc.get("metadata", default={}),
        )

    def __eq__(self, other):
        return isinstance(other, TrialStateData) and self.to_dict() == other.to_dict()

    def __repr__(self):
        return f"TrialStateData(state={self.state.value}, trial_end={self.trial_end}, verified={self.server_verified})"


class TrialStateManager:
    """
    Local-first trial state with server reconciliation.

    A local record is trusted while it is valid, server-verified and synced
    within the last hour; otherwise the server copy is consulted.
    """

    def __init__(self, remote: DocumentService, state_file: str = TRIAL_STATE_FILE,
                 sync_interval_hours: float = TRIAL_SYNC_INTERVAL_HOURS, app_version: str = BUILD_VERSION,
                 trial_days: int = TRIAL_LENGTH_DAYS, clock: Callable[[], int] = now_ms):
        self.remote = remote
        self.state_file = state_file
        self.sync_interval_ms = int(sync_interval_hours * MS_PER_HOUR)
        self.trial_days = trial_days
        self.app_version = app_version
        self._clock = clock
        self._lock = threading.Lock()

    # Local persistence

    def _read_file(self) -> Dict:
        if not os.path.exists(self.state_file):
            return {}
        try:
            with open(self.state_file, "r") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Unreadable trial state file, ignoring it", path=self.state_file, error=str(e))
            return {}
        return data if isinstance(data, dict) else {}

    def get_local_state(self, user_id: str) -> Optional[TrialStateData]:
        with self._lock:
            record = self._read_file().get(user_id)
        if not record:
            return None
        try:
            return TrialStateData.from_dict(record)
        except (ValueError, TypeError) as e:
            logger.warning("Invalid local trial state", user_id=user_id, error=str(e))
            return None

    def store_local_state(self, user_id: str, state: TrialStateData):
        with self._lock:
            data = self._read_file()
            data[user_id] = state.to_dict()
            safe_write_json(self.state_file, data, indent=2)
        logger.debug("Trial state stored locally", user_id=user_id, state=state.state.value)

    # Server access

    def _remote_path(self, user_id: str) -> str:
        return f"{COLLECTION_TRIALS}/{user_id}"

    def _push_to_server(self, user_id: str, state: TrialStateData) -> TrialStateData:
        """Write the state to the server; returns it marked verified at the push time"""
        pushed_at = self._clock()
        self.remote.write_document(
            self._remote_path(user_id),
            {
                "state": state.state.value,
                "trial_start": state.trial_start,
                "trial_end": state.trial_end,
                "device_hash": state.device_hash,
                "last_sync": pushed_at,
                "app_version": self.app_version,
                "metadata": state.metadata,
            },
        )
        logger.info("Trial state synced to server", user_id=user_id, state=state.state.value)
        return state.copy(last_sync=pushed_at, server_verified=True)

    def _fetch_from_server(self, user_id: str) -> TrialStateData:
        try:
            doc = self.remote.read_document(self._remote_path(user_id))
        except RemoteServiceError as e:
            logger.error("Failed to fetch trial state from server", user_id=user_id, error=e.message)
            local = self.get_local_state(user_id)
            if local is not None:
                return local
            raise TrialStateException(f"Failed to fetch trial state: {e.message}")

        if doc is None:
            state = TrialStateData.none(last_sync=self._clock())
        else:
            state = TrialStateData.from_document(doc, self._clock())
        self.store_local_state(user_id, state)
        return state

    def _needs_sync(self, state: TrialStateData) -> bool:
        return (
            state.last_sync == 0
            or self._clock() - state.last_sync > self.sync_interval_ms
            or not state.server_verified
        )

    def _reconcile(self, user_id: str, local: TrialStateData, server: TrialStateData) -> TrialStateData:
        if server.last_sync > local.last_sync:
            metadata = dict(server.metadata)
            metadata.update(local.metadata)
            resolved = server.copy(metadata=metadata, server_verified=True)
            self.store_local_state(user_id, resolved)
            return resolved

        # Local copy is at least as recent
        try:
            resolved = self._push_to_server(user_id, local)
        except RemoteServiceError as e:
            logger.warning("Could not push newer local trial state", user_id=user_id, error=e.message)
            return local
        self.store_local_state(user_id, resolved)
        return resolved

    def _handle_missing_server_record(self, user_id: str, local: TrialStateData) -> TrialStateData:
        if local.server_verified and local.trial_start > 0:
            # Previously verified trial, e.g. on a new device
            try:
                resolved = self._push_to_server(user_id, local)
            except RemoteServiceError as e:
                raise TrialStateException(f"Failed to sync state: {e.message}")
            self.store_local_state(user_id, resolved)
            return resolved

        logger.warning("Unverified local trial without server record, resetting", user_id=user_id)
        reset = TrialStateData.none(last_sync=self._clock())
        self.store_local_state(user_id, reset)
        return reset

    def _sync_with_server(self, user_id: str, local: TrialStateData) -> TrialStateData:
        try:
            doc = self.remote.read_document(self._remote_path(user_id))
        except RemoteServiceError as e:
            logger.error("Failed to sync trial state with server", user_id=user_id, error=e.message)
            return local

        if doc is None:
            return self._handle_missing_server_record(user_id, local)
        return self._reconcile(user_id, local, TrialStateData.from_document(doc, self._clock()))

    # Public API

    def get_trial_state(self, user_id: str) -> TrialStateData:
        local = self.get_local_state(user_id)
        if local is None or not local.is_valid():
            return self._fetch_from_server(user_id)
        if self._needs_sync(local):
            return self._sync_with_server(user_id, local)
        return local

    def update_trial_state(self, user_id: str, new_state: TrialStateData) -> TrialStateData:
        """
        Store a new state locally, then on the server.

        Raises:
            TrialStateException: the transition is not allowed or the server write failed
        """
        current = self.get_local_state(user_id)
        if not is_valid_transition(current.state if current else None, new_state.state):
            raise TrialStateException(
                f"Invalid state transition {current.state.value} -> {new_state.state.value}"
            )

        logger.info("Updating trial state", user_id=user_id, state=new_state.state.value)
        self.store_local_state(user_id, new_state)
        try:
            pushed = self._push_to_server(user_id, new_state)
        except RemoteServiceError as e:
            raise TrialStateException(f"Failed to sync state: {e.message}")
        self.store_local_state(user_id, pushed)
        return pushed

    def start_trial(self, user_id: str, device_hash: str, days: Optional[int] = None) -> TrialStateData:
        now = self._clock()
        days = self.trial_days if days is None else days
        state = TrialStateData(
            TrialState.ACTIVE,
            trial_start=now,
            trial_end=now + days * MS_PER_DAY,
            last_sync=now,
            device_hash=device_hash,
            metadata={"terms_accepted": now},
        )
        return self.update_trial_state(user_id, state)

    def force_sync_with_server(self, user_id: str) -> TrialStateData:
        return self._fetch_from_server(user_id)
