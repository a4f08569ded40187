"""
Marketplace service
Records purchases and reads the published pack catalog.
"""

import structlog
from typing import Callable, Dict, List, Optional

from auth import IdentityProvider
from constants import COLLECTION_USERS, COLLECTION_PURCHASED_PACKS, COLLECTION_QUESTION_PACKS
from content_sync import pack_from_document
from document_service import DocumentService
from exceptions import NotAuthenticatedException, RemoteServiceError, SyncFailedException
from repositories.purchasedpack_repository import PurchasedPackRepository
from repositories.questionpack_repository import QuestionPackRepository
from utils import now_utc, sanitize_sensitive_data

logger = structlog.get_logger("marketplace")


def enqueue_pack_sync(pack_id: str):
    """Queue the background content sync job for a pack"""
    from tasks import sync_pack_content

    return sync_pack_content.delay(pack_id)


class MarketplaceService:
    def __init__(self, remote: DocumentService, identity: IdentityProvider,
                 enqueue: Callable[[str], object] = None):
        self.remote = remote
        self.identity = identity
        self.enqueue = enqueue or enqueue_pack_sync

    def _resolve_user(self, user_id: Optional[str]) -> str:
        user_id = user_id or self.identity.current_user_id()
        if not user_id:
            raise NotAuthenticatedException()
        return user_id

    def record_purchase(self, pack_id: str, transaction_id: str, user_id: str = None) -> bool:
        """
        Record a completed purchase remotely and locally, then queue the
        pack's content download. Returns True once the purchase is accepted;
        content arrives later.

        Raises:
            NotAuthenticatedException: nobody is signed in
            SyncFailedException: a remote write failed
            StoreWriteFailedException: the local write failed
        """
        user_id = self._resolve_user(user_id)
        purchased_at = now_utc()

        try:
            self.remote.write_document(
                f"{COLLECTION_USERS}/{user_id}",
                {"uid": user_id, "lastPurchaseAt": purchased_at},
            )
            self.remote.write_document(
                f"{COLLECTION_USERS}/{user_id}/{COLLECTION_PURCHASED_PACKS}/{pack_id}",
                {
                    "packId": pack_id,
                    "transactionId": transaction_id,
                    "purchasedAt": purchased_at,
                    "synced": False,
                },
            )
        except RemoteServiceError as e:
            raise SyncFailedException(e.message)

        PurchasedPackRepository.upsert(
            user_id, pack_id, transaction_id=transaction_id, purchased_at=purchased_at, synced=False
        )
        logger.info(
            "Purchase recorded",
            **sanitize_sensitive_data({"user_id": user_id, "pack_id": pack_id, "transaction_id": transaction_id}),
        )

        self.enqueue(pack_id)
        return True

    def is_pack_purchased(self, pack_id: str, user_id: str = None) -> bool:
        user_id = self._resolve_user(user_id)
        return PurchasedPackRepository.is_pack_purchased(user_id, pack_id)

    def get_available_packs(self) -> List[Dict]:
        """Published packs from the remote catalog; their manifests are kept locally"""
        try:
            documents = self.remote.read_collection(COLLECTION_QUESTION_PACKS, filters={"isPublished": True})
        except RemoteServiceError as e:
            raise SyncFailedException(e.message)

        packs = [pack_from_document(doc) for doc in documents]
        for pack in packs:
            QuestionPackRepository.upsert(pack)
        logger.debug("Fetched available packs", count=len(packs))
        return packs
