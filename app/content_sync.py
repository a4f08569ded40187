"""
Pack content download
Reads a pack manifest and its questions from the remote document service and
stores them locally. Shared by the sync coordinator (batch path) and the
background job queued after a purchase.
"""

import structlog
from typing import Dict, List, Optional

from constants import COLLECTION_QUESTION_PACKS, COLLECTION_QUESTIONS
from document_service import Document, DocumentService
from exceptions import ItemFetchFailed, RemoteServiceError
from metrics import sync_items_fetched_total, sync_item_failures_total, pack_jobs_total
from utils import ensure_utc

logger = structlog.get_logger("sync")


def purchase_from_document(doc: Document) -> Dict:
    """Purchase record dict; the document id is the pack id"""
    return {
        "pack_id": doc.get("packId", "pack_id", default=doc.id),
        "transaction_id": doc.get("transactionId", "transaction_id"),
        "purchased_at": ensure_utc(doc.get("purchasedAt", "purchased_at")),
    }


def _drop_missing_created_at(data: Dict) -> Dict:
    if data.get("created_at") is None:
        data.pop("created_at", None)
    return data


def pack_from_document(doc: Document) -> Dict:
    return _drop_missing_created_at({
        "id": doc.id,
        "title": doc.get("title"),
        "description": doc.get("description"),
        "subject": doc.get("subject"),
        "grade": doc.get("grade"),
        "term": doc.get("term"),
        "total_marks": doc.get("totalMarks", "total_marks", default=0),
        "question_count": doc.get("questionCount", "question_count", default=0),
        "question_ids": list(doc.get("questionIds", "question_ids", default=[])),
        "price_cents": doc.get("priceCents", "price_cents", default=0),
        "caps_strand": doc.get("capsStrand", "caps_strand"),
        "version": doc.get("version", default=1),
        "is_published": bool(doc.get("isPublished", "is_published", "published", default=False)),
        "created_at": ensure_utc(doc.get("createdAt", "created_at")),
    })


def question_from_document(doc: Document, pack_id: str) -> Dict:
    return _drop_missing_created_at({
        "id": doc.id,
        "subject": doc.get("subject"),
        "grade": doc.get("grade"),
        "topic": doc.get("topic"),
        "caps_topic_id": doc.get("capsTopicId", "caps_topic_id"),
        "question_type": doc.get("type", "questionType", "question_type"),
        "cognitive_level": doc.get("cognitiveLevel", "cognitive_level"),
        "marks": doc.get("marks", default=0),
        "difficulty": doc.get("difficulty"),
        "question_text": doc.get("questionText", "question_text"),
        "content": doc.get("content"),
        "tags": list(doc.get("tags", default=[])),
        "image_path": doc.get("imagePath", "image_path"),
        "pack_id": pack_id,
        "version": doc.get("version", default=1),
        "is_from_marketplace": True,
        "created_at": ensure_utc(doc.get("createdAt", "created_at")),
    })


class PackFetchResult:
    """Outcome of fetching one pack: its manifest, the questions that arrived and what failed"""

    def __init__(self, pack_id: str, manifest: Optional[Dict] = None, items: List[Dict] = None,
                 failures: List[ItemFetchFailed] = None):
        self.pack_id = pack_id
        self.manifest = manifest
        self.items = items or []
        self.failures = failures or []

    @property
    def complete(self) -> bool:
        """Every question listed in the manifest arrived"""
        return self.manifest is not None and not self.failures


def fetch_pack_content(remote: DocumentService, pack_id: str) -> PackFetchResult:
    """
    Read the manifest of a pack, then each of its questions independently.
    Failures are recorded per item and never raised.
    """
    try:
        manifest_doc = remote.read_document(f"{COLLECTION_QUESTION_PACKS}/{pack_id}")
    except RemoteServiceError as e:
        logger.error("Failed to fetch pack manifest", pack_id=pack_id, error=e.message)
        sync_item_failures_total.inc()
        return PackFetchResult(pack_id, failures=[ItemFetchFailed(pack_id, e.message, pack_id=pack_id)])

    if manifest_doc is None:
        logger.warning("Pack manifest not found", pack_id=pack_id)
        sync_item_failures_total.inc()
        return PackFetchResult(pack_id, failures=[ItemFetchFailed(pack_id, "manifest not found", pack_id=pack_id)])

    manifest = pack_from_document(manifest_doc)
    result = PackFetchResult(pack_id, manifest=manifest)

    for question_id in manifest["question_ids"]:
        try:
            doc = remote.read_document(f"{COLLECTION_QUESTIONS}/{question_id}")
        except RemoteServiceError as e:
            logger.error("Failed to download question", question_id=question_id, pack_id=pack_id, error=e.message)
            result.failures.append(ItemFetchFailed(question_id, e.message, pack_id=pack_id))
            continue
        if doc is None:
            logger.warning("Question not found", question_id=question_id, pack_id=pack_id)
            result.failures.append(ItemFetchFailed(question_id, "not found", pack_id=pack_id))
            continue
        result.items.append(question_from_document(doc, pack_id))

    sync_items_fetched_total.inc(len(result.items))
    if result.failures:
        sync_item_failures_total.inc(len(result.failures))
    logger.debug(
        "Pack fetch completed",
        pack_id=pack_id,
        fetched=len(result.items),
        failed=len(result.failures),
    )
    return result


def store_pack_content(result: PackFetchResult, user_id: str = None) -> bool:
    """
    Persist a fetched pack. The purchase flips to synced only when every
    question arrived; a partial download stays unsynced.

    Returns:
        True if the pack was marked synced
    """
    from repositories.purchasedpack_repository import PurchasedPackRepository
    from repositories.question_repository import QuestionRepository
    from repositories.questionpack_repository import QuestionPackRepository

    if result.manifest is not None:
        QuestionPackRepository.upsert(result.manifest)
    if result.items:
        QuestionRepository.upsert_all(result.items)
    if result.complete:
        PurchasedPackRepository.mark_synced(result.pack_id, user_id=user_id)
        return True
    return False


def sync_pack(remote: DocumentService, pack_id: str) -> Dict:
    """
    Background content sync for one purchased pack. No retry on failure:
    the pack stays unsynced until a later sync succeeds.
    """
    logger.info("Starting sync for pack", pack_id=pack_id)
    result = fetch_pack_content(remote, pack_id)
    synced = store_pack_content(result)

    if synced:
        pack_jobs_total.labels(status="synced").inc()
        logger.info("Sync complete for pack", pack_id=pack_id, questions=len(result.items))
    else:
        pack_jobs_total.labels(status="partial").inc()
        logger.warning(
            "Pack left unsynced",
            pack_id=pack_id,
            fetched=len(result.items),
            failed=[f.item_id for f in result.failures],
        )

    return {
        "pack_id": pack_id,
        "fetched": len(result.items),
        "failed": [f.to_dict() for f in result.failures],
        "synced": synced,
    }
