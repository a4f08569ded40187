"""
Tests for pack content download and the background pack sync job
"""
from datetime import datetime, timezone

from conftest import seed_pack
from document_service import Document


class TestDocumentMapping:
    """Remote documents mix camelCase and snake_case field names"""

    def test_purchase_from_camel_case(self):
        from content_sync import purchase_from_document

        doc = Document('p1', 'users/u1/purchased_packs/p1', {
            'packId': 'p1', 'transactionId': 't-9', 'purchasedAt': 1_700_000_000_000,
        })
        purchase = purchase_from_document(doc)

        assert purchase['pack_id'] == 'p1'
        assert purchase['transaction_id'] == 't-9'
        assert purchase['purchased_at'] == datetime.fromtimestamp(1_700_000_000, tz=timezone.utc)
        assert 'synced' not in purchase

    def test_purchase_pack_id_defaults_to_document_id(self):
        from content_sync import purchase_from_document

        doc = Document('p7', 'users/u1/purchased_packs/p7', {'transaction_id': 't'})
        assert purchase_from_document(doc)['pack_id'] == 'p7'

    def test_question_from_snake_case(self):
        from content_sync import question_from_document

        doc = Document('q1', 'questions/q1', {
            'question_type': 'TRUE_FALSE', 'cognitive_level': 'APPLICATION', 'marks': 3, 'question_text': 'True?',
        })
        question = question_from_document(doc, 'p1')

        assert question['id'] == 'q1'
        assert question['pack_id'] == 'p1'
        assert question['question_type'] == 'TRUE_FALSE'
        assert question['cognitive_level'] == 'APPLICATION'
        assert question['is_from_marketplace'] is True
        assert 'created_at' not in question

    def test_pack_manifest(self):
        from content_sync import pack_from_document

        doc = Document('p1', 'question_packs/p1', {
            'title': 'Algebra', 'questionIds': ['a', 'b'], 'priceCents': 2500, 'isPublished': True,
            'createdAt': '2026-01-01T00:00:00Z',
        })
        pack = pack_from_document(doc)

        assert pack['question_ids'] == ['a', 'b']
        assert pack['price_cents'] == 2500
        assert pack['is_published'] is True
        assert pack['created_at'] == datetime(2026, 1, 1, tzinfo=timezone.utc)


class TestFetchPackContent:
    def test_complete_pack(self, remote):
        from content_sync import fetch_pack_content

        seed_pack(remote, 'p1', 3)
        result = fetch_pack_content(remote, 'p1')

        assert result.complete is True
        assert [q['id'] for q in result.items] == ['p1-q1', 'p1-q2', 'p1-q3']
        assert result.failures == []

    def test_missing_manifest(self, remote):
        from content_sync import fetch_pack_content

        result = fetch_pack_content(remote, 'ghost')

        assert result.complete is False
        assert result.manifest is None
        assert result.failures[0].item_id == 'ghost'

    def test_item_failures_do_not_stop_the_pack(self, remote):
        from content_sync import fetch_pack_content

        seed_pack(remote, 'p1', 4)
        remote.failing.add('questions/p1-q2')

        result = fetch_pack_content(remote, 'p1')

        assert len(result.items) == 3
        assert [f.item_id for f in result.failures] == ['p1-q2']
        assert result.complete is False


class TestSyncPackJob:
    """Background content sync after a purchase"""

    def test_marks_all_purchases_synced(self, app, remote):
        from content_sync import sync_pack
        from repositories.purchasedpack_repository import PurchasedPackRepository
        from repositories.question_repository import QuestionRepository
        from repositories.questionpack_repository import QuestionPackRepository

        seed_pack(remote, 'p1', 3)
        PurchasedPackRepository.upsert('u1', 'p1', transaction_id='t1')
        PurchasedPackRepository.upsert('u2', 'p1', transaction_id='t2')

        summary = sync_pack(remote, 'p1')

        assert summary == {'pack_id': 'p1', 'fetched': 3, 'failed': [], 'synced': True}
        assert QuestionRepository.count(pack_id='p1') == 3
        assert QuestionPackRepository.get_by_id('p1').question_count == 3
        assert PurchasedPackRepository.get('u1', 'p1').synced is True
        assert PurchasedPackRepository.get('u2', 'p1').synced is True

    def test_partial_download_stays_unsynced(self, app, remote):
        from content_sync import sync_pack
        from repositories.purchasedpack_repository import PurchasedPackRepository
        from repositories.question_repository import QuestionRepository

        seed_pack(remote, 'p1', 3)
        remote.failing.add('questions/p1-q3')
        PurchasedPackRepository.upsert('u1', 'p1')

        summary = sync_pack(remote, 'p1')

        assert summary['synced'] is False
        assert summary['fetched'] == 2
        assert summary['failed'][0]['item_id'] == 'p1-q3'
        assert QuestionRepository.count(pack_id='p1') == 2
        assert PurchasedPackRepository.get('u1', 'p1').synced is False

    def test_no_retry(self, app, remote):
        from content_sync import sync_pack

        seed_pack(remote, 'p1', 2)
        remote.failing.add('questions/p1-q1')

        sync_pack(remote, 'p1')

        assert remote.calls.count(('read', 'questions/p1-q1')) == 1

    def test_unreadable_manifest(self, app, remote):
        from content_sync import sync_pack
        from repositories.purchasedpack_repository import PurchasedPackRepository

        PurchasedPackRepository.upsert('u1', 'p1')
        remote.failing.add('question_packs/p1')

        summary = sync_pack(remote, 'p1')

        assert summary['synced'] is False
        assert summary['fetched'] == 0
        assert PurchasedPackRepository.get('u1', 'p1').synced is False

    def test_synced_stays_true_after_new_purchase_write(self, app, remote):
        from content_sync import sync_pack
        from repositories.purchasedpack_repository import PurchasedPackRepository

        seed_pack(remote, 'p1', 1)
        PurchasedPackRepository.upsert('u1', 'p1')
        sync_pack(remote, 'p1')

        PurchasedPackRepository.upsert('u1', 'p1', transaction_id='again', synced=False)
        assert PurchasedPackRepository.get('u1', 'p1').synced is True
