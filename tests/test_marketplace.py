"""
Tests for purchase recording and the pack catalog
"""
import pytest

from auth import StaticIdentityProvider
from conftest import seed_pack
from exceptions import NotAuthenticatedException, SyncFailedException, StoreWriteFailedException


@pytest.fixture
def marketplace(app, remote, enqueue):
    from marketplace_service import MarketplaceService
    return MarketplaceService(remote, StaticIdentityProvider('u1'), enqueue=enqueue)


class TestRecordPurchase:
    def test_records_remote_local_and_queues_job(self, marketplace, remote, enqueue):
        from repositories.purchasedpack_repository import PurchasedPackRepository

        assert marketplace.record_purchase('p1', 'txn-1') is True

        assert remote.documents['users/u1']['uid'] == 'u1'
        remote_purchase = remote.documents['users/u1/purchased_packs/p1']
        assert remote_purchase['packId'] == 'p1'
        assert remote_purchase['transactionId'] == 'txn-1'
        assert remote_purchase['synced'] is False

        local = PurchasedPackRepository.get('u1', 'p1')
        assert local.transaction_id == 'txn-1'
        assert local.synced is False
        enqueue.assert_called_once_with('p1')

    def test_requires_identity(self, app, remote, enqueue):
        from marketplace_service import MarketplaceService

        service = MarketplaceService(remote, StaticIdentityProvider(None), enqueue=enqueue)
        with pytest.raises(NotAuthenticatedException):
            service.record_purchase('p1', 'txn-1')
        assert remote.call_count == 0
        enqueue.assert_not_called()

    def test_remote_write_failure(self, marketplace, remote, enqueue):
        from repositories.purchasedpack_repository import PurchasedPackRepository

        remote.failing.add('users/u1/purchased_packs/p1')
        with pytest.raises(SyncFailedException):
            marketplace.record_purchase('p1', 'txn-1')

        assert PurchasedPackRepository.get('u1', 'p1') is None
        enqueue.assert_not_called()

    def test_local_write_failure(self, marketplace, enqueue, monkeypatch):
        from repositories.purchasedpack_repository import PurchasedPackRepository

        def fail(*args, **kwargs):
            raise StoreWriteFailedException('disk full')

        monkeypatch.setattr(PurchasedPackRepository, 'upsert', staticmethod(fail))
        with pytest.raises(StoreWriteFailedException):
            marketplace.record_purchase('p1', 'txn-1')
        enqueue.assert_not_called()

    def test_is_pack_purchased(self, marketplace):
        assert marketplace.is_pack_purchased('p1') is False
        marketplace.record_purchase('p1', 'txn-1')
        assert marketplace.is_pack_purchased('p1') is True
        assert marketplace.is_pack_purchased('p1', user_id='u2') is False


class TestAvailablePacks:
    def test_lists_published_packs_and_stores_manifests(self, marketplace, remote):
        from repositories.questionpack_repository import QuestionPackRepository

        seed_pack(remote, 'p1', 2)
        seed_pack(remote, 'draft', 2, published=False)

        packs = marketplace.get_available_packs()

        assert [p['id'] for p in packs] == ['p1']
        stored = QuestionPackRepository.get_by_id('p1')
        assert stored.formatted_price == 'R49.99'
        assert QuestionPackRepository.get_by_id('draft') is None

    def test_catalog_failure(self, marketplace, remote):
        remote.failing.add('question_packs')
        with pytest.raises(SyncFailedException):
            marketplace.get_available_packs()
