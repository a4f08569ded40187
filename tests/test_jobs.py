"""
Tests for the background pack content task and the periodic job scheduler
"""
from unittest.mock import MagicMock, patch

import pytest

from conftest import seed_pack


@pytest.fixture
def worker(app, remote):
    import tasks

    with patch.object(tasks, 'get_flask_app', return_value=app), patch.object(tasks, 'get_remote', return_value=remote):
        yield tasks


class TestSyncPackContentTask:
    def test_downloads_purchased_pack(self, worker, remote):
        from repositories.purchasedpack_repository import PurchasedPackRepository
        from repositories.question_repository import QuestionRepository

        seed_pack(remote, 'p1', 4)
        PurchasedPackRepository.upsert('u1', 'p1', transaction_id='txn-1')

        summary = worker.sync_pack_content.run('p1')

        assert summary == {'pack_id': 'p1', 'fetched': 4, 'failed': [], 'synced': True}
        assert QuestionRepository.count('p1') == 4
        assert PurchasedPackRepository.get('u1', 'p1').synced is True

    def test_partial_download_leaves_pack_unsynced(self, worker, remote):
        from repositories.purchasedpack_repository import PurchasedPackRepository

        seed_pack(remote, 'p1', 3)
        PurchasedPackRepository.upsert('u1', 'p1', transaction_id='txn-1')
        remote.failing.add('questions/p1-q2')

        summary = worker.sync_pack_content.run('p1')

        assert summary['synced'] is False
        assert summary['fetched'] == 2
        assert [f['item_id'] for f in summary['failed']] == ['p1-q2']
        assert PurchasedPackRepository.get('u1', 'p1').synced is False

    def test_missing_manifest(self, worker):
        summary = worker.sync_pack_content.run('gone')

        assert summary['synced'] is False
        assert summary['fetched'] == 0


class TestJobScheduler:
    def test_registers_config_refresh(self, app):
        from jobs import JobScheduler

        scheduler = MagicMock()
        JobScheduler(scheduler=scheduler).init_app(app, start=False)

        scheduler.add_job.assert_called_once()
        assert scheduler.add_job.call_args.kwargs['id'] == 'refresh_remote_config'
        scheduler.start.assert_not_called()

    def test_registers_jobs_once(self, app):
        from jobs import JobScheduler

        scheduler = MagicMock()
        job_scheduler = JobScheduler(scheduler=scheduler)
        job_scheduler.init_app(app, start=False)
        job_scheduler.init_app(app, start=False)

        assert scheduler.add_job.call_count == 1

    def test_refresh_job_activates_remote_values(self, app, remote, services):
        from jobs import JobScheduler

        remote.put('app_config/flags', {'marketplace_enabled': True})
        JobScheduler(scheduler=MagicMock())._refresh_remote_config_job(app)

        assert services['remote_config'].is_marketplace_enabled() is True


class TestCeleryApp:
    def test_startup_never_flushes_broker(self, monkeypatch):
        from celery_app import make_celery

        monkeypatch.setenv('FLUSH_REDIS_ON_STARTUP', 'true')
        monkeypatch.setenv('REDIS_URL', 'redis://broker:6379/3')
        with patch('redis.from_url') as from_url:
            celery = make_celery('smartexam-test')

        from_url.assert_not_called()
        assert celery.conf.broker_url == 'redis://broker:6379/3'
        assert celery.conf.task_serializer == 'json'
