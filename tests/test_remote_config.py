"""
Tests for remote configuration flags
"""
import pytest

from conftest import FakeClock
from remote_config import RemoteConfigManager


@pytest.fixture
def config(remote, clock):
    return RemoteConfigManager(remote, min_fetch_interval=3600, clock=clock)


class TestDefaults:
    def test_built_in_defaults(self, config):
        assert config.is_marketplace_enabled() is False
        assert config.is_maintenance_mode() is False
        assert config.get_max_local_papers() == 50
        assert config.is_caps_validation_strict() is False

    def test_settings_override_defaults(self, remote):
        config = RemoteConfigManager(remote, defaults={'max_local_papers': 10, 'marketplace_enabled': True})
        assert config.get_max_local_papers() == 10
        assert config.is_marketplace_enabled() is True


class TestFetchAndActivate:
    def test_activates_remote_values(self, config, remote):
        remote.put('app_config/flags', {'marketplace_enabled': True, 'max_local_papers': 5})

        assert config.fetch_and_activate() is True
        assert config.is_marketplace_enabled() is True
        assert config.get_max_local_papers() == 5
        assert config.is_maintenance_mode() is False

    def test_minimum_fetch_interval(self, config, remote, clock):
        remote.put('app_config/flags', {'maintenance_mode': True})
        config.fetch_and_activate()
        remote.put('app_config/flags', {'maintenance_mode': False})

        clock.advance(1800)
        assert config.fetch_and_activate() is False
        assert config.is_maintenance_mode() is True
        assert remote.reads == 1

        clock.advance(1801)
        assert config.fetch_and_activate() is True
        assert config.is_maintenance_mode() is False

    def test_force_bypasses_interval(self, config, remote):
        config.fetch_and_activate()
        remote.put('app_config/flags', {'caps_validation_strict': 'true'})

        assert config.fetch_and_activate(force=True) is True
        assert config.is_caps_validation_strict() is True

    def test_failure_keeps_last_values(self, config, remote, clock):
        remote.put('app_config/flags', {'marketplace_enabled': True})
        config.fetch_and_activate()
        remote.failing.add('app_config/flags')
        clock.advance(7200)

        assert config.fetch_and_activate() is False
        assert config.is_marketplace_enabled() is True

    def test_failure_does_not_start_interval(self, remote):
        clock = FakeClock()
        config = RemoteConfigManager(remote, clock=clock)
        remote.failing.add('app_config/flags')
        config.fetch_and_activate()
        remote.failing.clear()
        remote.put('app_config/flags', {'marketplace_enabled': True})

        assert config.fetch_and_activate() is True

    def test_missing_document_means_defaults(self, config):
        assert config.fetch_and_activate() is False
        assert config.get_all() == {
            'marketplace_enabled': False,
            'maintenance_mode': False,
            'max_local_papers': 50,
            'caps_validation_strict': False,
        }

    def test_bad_max_papers_falls_back(self, config, remote):
        remote.put('app_config/flags', {'max_local_papers': 'lots'})
        config.fetch_and_activate()
        assert config.get_max_local_papers() == 50
