"""
Tests for YAML settings loading and validation
"""
import yaml

from constants import DEFAULT_REMOTE_CONFIG
from settings import load_settings, verify_settings


class TestLoadSettings:
    def test_writes_defaults_when_missing(self, tmp_path):
        config_file = tmp_path / 'config' / 'settings.yaml'

        settings = load_settings(force=True, config_file=str(config_file))

        assert settings['sync']['rate_limit_minutes'] == 30
        assert settings['remote_config'] == DEFAULT_REMOTE_CONFIG
        assert config_file.exists()

    def test_merges_partial_file(self, tmp_path):
        config_file = tmp_path / 'settings.yaml'
        config_file.write_text(yaml.dump({'sync': {'max_workers': 2}, 'remote_config': {'max_local_papers': 5}}))

        settings = load_settings(force=True, config_file=str(config_file))

        assert settings['sync'] == {'rate_limit_minutes': 30, 'max_workers': 2}
        assert settings['remote_config']['max_local_papers'] == 5
        assert settings['remote_config']['marketplace_enabled'] is False
        assert settings['trial']['length_days'] == 14

    def test_environment_overrides_firestore(self, tmp_path, monkeypatch):
        monkeypatch.setenv('FIRESTORE_PROJECT_ID', 'smartexam-test')
        monkeypatch.setenv('FIRESTORE_API_KEY', 'key-123')

        settings = load_settings(force=True, config_file=str(tmp_path / 'settings.yaml'))

        assert settings['firestore']['project_id'] == 'smartexam-test'
        assert settings['firestore']['api_key'] == 'key-123'

    def test_cached_until_forced(self, tmp_path):
        config_file = tmp_path / 'settings.yaml'
        first = load_settings(force=True, config_file=str(config_file))

        assert load_settings() is first


class TestVerifySettings:
    def test_valid_sync_section(self):
        assert verify_settings('sync', {'rate_limit_minutes': 30, 'max_workers': 4}) == (True, [])

    def test_non_positive_values(self):
        success, errors = verify_settings('sync', {'rate_limit_minutes': 0, 'max_workers': -1})

        assert success is False
        assert [e['path'] for e in errors] == ['sync/rate_limit_minutes', 'sync/max_workers']

    def test_unknown_remote_flag(self):
        success, errors = verify_settings('remote_config', {'marketplace_enabled': True, 'dark_mode': True})

        assert success is False
        assert 'dark_mode' in errors[0]['error']
