"""
Tests for shared helpers
"""
import json
from datetime import datetime, timezone, timedelta

from utils import ensure_utc, format_price, get_or_create_secret_key, safe_write_json, sanitize_sensitive_data


class TestEnsureUtc:
    def test_epoch_millis(self):
        assert ensure_utc(1_700_000_000_000) == datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)

    def test_iso_string_with_z(self):
        assert ensure_utc('2024-01-02T03:04:05Z') == datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

    def test_naive_and_offset_datetimes(self):
        naive = datetime(2024, 1, 1, 12, 0)
        offset = datetime(2024, 1, 1, 14, 0, tzinfo=timezone(timedelta(hours=2)))

        assert ensure_utc(naive) == datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
        assert ensure_utc(offset) == datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def test_unparseable(self):
        assert ensure_utc(None) is None
        assert ensure_utc('yesterday') is None
        assert ensure_utc(True) is None


def test_format_price():
    assert format_price(4999) == 'R49.99'
    assert format_price(None) == 'R0.00'


def test_sanitize_masks_nested_secrets():
    data = {'pack_id': 'p1', 'transaction_id': 'txn-12345', 'auth': {'token': 'abc'}}

    assert sanitize_sensitive_data(data) == {
        'pack_id': 'p1',
        'transaction_id': 'tx***45',
        'auth': {'token': '***'},
    }


def test_safe_write_json(tmp_path):
    path = tmp_path / 'nested' / 'state.json'

    safe_write_json(str(path), {'u1': {'state': 'ACTIVE'}})

    assert json.loads(path.read_text()) == {'u1': {'state': 'ACTIVE'}}


def test_secret_key_is_persisted(tmp_path):
    first = get_or_create_secret_key(str(tmp_path))

    assert len(first) == 64
    assert get_or_create_secret_key(str(tmp_path)) == first
