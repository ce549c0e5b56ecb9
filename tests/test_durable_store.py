"""
Tests for the durable store and the features built on it.

Tests cover:
- DurableStore lazy client creation and error wrapping
- Certificate -> order mapping cache
- Capped activity log (Redis and in-memory)
- Webhook toggle persistence
"""
import json
import pytest
from datetime import datetime, timezone
from unittest.mock import MagicMock

import redis

from bridge.config import BridgeSettings
from bridge.services.activity_log import ActivityLog, LOG_REDIS_KEY, MAX_LOG_ENTRIES
from bridge.services.certificate_mapping import (
    CertificateOrderMapping,
    CERT_TO_ORDER_TTL_SECONDS,
)
from bridge.services.webhook_toggle import WebhookToggle, WEBHOOK_ENABLED_KEY
from bridge.utils.durable_store import DurableStore, StoreResult


class TestDurableStore:
    """Tests for DurableStore."""

    def test_unconfigured_store_is_unavailable(self):
        factory = MagicMock()
        store = DurableStore(url=None, client_factory=factory)

        assert store.is_available() is False
        result = store.get('anything')
        assert result.ok is False
        factory.assert_not_called()

    def test_client_created_once(self):
        client = MagicMock()
        factory = MagicMock(return_value=client)
        store = DurableStore(url='redis://localhost:6379/0', client_factory=factory)

        assert store.is_available()
        store.get('a')
        store.set('b', '1', ex=10)

        factory.assert_called_once_with('redis://localhost:6379/0')
        client.set.assert_called_once_with('b', '1', ex=10)

    def test_redis_error_becomes_failed_result(self):
        client = MagicMock()
        client.get.side_effect = redis.ConnectionError('connection refused')
        store = DurableStore(url='redis://localhost:6379/0', client_factory=lambda url: client)

        result = store.get('key')

        assert result.ok is False
        assert isinstance(result.error, redis.ConnectionError)

    def test_factory_error_leaves_store_unavailable(self):
        def factory(url):
            raise ValueError('bad url')

        store = DurableStore(url='not-a-url', client_factory=factory)
        assert store.is_available() is False

    def test_push_capped_trims_list(self):
        client = MagicMock()
        store = DurableStore(url='redis://localhost', client_factory=lambda url: client)

        result = store.push_capped('logs', '{}', 100)

        assert result.ok
        client.lpush.assert_called_once_with('logs', '{}')
        client.ltrim.assert_called_once_with('logs', 0, 99)

    def test_init_app_registers_extension(self, app):
        store = DurableStore()
        store.init_app(app, None)
        assert app.extensions['durable_store'] is store
        assert store.is_available() is False


class TestCertificateOrderMapping:
    """Tests for the certificate -> order id cache."""

    def test_store_and_resolve(self, store):
        mapping = CertificateOrderMapping(store)

        mapping.store('ab12cd34', 42)

        key = 'acuity_cert_to_order:AB12CD34'
        assert store.values[key] == '42'
        assert store.expiries[key] == CERT_TO_ORDER_TTL_SECONDS == 7776000
        assert mapping.resolve('AB12CD34') == '42'
        assert mapping.resolve(' ab12cd34 ') == '42'

    def test_invalid_code_is_ignored(self, store):
        mapping = CertificateOrderMapping(store)
        mapping.store('nope', 42)
        assert store.values == {}
        assert mapping.resolve('nope') is None

    def test_unknown_code(self, store):
        assert CertificateOrderMapping(store).resolve('ZZZZ9999') is None

    def test_remove(self, store):
        mapping = CertificateOrderMapping(store)
        mapping.store('AB12CD34', 42)
        mapping.remove('AB12CD34')
        assert mapping.resolve('AB12CD34') is None

    def test_store_failures_are_swallowed(self, store):
        mapping = CertificateOrderMapping(store)
        store.failing = True

        mapping.store('AB12CD34', 42)
        mapping.remove('AB12CD34')
        assert mapping.resolve('AB12CD34') is None

    def test_unavailable_store(self, offline_store):
        mapping = CertificateOrderMapping(offline_store)
        mapping.store('AB12CD34', 42)
        assert mapping.resolve('AB12CD34') is None


class TestActivityLog:
    """Tests for ActivityLog."""

    @pytest.fixture
    def clock(self):
        return lambda: datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

    def test_append_persists_json_entry(self, store, clock):
        log = ActivityLog(store, clock=clock)

        entry = log.info('Processing order #42...', {'order_id': '42'})

        assert entry == {
            'timestamp': '2026-03-01T12:00:00+00:00',
            'level': 'info',
            'message': 'Processing order #42...',
            'data': {'order_id': '42'},
        }
        assert json.loads(store.lists[LOG_REDIS_KEY][0]) == entry

    def test_entries_newest_first(self, store):
        log = ActivityLog(store)
        log.info('first')
        log.warn('second')
        log.error('third')

        messages = [entry['message'] for entry in log.entries(10)]
        levels = [entry['level'] for entry in log.entries(10)]
        assert messages == ['third', 'second', 'first']
        assert levels == ['error', 'warn', 'info']

    def test_log_is_capped(self, store):
        log = ActivityLog(store)
        for i in range(MAX_LOG_ENTRIES + 20):
            log.info(f'entry {i}')

        assert len(store.lists[LOG_REDIS_KEY]) == MAX_LOG_ENTRIES
        entries = log.entries(500)
        assert len(entries) == MAX_LOG_ENTRIES
        assert entries[0]['message'] == f'entry {MAX_LOG_ENTRIES + 19}'

    def test_limit(self, store):
        log = ActivityLog(store)
        for i in range(5):
            log.info(f'entry {i}')
        assert len(log.entries(2)) == 2
        assert log.entries(0) == []

    def test_unparseable_rows_are_skipped(self, store):
        store.lists[LOG_REDIS_KEY] = ['not json', json.dumps({'message': 'ok'}), '']
        assert ActivityLog(store).entries() == [{'message': 'ok'}]

    def test_in_memory_without_store(self, offline_store):
        log = ActivityLog(offline_store)
        log.info('one')
        log.error('two')
        assert [entry['message'] for entry in log.entries()] == ['two', 'one']

    def test_persistence_failure_does_not_raise(self, store):
        store.failing = True
        log = ActivityLog(store)
        entry = log.error('Failed to create PassKit member')
        assert entry['level'] == 'error'
        assert log.entries() == []

    def test_unknown_level_recorded_as_info(self, store):
        assert ActivityLog(store).append('debug', 'x')['level'] == 'info'


class TestWebhookToggle:
    """Tests for WebhookToggle."""

    def _toggle(self, store, default=True):
        settings = BridgeSettings(webhook_enabled_default=default)
        return WebhookToggle(settings, store, ActivityLog(store))

    def test_default_when_nothing_stored(self, store):
        assert self._toggle(store).is_enabled() is True
        assert self._toggle(store, default=False).is_enabled() is False

    def test_stored_value_wins_over_default(self, store):
        store.values[WEBHOOK_ENABLED_KEY] = 'false'
        assert self._toggle(store).is_enabled() is False

    def test_set_enabled_persists(self, store):
        toggle = self._toggle(store)

        assert toggle.set_enabled(False) == (False, 'redis')
        assert store.values[WEBHOOK_ENABLED_KEY] == 'false'

        # A fresh toggle (another process) reads the stored value
        assert self._toggle(store).is_enabled() is False

    def test_workers_follow_the_stored_value(self, store):
        """A change made through one worker is seen by every other worker."""
        worker_a = self._toggle(store)
        worker_b = self._toggle(store)

        worker_a.set_enabled(False)
        assert worker_b.is_enabled() is False

        worker_b.set_enabled(True)
        assert store.values[WEBHOOK_ENABLED_KEY] == 'true'
        assert worker_a.is_enabled() is True
        assert worker_b.is_enabled() is True

    def test_local_value_used_when_store_read_fails(self, store):
        toggle = self._toggle(store)
        toggle.set_enabled(False)
        store.failing = True

        assert toggle.is_enabled() is False

    def test_in_memory_when_store_unavailable(self, offline_store):
        toggle = self._toggle(offline_store)

        assert toggle.set_enabled(False) == (False, 'in-memory')
        assert toggle.is_enabled() is False
        assert toggle.activity.entries()[0]['message'] == 'Webhook processing disabled (in-memory only)'

    def test_in_memory_when_write_fails(self, store):
        toggle = self._toggle(store)
        store.failing = True

        assert toggle.set_enabled(False) == (False, 'in-memory')
        assert toggle.is_enabled() is False

    def test_read_failure_returns_default(self, store):
        store.failing = True
        assert self._toggle(store).is_enabled() is True

    def test_store_result_helpers(self):
        assert StoreResult.success(3) == StoreResult(ok=True, value=3)
        assert StoreResult.failure().ok is False
