"""
Shared fixtures for the bridge test suite.

The durable store and PassKit are replaced by in-memory fakes so the
reconciliation flows can be exercised end to end without network access.
Acuity is a MagicMock; tests set fetch_order's return value per case.
"""
import itertools
import pytest
from unittest.mock import MagicMock

from bridge import create_app
from bridge.config import BridgeSettings
from bridge.services.acuity_client import AcuityClient
from bridge.services.registry import EXTENSION_KEY
from bridge.utils.durable_store import StoreResult
from bridge.utils.exceptions import PassKitError


class FakeStore:
    """In-memory stand-in for DurableStore."""

    def __init__(self, available=True):
        self.available = available
        self.failing = False
        self.values = {}
        self.expiries = {}
        self.lists = {}

    def is_available(self):
        return self.available

    def _run(self, operation):
        if not self.available:
            return StoreResult.failure()
        if self.failing:
            return StoreResult.failure(ConnectionError('store down'))
        return StoreResult.success(operation())

    def get(self, key):
        return self._run(lambda: self.values.get(key))

    def set(self, key, value, ex=None):
        def operation():
            self.values[key] = value
            self.expiries[key] = ex
            return True
        return self._run(operation)

    def delete(self, key):
        def operation():
            self.expiries.pop(key, None)
            return 1 if self.values.pop(key, None) is not None else 0
        return self._run(operation)

    def push_capped(self, key, value, max_len):
        def operation():
            rows = self.lists.setdefault(key, [])
            rows.insert(0, value)
            del rows[max_len:]
            return True
        return self._run(operation)

    def list_range(self, key, start, stop):
        return self._run(lambda: list(self.lists.get(key, []))[start:stop + 1])


class FakePassKit:
    """
    Minimal PassKit members API.

    Members are keyed by id; PUT without an id upserts by externalId, so
    repeating an enrollment replaces the member rather than adding one.
    """

    def __init__(self):
        self.members = {}
        self.calls = []
        self.reject_status_update = False
        self.fail_upsert = False
        self.fail_lookup = False
        self._ids = (f'pk-member-{n}' for n in itertools.count(1))

    def _by_external_id(self, external_id):
        for member in self.members.values():
            if member.get('externalId') == external_id:
                return member
        return None

    def upsert_member(self, record):
        self.calls.append(('upsert_member', record))
        if self.fail_upsert:
            raise PassKitError('PassKit API error: 400', status_code=400,
                               detail={'error': {'message': 'invalid tier'}})
        if record.get('status') == 'CANCELLED' and self.reject_status_update:
            raise PassKitError('PassKit API error: 400', status_code=400,
                               detail={'error': {'message': 'status is read-only'}})

        existing = self.members.get(record.get('id')) or self._by_external_id(record.get('externalId'))
        member_id = existing['id'] if existing else next(self._ids)
        member = dict(existing or {})
        member.update(record)
        member['id'] = member_id
        self.members[member_id] = member
        return {'id': member_id}

    def delete_member(self, member_id):
        self.calls.append(('delete_member', member_id))
        self.members.pop(member_id, None)
        return {'id': member_id}

    def lookup_by_external_id(self, program_id, external_id):
        self.calls.append(('lookup_by_external_id', program_id, external_id))
        if self.fail_lookup:
            raise PassKitError('PassKit API error: 500', status_code=500)
        member = self._by_external_id(external_id)
        if not member:
            raise PassKitError('PassKit API error: 404', status_code=404,
                               detail={'error': {'code': 5, 'message': 'not found'}})
        return member

    def search_members(self, program_id, filters):
        self.calls.append(('search_members', program_id, filters))
        return None

    def get_profile(self):
        return {'email': 'ops@example.com'}

    def upserts(self):
        return [call[1] for call in self.calls if call[0] == 'upsert_member']


@pytest.fixture
def settings():
    return BridgeSettings(
        acuity_user_id='1234567',
        acuity_api_key='acuity-api-key',
        acuity_webhook_secret='acuity-api-key',
        passkit_api_key='passkit-key',
        passkit_api_secret='passkit-secret',
        passkit_program_id='prog-membership-01',
        status_timeout=1.0,
    )


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def offline_store():
    """A store with no backend configured."""
    return FakeStore(available=False)


@pytest.fixture
def acuity():
    client = MagicMock(spec=AcuityClient)
    return client


@pytest.fixture
def passkit():
    return FakePassKit()


@pytest.fixture
def app(settings, store, acuity, passkit):
    """Flask app wired to the fakes."""
    app = create_app('testing', settings=settings, store=store, acuity=acuity, passkit=passkit)
    yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def services(app):
    return app.extensions[EXTENSION_KEY]


@pytest.fixture
def sample_order():
    """A completed membership order as Acuity returns it."""
    return {
        'id': 42,
        'firstName': 'Tina',
        'lastName': 'Cevizovic',
        'email': 't@example.com',
        'phone': '',
        'title': 'UNDEFINED x ONE MEMBERSHIP',
        'certificateCode': 'AB12CD34',
        'total': '150.00',
        'status': 'completed',
    }
