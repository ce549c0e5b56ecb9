"""
Tests for the operator and dashboard API.

Tests cover:
- POST /api/process-order (order id and certificate code)
- POST /api/cancel-membership
- GET /api/status, /api/logs, /api/version
- GET/POST /api/webhook-toggle
- GET /api/test-acuity, /api/test-passkit
"""
import pytest
from unittest.mock import patch

from bridge.utils.exceptions import AcuityError, PassKitError


@pytest.fixture
def enrolled(client, acuity, sample_order):
    """Order 42 processed once, so its certificate code is mapped."""
    acuity.fetch_order.return_value = sample_order
    response = client.post('/api/process-order?orderId=42')
    assert response.status_code == 200
    return sample_order


class TestProcessOrder:
    """Tests for POST /api/process-order."""

    def test_process_by_order_id(self, client, acuity, sample_order):
        acuity.fetch_order.return_value = sample_order

        response = client.post('/api/process-order?orderId=42')

        assert response.status_code == 200
        data = response.get_json()
        assert data['status'] == 'ok'
        assert data['order_id'] == '42'
        assert data['result']['success'] is True
        assert 'resolved_by' not in data

    def test_process_by_certificate_code(self, client, acuity, enrolled):
        acuity.fetch_order.reset_mock()

        response = client.post('/api/process-order?certificateCode=ab12cd34')

        data = response.get_json()
        assert data['order_id'] == '42'
        assert data['resolved_by'] == 'certificateCode'
        acuity.fetch_order.assert_called_once_with('42')

    def test_code_passed_as_order_id(self, client, enrolled):
        response = client.post('/api/process-order?orderId=AB12CD34')

        assert response.get_json()['resolved_by'] == 'certificateCode'

    def test_numeric_order_id_is_not_a_code(self, client, acuity, sample_order):
        acuity.fetch_order.return_value = sample_order

        response = client.post('/api/process-order?orderId=12345678')

        assert response.status_code == 200
        acuity.fetch_order.assert_called_once_with('12345678')

    def test_unresolved_code(self, client, acuity):
        response = client.post('/api/process-order?certificateCode=ZZ99YY88')

        assert response.status_code == 404
        assert response.get_json()['error']['code'] == 'ORDER_NOT_RESOLVED'
        acuity.fetch_order.assert_not_called()

    def test_missing_parameters(self, client):
        response = client.post('/api/process-order')

        assert response.status_code == 400
        assert response.get_json()['error']['code'] == 'MISSING_FIELD'

    def test_order_id_must_be_alphanumeric(self, client, acuity):
        response = client.post('/api/process-order?orderId=..%2Fme')

        assert response.status_code == 400
        assert response.get_json()['error']['code'] == 'INVALID_REQUEST'
        acuity.fetch_order.assert_not_called()

    def test_processing_failure(self, client, acuity):
        acuity.fetch_order.side_effect = AcuityError('Acuity API error: 500', status_code=500)

        response = client.post('/api/process-order?orderId=42')

        assert response.status_code == 500
        assert response.get_json() == {'status': 'error', 'message': 'Acuity API error: 500'}

    def test_get_not_allowed(self, client):
        assert client.get('/api/process-order?orderId=42').status_code == 405


class TestCancelMembership:
    """Tests for POST /api/cancel-membership."""

    def test_cancel_by_certificate_code(self, client, passkit, enrolled):
        response = client.post('/api/cancel-membership?certificateCode=ab12cd34')

        assert response.status_code == 200
        result = response.get_json()['result']
        assert result['method'] == 'status_update'
        assert result['external_id'] == 'AB12CD34'
        metadata = passkit.members['pk-member-1']['metaData']
        assert metadata['acuityAction'] == 'manual.cancel'
        assert metadata['cancellationReason'] == 'Manual cancellation request'

    def test_cancel_unknown_code(self, client):
        response = client.post('/api/cancel-membership?certificateCode=QQ11WW22')

        assert response.status_code == 200
        assert response.get_json()['result']['method'] == 'member_not_found'

    def test_cancel_by_order_id(self, client, enrolled):
        response = client.post('/api/cancel-membership?orderId=42')

        data = response.get_json()
        assert data['order_id'] == '42'
        assert data['result']['method'] == 'status_update'

    def test_invalid_code(self, client):
        response = client.post('/api/cancel-membership?certificateCode=bad')

        assert response.status_code == 500
        assert response.get_json()['status'] == 'error'

    def test_cancel_order_id_must_be_alphanumeric(self, client, acuity):
        response = client.post('/api/cancel-membership?orderId=42%2F..')

        assert response.status_code == 400
        acuity.fetch_order.assert_not_called()

    def test_missing_parameters(self, client):
        response = client.post('/api/cancel-membership')

        assert response.status_code == 400
        assert response.get_json()['error']['code'] == 'MISSING_FIELD'


class TestStatus:
    """Tests for status, logs and version."""

    def test_status(self, client):
        response = client.get('/api/status')

        assert response.status_code == 200
        data = response.get_json()
        assert data['status'] == 'running'
        assert data['config'] == {
            'acuity_configured': True,
            'passkit_configured': True,
            'program_id_set': True,
            'membership_filter': '(none - all orders processed)',
        }
        assert data['webhook_url'] == '/webhook/acuity'
        assert data['webhook_enabled'] is True
        assert data['store_available'] is True
        assert data['total_processed'] == 0
        assert data['total_errors'] == 0

    def test_status_counts(self, client, acuity, enrolled):
        acuity.fetch_order.side_effect = AcuityError('Acuity API error: 404', status_code=404)
        client.post('/api/process-order?orderId=999')

        data = client.get('/api/status').get_json()

        assert data['total_processed'] == 1
        assert data['total_errors'] == 1

    def test_status_when_store_is_down(self, client, store):
        store.failing = True

        data = client.get('/api/status').get_json()

        assert data['webhook_enabled'] is True
        assert data['total_processed'] == 0

    def test_logs(self, client, enrolled):
        logs = client.get('/api/logs').get_json()

        assert logs[0]['message'] == 'Successfully created PassKit member!'
        assert logs[-1]['message'] == 'Processing order #42...'
        assert len(client.get('/api/logs?limit=2').get_json()) == 2

    def test_version(self, client):
        data = client.get('/api/version').get_json()

        assert data['app'] == 'acuity-passkit-bridge'
        assert 'build' in data
        assert 'timestamp' in data

    def test_health(self, client):
        assert client.get('/health').get_json()['status'] == 'healthy'

    def test_unknown_route(self, client):
        response = client.get('/api/nope')
        assert response.status_code == 404
        assert response.get_json()['error']['code'] == 'NOT_FOUND'


class TestWebhookToggleApi:
    """Tests for /api/webhook-toggle."""

    def test_get(self, client):
        assert client.get('/api/webhook-toggle').get_json() == {'status': 'ok', 'enabled': True}

    def test_disable(self, client, store):
        response = client.post('/api/webhook-toggle?enabled=false')

        assert response.get_json() == {'status': 'ok', 'enabled': False, 'persistence': 'redis'}
        assert store.values['acuity_webhook_enabled'] == 'false'
        assert client.get('/api/webhook-toggle').get_json()['enabled'] is False

    def test_post_without_value_flips(self, client):
        assert client.post('/api/webhook-toggle').get_json()['enabled'] is False
        assert client.post('/api/webhook-toggle?enabled=maybe').get_json()['enabled'] is True

    def test_in_memory_without_store(self, client, store):
        store.available = False

        response = client.post('/api/webhook-toggle?enabled=0')

        assert response.get_json()['persistence'] == 'in-memory'


class TestConnectionTests:
    """Tests for /api/test-acuity and /api/test-passkit."""

    def test_acuity_ok(self, client, acuity):
        acuity.get_account.return_value = {'id': 1234567, 'email': 'owner@example.com'}

        response = client.get('/api/test-acuity')

        assert response.status_code == 200
        assert response.get_json() == {'status': 'ok', 'account': {'id': 1234567, 'email': 'owner@example.com'}}

    def test_acuity_error(self, client, acuity):
        acuity.get_account.side_effect = AcuityError('Acuity API error: 401', status_code=401,
                                                     detail={'status_code': 401, 'message': 'Unauthorized'})

        response = client.get('/api/test-acuity')

        assert response.status_code == 500
        assert response.get_json()['message'] == {'status_code': 401, 'message': 'Unauthorized'}

    def test_passkit_ok(self, client):
        response = client.get('/api/test-passkit')

        assert response.status_code == 200
        assert response.get_json()['profile'] == {'email': 'ops@example.com'}

    def test_passkit_error(self, client, passkit, services):
        with patch.object(passkit, 'get_profile', side_effect=PassKitError('PassKit request failed: timeout')):
            response = client.get('/api/test-passkit')

        assert response.status_code == 500
        assert response.get_json()['message'] == 'PassKit request failed: timeout'
        assert services.activity_log.entries()[0]['message'] == 'PassKit connection test failed'
