"""
Status, logs and connection-test endpoints for the dashboard.

GET  /api/status
GET  /api/logs
GET  /api/version
GET  /api/webhook-toggle
POST /api/webhook-toggle?enabled=true|false
GET  /api/test-acuity
GET  /api/test-passkit
"""
from datetime import datetime, timezone

from flask import Blueprint, request, jsonify, current_app

from ..config import parse_toggle_value
from ..services.activity_log import MAX_LOG_ENTRIES
from ..services.reconciliation import ENROLLMENT_SUCCESS_MESSAGE
from ..services.registry import get_services
from ..utils.exceptions import BridgeError, UpstreamError
from ..utils.timeouts import run_with_timeout

status_bp = Blueprint('status', __name__)


@status_bp.route('/status', methods=['GET'])
def get_status():
    """Configuration summary and processing stats."""
    services = get_services()
    settings = services.settings

    logs = run_with_timeout(services.activity_log.entries, settings.status_timeout, [])
    enabled = run_with_timeout(services.webhook_toggle.is_enabled, settings.status_timeout,
                               settings.webhook_enabled_default)

    return jsonify({
        'status': 'running',
        'config': {
            'acuity_configured': settings.acuity_configured,
            'passkit_configured': settings.passkit_configured,
            'program_id_set': bool(settings.passkit_program_id),
            'membership_filter': settings.membership_product_filter or '(none - all orders processed)',
        },
        'webhook_url': '/webhook/acuity',
        'webhook_enabled': enabled,
        'store_available': services.store.is_available(),
        'total_processed': sum(
            1 for entry in logs if ENROLLMENT_SUCCESS_MESSAGE in str(entry.get('message', ''))
        ),
        'total_errors': sum(1 for entry in logs if entry.get('level') == 'error'),
    })


@status_bp.route('/logs', methods=['GET'])
def get_logs():
    """Activity log entries, newest first."""
    services = get_services()
    limit = request.args.get('limit', MAX_LOG_ENTRIES, type=int)
    logs = run_with_timeout(lambda: services.activity_log.entries(limit),
                            services.settings.status_timeout, [])
    return jsonify(logs)


@status_bp.route('/version', methods=['GET'])
def get_version():
    return jsonify({
        'app': current_app.config.get('APP_NAME'),
        'build': current_app.config.get('BUILD'),
        'timestamp': datetime.now(timezone.utc).isoformat(),
    })


@status_bp.route('/webhook-toggle', methods=['GET', 'POST'])
def webhook_toggle():
    """
    Read or change webhook processing.

    POST without a recognisable enabled value flips the current state.
    """
    services = get_services()
    toggle = services.webhook_toggle

    if request.method == 'GET':
        enabled = run_with_timeout(toggle.is_enabled, services.settings.status_timeout,
                                   services.settings.webhook_enabled_default)
        return jsonify({'status': 'ok', 'enabled': enabled})

    requested = parse_toggle_value(request.args.get('enabled'))
    target = (not toggle.is_enabled()) if requested is None else requested

    enabled, persistence = toggle.set_enabled(target)
    return jsonify({'status': 'ok', 'enabled': enabled, 'persistence': persistence})


@status_bp.route('/test-acuity', methods=['GET'])
def test_acuity():
    services = get_services()
    try:
        account = services.acuity.get_account()
    except BridgeError as e:
        detail = e.detail if isinstance(e, UpstreamError) and e.detail else e.message
        services.activity_log.error('Acuity connection test failed', {'error': e.message})
        return jsonify({'status': 'error', 'message': detail}), 500

    services.activity_log.info('Acuity connection test successful')
    return jsonify({'status': 'ok', 'account': account})


@status_bp.route('/test-passkit', methods=['GET'])
def test_passkit():
    services = get_services()
    try:
        profile = services.passkit.get_profile()
    except BridgeError as e:
        detail = e.detail if isinstance(e, UpstreamError) and e.detail else e.message
        services.activity_log.error('PassKit connection test failed', {'error': e.message})
        return jsonify({'status': 'error', 'message': detail}), 500

    services.activity_log.info('PassKit connection test successful')
    return jsonify({'status': 'ok', 'profile': profile})
