"""
Acuity order webhook endpoint.

Acuity posts application/x-www-form-urlencoded bodies with:
action, id, calendarID, appointmentTypeID

Processing happens before the response is sent. Once an event has been
logged the endpoint answers 200 even when processing failed, so Acuity
does not retry; failed orders are reprocessed manually.
"""
from urllib.parse import parse_qs

from flask import Blueprint, request, jsonify

from ..services.acuity_client import is_valid_order_id
from ..services.registry import get_services
from ..utils.errors import bad_request, unauthorized, ErrorCode
from . import verify_acuity_signature, SIGNATURE_HEADER

acuity_webhook_bp = Blueprint('acuity_webhook', __name__)

ORDER_COMPLETED_ACTIONS = {'order.completed'}
ORDER_CANCELLED_ACTIONS = {'order.cancelled', 'order.canceled'}


def parse_form_body(raw_body: bytes) -> dict:
    """Parse a form-encoded body, keeping the first value of each field."""
    parsed = parse_qs(raw_body.decode('utf-8', errors='replace'), keep_blank_values=True)
    return {key: values[0] if values else '' for key, values in parsed.items()}


@acuity_webhook_bp.route('/webhook/acuity', methods=['POST'])
@acuity_webhook_bp.route('/api/webhook', methods=['POST'])
def handle_acuity_webhook():
    """
    Handle an Acuity order webhook.

    - order.completed -> enroll the PassKit member
    - order.cancelled / order.canceled -> cancel the PassKit member
    - anything else -> acknowledged and ignored
    """
    services = get_services()
    activity = services.activity_log

    raw_body = request.get_data(cache=True)
    body = parse_form_body(raw_body)

    activity.info('Received Acuity webhook', {
        'action': body.get('action'),
        'id': body.get('id'),
    })

    signature = request.headers.get(SIGNATURE_HEADER)
    if signature and not verify_acuity_signature(raw_body, signature,
                                                 services.settings.acuity_webhook_secret):
        activity.error('Invalid Acuity webhook signature')
        return unauthorized('Invalid signature', ErrorCode.INVALID_SIGNATURE)

    action = str(body.get('action') or '').strip().lower()
    if not action:
        activity.warn('Ignoring webhook with missing action')
        return jsonify({'status': 'ignored', 'reason': 'missing_action'})

    is_completed = action in ORDER_COMPLETED_ACTIONS
    is_cancellation = action in ORDER_CANCELLED_ACTIONS
    if not is_completed and not is_cancellation:
        activity.info(f"Ignoring webhook action: {body.get('action')}")
        return jsonify({'status': 'ignored', 'action': body.get('action')})

    order_id = str(body.get('id') or '').strip()
    if not order_id:
        activity.error('No order ID in webhook payload')
        return bad_request('Missing order ID', ErrorCode.MISSING_FIELD)

    if not is_valid_order_id(order_id):
        activity.error('Invalid order ID in webhook payload', {'id': order_id})
        return bad_request('Invalid order ID', ErrorCode.INVALID_REQUEST)

    if not services.webhook_toggle.is_enabled():
        activity.warn(f'Webhook processing disabled; ignoring {action} for order #{order_id}')
        return jsonify({'status': 'ignored', 'reason': 'webhook_disabled', 'order_id': order_id})

    reconciliation = services.reconciliation
    try:
        if is_cancellation:
            result = reconciliation.process_membership_cancellation(order_id, source_action=action)
        else:
            result = reconciliation.process_new_membership_order(order_id)
    except Exception as e:
        activity.error(f'Error processing order #{order_id}', {
            'action': action,
            'error': str(e),
        })
        return jsonify({'status': 'error', 'order_id': order_id, 'error': str(e)})

    return jsonify({'status': 'ok', 'order_id': order_id, 'result': result})
