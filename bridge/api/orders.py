"""
Manual order operations for operators.

POST /api/process-order?orderId=123
POST /api/process-order?certificateCode=AB12CD34
POST /api/cancel-membership?orderId=123
POST /api/cancel-membership?certificateCode=AB12CD34

Used to reprocess an order whose webhook failed, or to cancel a
membership by hand.
"""
import re

from flask import Blueprint, request, jsonify

from ..services.acuity_client import is_valid_order_id
from ..services.reconciliation import CancellationContext
from ..services.registry import get_services
from ..utils.errors import bad_request, not_found, ErrorCode

orders_bp = Blueprint('orders', __name__)

# Purely numeric values are Acuity order ids, never certificate codes
PROCESS_CODE_PATTERN = re.compile(r'(?=.*[A-Za-z])[A-Za-z0-9]{8}')
CANCEL_CODE_PATTERN = re.compile(r'[A-Za-z0-9]{8}')

MANUAL_CANCEL_ACTION = 'manual.cancel'
MANUAL_CANCEL_REASON = 'Manual cancellation request'


def _query_value(name: str) -> str:
    value = request.args.get(name, '')
    return value.strip() if isinstance(value, str) else ''


@orders_bp.route('/process-order', methods=['POST'])
def process_order():
    """
    Manually (re-)process an Acuity order to create or update a PassKit member.

    A certificate code is resolved to its order id through the mapping
    recorded at enrollment, so it only works for codes enrolled before.
    """
    services = get_services()
    raw_order_id = _query_value('orderId')
    raw_certificate_code = _query_value('certificateCode')

    order_id = raw_order_id
    resolved_by = None

    certificate_code = raw_certificate_code or (
        raw_order_id if PROCESS_CODE_PATTERN.fullmatch(raw_order_id) else ''
    )
    if certificate_code:
        order_id = services.reconciliation.resolve_order_id(certificate_code)
        resolved_by = 'certificateCode'
        if not order_id:
            return not_found(
                'Could not resolve orderId from certificate code yet. '
                'Try after the order is processed once via webhook.',
                ErrorCode.ORDER_NOT_RESOLVED
            )

    if not order_id:
        return bad_request('Missing orderId or certificateCode query parameter', ErrorCode.MISSING_FIELD)
    if not is_valid_order_id(order_id):
        return bad_request('Invalid orderId', ErrorCode.INVALID_REQUEST)

    try:
        result = services.reconciliation.process_new_membership_order(order_id)
    except Exception as e:
        return jsonify({'status': 'error', 'message': str(e)}), 500

    response = {'status': 'ok', 'order_id': order_id, 'result': result}
    if resolved_by:
        response['resolved_by'] = resolved_by
    return jsonify(response)


@orders_bp.route('/cancel-membership', methods=['POST'])
def cancel_membership():
    """Deactivate a PassKit member and drop its certificate -> order mapping."""
    services = get_services()
    raw_order_id = _query_value('orderId')
    raw_certificate_code = _query_value('certificateCode')

    try:
        if raw_certificate_code or CANCEL_CODE_PATTERN.fullmatch(raw_order_id):
            certificate_code = (raw_certificate_code or raw_order_id).upper()
            result = services.reconciliation.cancel_membership_by_certificate_code(
                certificate_code,
                CancellationContext(source_action=MANUAL_CANCEL_ACTION, reason=MANUAL_CANCEL_REASON)
            )
            return jsonify({'status': 'ok', 'result': result})

        if raw_order_id:
            if not is_valid_order_id(raw_order_id):
                return bad_request('Invalid orderId', ErrorCode.INVALID_REQUEST)
            result = services.reconciliation.process_membership_cancellation(
                raw_order_id,
                source_action=MANUAL_CANCEL_ACTION,
                reason=MANUAL_CANCEL_REASON
            )
            return jsonify({'status': 'ok', 'order_id': raw_order_id, 'result': result})
    except Exception as e:
        return jsonify({'status': 'error', 'message': str(e)}), 500

    return bad_request('Missing orderId or certificateCode query parameter', ErrorCode.MISSING_FIELD)
