"""
Order reconciliation between Acuity and PassKit.

Turns an Acuity order event into the matching PassKit membership state:

- Enroll: order completed -> upsert the wallet member keyed by the
  order's certificate code.
- Cancel: order cancelled (or an enrolled order that now looks inactive)
  -> mark the wallet member CANCELLED, deleting it if PassKit rejects
  the status change.

Both flows are safe to repeat. Enroll re-issues the same PUT upsert and
Cancel looks the member up first, so a replayed webhook converges on the
same PassKit state.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from ..config import BridgeSettings
from ..utils.exceptions import AcuityError, ConfigurationError, PassKitError, ValidationError
from .activity_log import ActivityLog
from .acuity_client import AcuityClient
from .certificate_mapping import CertificateOrderMapping
from .certificates import coerce_certificate_code, extract_certificate_code
from .member_resolver import MemberResolver
from .order_activity import evaluate_order_activity
from .passkit_client import PassKitClient

logger = logging.getLogger(__name__)

MEMBERSHIP_TIER_ID = 'membership'
CANCELLED_STATUS = 'CANCELLED'

ENROLLMENT_SUCCESS_MESSAGE = 'Successfully created PassKit member'
FILTER_MISMATCH_REASON = 'Product filter mismatch'
NO_CERTIFICATE_REASON = 'No certificate code on order'
DEFAULT_CANCELLATION_REASON = 'Membership cancelled'

METHOD_MEMBER_NOT_FOUND = 'member_not_found'
METHOD_STATUS_UPDATE = 'status_update'
METHOD_DELETE = 'delete'


@dataclass(frozen=True)
class CancellationContext:
    """Where a cancellation came from, recorded on the PassKit member."""

    order_id: Optional[str] = None
    source_action: Optional[str] = None
    reason: Optional[str] = None


def _full_name(order: Dict[str, Any]) -> str:
    return f"{order.get('firstName') or ''} {order.get('lastName') or ''}".strip()


def _response_id(response: Any, fallback: Optional[str] = None) -> Optional[str]:
    if isinstance(response, dict) and response.get('id'):
        return str(response['id'])
    if isinstance(response, str) and response:
        return response
    return fallback


class ReconciliationService:
    """
    Drives enrollment and cancellation of PassKit members from Acuity orders.

    Usage:
        service = ReconciliationService(settings, acuity, passkit, resolver, mapping, activity_log)
        result = service.process_new_membership_order('12345')
    """

    def __init__(
        self,
        settings: BridgeSettings,
        acuity: AcuityClient,
        passkit: PassKitClient,
        resolver: MemberResolver,
        mapping: CertificateOrderMapping,
        activity_log: ActivityLog,
        clock=None
    ):
        self.settings = settings
        self.acuity = acuity
        self.passkit = passkit
        self.resolver = resolver
        self.mapping = mapping
        self.activity = activity_log
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def _now_iso(self) -> str:
        return self._clock().isoformat()

    # ==================== ACUITY ====================

    def _fetch_order(self, order_id, purpose: str = 'order') -> Dict[str, Any]:
        try:
            order = self.acuity.fetch_order(order_id)
        except AcuityError as e:
            self.activity.error(f'Failed to fetch {purpose} #{order_id} from Acuity', {
                'error': e.message,
                'status_code': e.status_code,
                'detail': e.detail,
            })
            raise

        self.activity.info(f'Fetched {purpose} #{order_id} from Acuity', {
            'name': _full_name(order),
            'email': order.get('email') or None,
            'status': order.get('status') or order.get('orderStatus') or None,
            'title': order.get('title') or None,
        })
        return order

    def matches_product_filter(self, order: Dict[str, Any]) -> bool:
        """True when no filter is configured or the order title contains a filter term."""
        filters = self.settings.product_filters
        if not filters:
            return True
        title = str(order.get('title') or '').lower()
        return any(term in title for term in filters)

    # ==================== ENROLL ====================

    def build_member_record(self, order: Dict[str, Any], order_id, certificate_code: str) -> Dict[str, Any]:
        """PassKit member payload for an active membership order."""
        if not self.settings.passkit_program_id:
            raise ConfigurationError('Missing PASSKIT_PROGRAM_ID for PassKit enrollment')

        person = {
            'forename': order.get('firstName') or '',
            'surname': order.get('lastName') or '',
            'emailAddress': order.get('email') or '',
            'displayName': _full_name(order),
        }
        if order.get('phone'):
            person['mobileNumber'] = str(order['phone'])

        return {
            'programId': self.settings.passkit_program_id,
            'tierId': MEMBERSHIP_TIER_ID,
            'externalId': certificate_code,
            'person': person,
            'metaData': {
                'acuityOrderId': str(order_id),
                'certificateCode': certificate_code,
                'membershipType': order.get('title') or '',
                'signupDate': self._now_iso(),
            },
        }

    def process_new_membership_order(self, order_id) -> Dict[str, Any]:
        """
        Enroll (or re-enroll) the customer behind an Acuity order.

        Args:
            order_id: Acuity order id

        Returns:
            Result dict: success with the PassKit member id, or skipped
            with a reason (filter mismatch, inactive order)

        Raises:
            AcuityError: order could not be fetched
            ValidationError: order has no valid certificate code
            PassKitError: the member upsert was rejected
        """
        self.activity.info(f'Processing order #{order_id}...')

        order = self._fetch_order(order_id)

        if not self.matches_product_filter(order):
            self.activity.info(f"Order #{order_id} doesn't match filter. Skipping.", {
                'order_title': order.get('title'),
                'filter': self.settings.membership_product_filter,
            })
            return {'skipped': True, 'reason': FILTER_MISMATCH_REASON}

        certificate_code = extract_certificate_code(order)
        if not certificate_code:
            self.activity.error(f'Order #{order_id} is missing a valid certificate code', {
                'expected_format': '8 alphanumeric characters',
            })
            raise ValidationError(
                'Missing or invalid Acuity certificate code (expected 8 alphanumeric characters)',
                field='certificate_code'
            )

        activity = evaluate_order_activity(order)
        if not activity.active:
            self.activity.warn(f'Order #{order_id} appears inactive/cancelled. Running cancellation flow.', {
                'reason': activity.reason,
                'certificate_code': certificate_code,
            })
            cancellation_result = self.cancel_membership_by_certificate_code(
                certificate_code,
                CancellationContext(
                    order_id=str(order_id),
                    source_action='order.reprocess',
                    reason=activity.reason,
                )
            )
            return {
                'skipped': True,
                'reason': activity.reason,
                'cancellation_result': cancellation_result,
            }

        record = self.build_member_record(order, order_id, certificate_code)
        display_name = record['person']['displayName']

        self.activity.info(f'Creating PassKit member for {display_name}...', {
            'email': record['person']['emailAddress'],
            'external_id': certificate_code,
            'membership': record['metaData']['membershipType'],
            'order_id': str(order_id),
        })

        try:
            response = self.passkit.upsert_member(record)
        except PassKitError as e:
            self.activity.error('Failed to create PassKit member', {
                'order_id': str(order_id),
                'external_id': certificate_code,
                'status_code': e.status_code,
                'detail': e.detail or e.message,
            })
            raise

        passkit_id = _response_id(response)
        self.mapping.store(certificate_code, order_id)

        self.activity.info(f'{ENROLLMENT_SUCCESS_MESSAGE}!', {
            'passkit_id': passkit_id,
            'name': display_name,
            'email': record['person']['emailAddress'],
            'external_id': certificate_code,
            'order_id': str(order_id),
        })

        return {
            'success': True,
            'passkit_id': passkit_id,
            'member': display_name,
            'external_id': certificate_code,
        }

    # ==================== CANCEL ====================

    def process_membership_cancellation(
        self,
        order_id,
        source_action: Optional[str] = None,
        reason: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Cancel the membership that an Acuity order enrolled.

        Fetches the order to recover its certificate code, then cancels by
        code. An order without a code is skipped rather than failed.
        """
        self.activity.info(f'Processing cancellation for order #{order_id}...', {
            'source_action': source_action,
        })

        order = self._fetch_order(order_id, purpose='cancellation order')

        certificate_code = extract_certificate_code(order)
        if not certificate_code:
            self.activity.warn(
                f'No certificate code found for cancellation order #{order_id}; skipping PassKit update'
            )
            return {'skipped': True, 'reason': NO_CERTIFICATE_REASON}

        return self.cancel_membership_by_certificate_code(
            certificate_code,
            CancellationContext(
                order_id=str(order_id),
                source_action=source_action,
                reason=reason or 'Acuity cancellation event',
            )
        )

    def cancel_membership_by_certificate_code(
        self,
        certificate_code,
        context: Optional[CancellationContext] = None
    ) -> Dict[str, Any]:
        """
        Cancel the PassKit member whose external id is the certificate code.

        Unknown codes are a successful no-op (method 'member_not_found').

        Raises:
            ValidationError: code is not 8 alphanumeric characters
            ConfigurationError: PASSKIT_PROGRAM_ID is not set
            PassKitError: both the status update and the delete fallback failed
        """
        context = context or CancellationContext()
        code = coerce_certificate_code(certificate_code)
        if not code:
            raise ValidationError(
                'Invalid certificate code (expected 8 alphanumeric characters)',
                field='certificate_code'
            )

        self.activity.info(f'Cancelling PassKit membership {code}...', {
            'external_id': code,
            'order_id': context.order_id,
            'source_action': context.source_action,
        })

        deactivation = self._deactivate_member(code, context)
        self.mapping.remove(code)

        self.activity.info('Membership cancellation processed', {
            'external_id': code,
            'method': deactivation['method'],
            'passkit_id': deactivation['passkit_id'],
            'order_id': context.order_id,
        })

        return {
            'success': True,
            'external_id': code,
            **deactivation,
        }

    def _cancellation_metadata(self, context: CancellationContext) -> Dict[str, str]:
        metadata = {
            'cancelledAt': self._now_iso(),
            'cancellationReason': context.reason or DEFAULT_CANCELLATION_REASON,
        }
        if context.order_id:
            metadata['acuityOrderId'] = str(context.order_id)
        if context.source_action:
            metadata['acuityAction'] = context.source_action
        return metadata

    def _deactivate_member(self, external_id: str, context: CancellationContext) -> Dict[str, Any]:
        if not self.settings.passkit_program_id:
            raise ConfigurationError('Missing PASSKIT_PROGRAM_ID for PassKit cancellation')

        member = self.resolver.find_member_by_external_id(external_id)
        if not member:
            return {'method': METHOD_MEMBER_NOT_FOUND, 'passkit_id': None}
        if str(member.status or '').upper() == CANCELLED_STATUS:
            logger.info('PassKit member %s for %s is already cancelled', member.id, external_id)
            return {'method': METHOD_MEMBER_NOT_FOUND, 'passkit_id': None}

        payload = {
            'id': member.id,
            'programId': self.settings.passkit_program_id,
            'externalId': external_id,
            'status': CANCELLED_STATUS,
            'metaData': self._cancellation_metadata(context),
        }
        if member.email_address:
            payload['person'] = {'emailAddress': member.email_address}

        try:
            response = self.passkit.upsert_member(payload)
            return {'method': METHOD_STATUS_UPDATE, 'passkit_id': _response_id(response, member.id)}
        except PassKitError as e:
            self.activity.warn('PassKit status update to CANCELLED failed, trying delete fallback', {
                'external_id': external_id,
                'member_id': member.id,
                'status_code': e.status_code,
                'error': e.detail or e.message,
            })

        try:
            response = self.passkit.delete_member(member.id)
        except PassKitError as e:
            self.activity.error('PassKit delete fallback failed', {
                'external_id': external_id,
                'member_id': member.id,
                'status_code': e.status_code,
                'error': e.detail or e.message,
            })
            raise
        return {'method': METHOD_DELETE, 'passkit_id': _response_id(response, member.id)}

    # ==================== LOOKUP ====================

    def resolve_order_id(self, certificate_code) -> Optional[str]:
        """Order id recorded for a certificate code at enrollment, if any."""
        return self.mapping.resolve(certificate_code)
