"""
Business logic services for the Acuity -> PassKit bridge.
"""
from .acuity_client import AcuityClient
from .passkit_client import PassKitClient
from .member_resolver import MemberResolver, MemberReference
from .certificate_mapping import CertificateOrderMapping
from .activity_log import ActivityLog
from .webhook_toggle import WebhookToggle
from .reconciliation import ReconciliationService, CancellationContext

__all__ = [
    'AcuityClient',
    'PassKitClient',
    'MemberResolver',
    'MemberReference',
    'CertificateOrderMapping',
    'ActivityLog',
    'WebhookToggle',
    'ReconciliationService',
    'CancellationContext'
]
