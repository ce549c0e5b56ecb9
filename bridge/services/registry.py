"""
Service wiring.

Builds the bridge's services once per app from BridgeSettings and the
durable store, and hands them to request handlers and CLI commands.
"""
from dataclasses import dataclass
from flask import current_app

from ..config import BridgeSettings
from .activity_log import ActivityLog
from .acuity_client import AcuityClient
from .certificate_mapping import CertificateOrderMapping
from .member_resolver import MemberResolver
from .passkit_client import PassKitClient
from .reconciliation import ReconciliationService
from .webhook_toggle import WebhookToggle

EXTENSION_KEY = 'bridge_services'


@dataclass
class BridgeServices:
    settings: BridgeSettings
    store: object
    activity_log: ActivityLog
    acuity: AcuityClient
    passkit: PassKitClient
    resolver: MemberResolver
    mapping: CertificateOrderMapping
    reconciliation: ReconciliationService
    webhook_toggle: WebhookToggle


def build_services(
    settings: BridgeSettings,
    store,
    acuity: AcuityClient = None,
    passkit: PassKitClient = None
) -> BridgeServices:
    """Construct every service with explicit dependencies."""
    activity_log = ActivityLog(store)
    acuity = acuity or AcuityClient(settings)
    passkit = passkit or PassKitClient(settings)
    resolver = MemberResolver(settings, passkit)
    mapping = CertificateOrderMapping(store)

    return BridgeServices(
        settings=settings,
        store=store,
        activity_log=activity_log,
        acuity=acuity,
        passkit=passkit,
        resolver=resolver,
        mapping=mapping,
        reconciliation=ReconciliationService(
            settings, acuity, passkit, resolver, mapping, activity_log
        ),
        webhook_toggle=WebhookToggle(settings, store, activity_log),
    )


def get_services() -> BridgeServices:
    """Services for the current Flask app."""
    return current_app.extensions[EXTENSION_KEY]
