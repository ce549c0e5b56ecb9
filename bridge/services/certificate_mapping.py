"""
Certificate code -> Acuity order id cache.

Written after a successful enrollment so operators can later reprocess a
membership knowing only the code printed on the customer's certificate.
The cache is a convenience, not a source of truth: every failure here is
logged and dropped.
"""
import logging
from typing import Optional

from .certificates import coerce_certificate_code

logger = logging.getLogger(__name__)

CERT_TO_ORDER_KEY_PREFIX = 'acuity_cert_to_order:'
CERT_TO_ORDER_TTL_SECONDS = 60 * 60 * 24 * 90  # 90 days


class CertificateOrderMapping:
    """Best-effort mapping store on top of the durable store."""

    def __init__(self, backend):
        self.backend = backend

    @staticmethod
    def key_for(code: str) -> str:
        return f'{CERT_TO_ORDER_KEY_PREFIX}{code}'

    def store(self, certificate_code, order_id) -> None:
        """Remember which order produced a certificate code (90 day expiry)."""
        code = coerce_certificate_code(certificate_code)
        if not code or not self.backend.is_available():
            return

        result = self.backend.set(self.key_for(code), str(order_id), ex=CERT_TO_ORDER_TTL_SECONDS)
        if not result.ok:
            logger.warning('Could not store certificate mapping %s -> %s: %s', code, order_id, result.error)

    def resolve(self, certificate_code) -> Optional[str]:
        """Order id for a certificate code, or None when unknown."""
        code = coerce_certificate_code(certificate_code)
        if not code or not self.backend.is_available():
            return None

        result = self.backend.get(self.key_for(code))
        if not result.ok:
            logger.warning('Could not resolve certificate mapping for %s: %s', code, result.error)
            return None
        if not result.value:
            return None
        return str(result.value)

    def remove(self, certificate_code) -> None:
        code = coerce_certificate_code(certificate_code)
        if not code or not self.backend.is_available():
            return

        result = self.backend.delete(self.key_for(code))
        if not result.ok:
            logger.warning('Could not remove certificate mapping for %s: %s', code, result.error)
