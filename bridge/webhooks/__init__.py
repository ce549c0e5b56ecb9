"""
Webhook handlers for the membership bridge.
Processes Acuity Scheduling order webhooks.
"""
import hmac
import hashlib
import base64
import logging

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = 'X-Acuity-Signature'


def verify_acuity_signature(data: bytes, signature: str, secret: str) -> bool:
    """
    Verify an Acuity webhook signature.

    Acuity signs the raw request body with HMAC-SHA256 keyed by the account
    API key and sends the base64 digest in X-Acuity-Signature.

    Args:
        data: Raw request body bytes
        signature: The X-Acuity-Signature header value
        secret: Webhook secret (the Acuity API key unless overridden)

    Returns:
        True if signature is valid, False otherwise
    """
    if not secret:
        logger.warning('No webhook secret configured for verification')
        return False

    if not signature:
        return False

    computed = base64.b64encode(
        hmac.new(secret.encode('utf-8'), data, hashlib.sha256).digest()
    ).decode('utf-8')

    return hmac.compare_digest(computed, signature.strip())


from .acuity import acuity_webhook_bp  # noqa: E402

__all__ = [
    'acuity_webhook_bp',
    'verify_acuity_signature',
    'SIGNATURE_HEADER',
]
