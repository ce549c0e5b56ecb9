"""
Operator switch for webhook processing.

When disabled, Acuity webhooks are still received and logged but not
acted on. The flag lives in the durable store when one is configured;
otherwise it only lasts as long as the running process.
"""
import logging
from typing import Optional, Tuple

from ..config import BridgeSettings, parse_boolean
from .activity_log import ActivityLog

logger = logging.getLogger(__name__)

WEBHOOK_ENABLED_KEY = 'acuity_webhook_enabled'

PERSISTENCE_REDIS = 'redis'
PERSISTENCE_MEMORY = 'in-memory'


class WebhookToggle:
    """Process-wide webhook enabled flag."""

    def __init__(self, settings: BridgeSettings, store, activity_log: ActivityLog):
        self.default = settings.webhook_enabled_default
        self.store = store
        self.activity = activity_log
        self._local_value: Optional[bool] = None

    def is_enabled(self) -> bool:
        """
        Current flag value. Never raises.

        The stored value is shared by every worker and always wins. The
        value last set in this process is used only when the store has
        nothing to offer, then the configured default.
        """
        if self.store.is_available():
            result = self.store.get(WEBHOOK_ENABLED_KEY)
            if not result.ok:
                logger.debug('Webhook toggle read failed: %s', result.error)
            elif result.value not in (None, ''):
                return parse_boolean(result.value, self._fallback())

        return self._fallback()

    def _fallback(self) -> bool:
        return self.default if self._local_value is None else self._local_value

    def set_enabled(self, enabled: bool) -> Tuple[bool, str]:
        """
        Set the flag.

        Returns:
            (new value, persistence) where persistence is 'redis' or 'in-memory'
        """
        value = bool(enabled)
        state = 'enabled' if value else 'disabled'
        persistence = PERSISTENCE_MEMORY

        if self.store.is_available():
            result = self.store.set(WEBHOOK_ENABLED_KEY, 'true' if value else 'false')
            if result.ok:
                persistence = PERSISTENCE_REDIS
            else:
                logger.warning('Webhook toggle could not be persisted: %s', result.error)

        self._local_value = value

        if persistence == PERSISTENCE_REDIS:
            self.activity.info(f'Webhook processing {state} by operator', {
                'state': state,
                'persistence': persistence,
            })
        else:
            self.activity.warn(f'Webhook processing {state} (in-memory only)', {
                'state': state,
                'persistence': persistence,
            })

        return value, persistence
