"""
Order activity classification.

Decides whether an Acuity order still represents a live membership or
one that was cancelled, expired or refunded.
"""
from dataclasses import dataclass
from typing import Any, Optional

CANCELLATION_FLAGS = ('cancelled', 'canceled', 'isCancelled', 'isCanceled')
ACTIVE_FLAGS = ('active', 'isActive')
STATUS_FIELDS = ('status', 'orderStatus', 'subscriptionStatus', 'membershipStatus')

INACTIVE_ORDER_STATUSES = frozenset({
    'cancelled',
    'canceled',
    'expired',
    'inactive',
    'voided',
    'refunded',
    'failed',
})
INACTIVE_STATUS_FRAGMENTS = ('cancel', 'expire')


@dataclass(frozen=True)
class OrderActivity:
    active: bool
    reason: Optional[str] = None


def is_truthy_flag(value: Any) -> bool:
    """True for True, non-zero numbers and 'true'/'1'/'yes' strings."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in ('true', '1', 'yes')
    return False


def _is_inactive_status(normalized: str) -> bool:
    if normalized in INACTIVE_ORDER_STATUSES:
        return True
    return any(fragment in normalized for fragment in INACTIVE_STATUS_FRAGMENTS)


def evaluate_order_activity(order: Any) -> OrderActivity:
    """
    Classify an order as active or inactive.

    Rules, first match wins:
    1. a cancellation flag is truthy
    2. active/isActive is explicitly False
    3. a status field names a terminal state (or mentions cancel/expire)
    4. otherwise the order is active
    """
    if not isinstance(order, dict):
        order = {}

    for flag in CANCELLATION_FLAGS:
        if is_truthy_flag(order.get(flag)):
            return OrderActivity(active=False, reason=f'Acuity order flag {flag}=true')

    if any(order.get(flag) is False for flag in ACTIVE_FLAGS):
        return OrderActivity(active=False, reason='Acuity order marked inactive')

    for field in STATUS_FIELDS:
        value = order.get(field)
        if not isinstance(value, str):
            continue
        normalized = value.strip().lower()
        if normalized and _is_inactive_status(normalized):
            return OrderActivity(active=False, reason=f'Acuity status indicates inactive: {value}')

    return OrderActivity(active=True)
