"""
PassKit member lookup by external id.

The bridge only knows a member by its certificate code (PassKit
externalId). PassKit has a direct lookup for that, but depending on the
account and API version it answers in different shapes, and a filtered
list search is sometimes the only thing that works. The resolver tries
each, in a fixed order, and normalizes whatever comes back.
"""
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional, Tuple

from ..config import BridgeSettings
from ..utils.exceptions import ConfigurationError, PassKitError
from .passkit_client import PassKitClient

logger = logging.getLogger(__name__)

WRAPPER_KEYS = ('member', 'item', 'result', 'data')
ROW_LIST_KEYS = ('members', 'results', 'items', 'data')


@dataclass(frozen=True)
class MemberReference:
    id: str
    email_address: Optional[str] = None
    external_id: Optional[str] = None
    status: Optional[str] = None


def member_from_object(candidate: Any) -> Optional[MemberReference]:
    """A member-like dict with an id (or memberId)."""
    if not isinstance(candidate, dict):
        return None
    member_id = candidate.get('id') or candidate.get('memberId')
    if not member_id:
        return None

    person = candidate.get('person')
    email = (person.get('emailAddress') if isinstance(person, dict) else None) or candidate.get('emailAddress')
    return MemberReference(
        id=str(member_id),
        email_address=email or None,
        external_id=candidate.get('externalId') or None,
        status=candidate.get('status') or None,
    )


def member_from_wrapper(payload: Any) -> Optional[MemberReference]:
    """A member nested under member / item / result / data."""
    if not isinstance(payload, dict):
        return None
    for key in WRAPPER_KEYS:
        ref = member_from_object(payload.get(key))
        if ref:
            return ref
    return None


def member_from_id_list(payload: Any) -> Optional[MemberReference]:
    """A {'memberIds': [...]} response."""
    if not isinstance(payload, dict):
        return None
    member_ids = payload.get('memberIds')
    if isinstance(member_ids, list) and member_ids and member_ids[0]:
        return MemberReference(id=str(member_ids[0]))
    return None


def _row_lists(payload: Any):
    if isinstance(payload, list):
        yield payload
    elif isinstance(payload, dict):
        for key in ROW_LIST_KEYS:
            rows = payload.get(key)
            if isinstance(rows, list):
                yield rows


def member_from_rows(payload: Any) -> Optional[MemberReference]:
    """A list of member ids or member objects (bare or under a list key)."""
    for rows in _row_lists(payload):
        if not rows:
            continue
        first = rows[0]
        if isinstance(first, str) and first:
            return MemberReference(id=first)
        ref = member_from_object(first) or member_from_wrapper(first)
        if ref:
            return ref
    return None


MEMBER_PAYLOAD_ADAPTERS: Tuple[Callable[[Any], Optional[MemberReference]], ...] = (
    member_from_object,
    member_from_wrapper,
    member_from_id_list,
    member_from_rows,
)


def parse_member_reference(payload: Any) -> Optional[MemberReference]:
    """First member reference any adapter can find in a PassKit payload."""
    if not payload:
        return None
    for adapter in MEMBER_PAYLOAD_ADAPTERS:
        ref = adapter(payload)
        if ref:
            return ref
    return None


def build_member_filter(field: str, value: str) -> dict:
    """Filter for the single most recently updated member with field == value."""
    return {
        'limit': 1,
        'offset': 0,
        'orderBy': 'updated',
        'orderAsc': False,
        'filterGroups': [{
            'condition': 'AND',
            'fieldFilters': [{
                'filterField': field,
                'filterValue': value,
                'filterOperator': 'eq',
            }],
        }],
    }


class MemberResolver:
    """Find the PassKit member behind a certificate code."""

    def __init__(self, settings: BridgeSettings, passkit: PassKitClient):
        self.program_id = settings.passkit_program_id
        self.passkit = passkit

    def find_member_by_external_id(self, external_id: str) -> Optional[MemberReference]:
        """
        Resolve a member by external id.

        Tries the direct externalId lookup, then a list search on memberId,
        then a list search on externalId. A failed attempt does not stop the
        next one.

        Returns:
            MemberReference, or None when no attempt found a member

        Raises:
            ConfigurationError: PASSKIT_PROGRAM_ID is not set
        """
        if not self.program_id:
            raise ConfigurationError('Missing PASSKIT_PROGRAM_ID for PassKit member lookup')

        attempts = (
            ('externalId lookup', lambda: self.passkit.lookup_by_external_id(self.program_id, external_id)),
            ('memberId search', lambda: self.passkit.search_members(
                self.program_id, build_member_filter('memberId', external_id))),
            ('externalId search', lambda: self.passkit.search_members(
                self.program_id, build_member_filter('externalId', external_id))),
        )

        for name, attempt in attempts:
            try:
                ref = parse_member_reference(attempt())
            except PassKitError as e:
                logger.info('PassKit %s for %s failed: %s', name, external_id, e)
                continue
            if ref:
                logger.debug('PassKit %s matched %s -> %s', name, external_id, ref.id)
                return ref

        return None
