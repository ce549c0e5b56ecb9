"""
PassKit Members API client.

Handles the wallet side of the bridge: member upsert, delete and lookup
in a single membership program.

Every request is authenticated with a short-lived HS256 token signed with
the account's API secret.
"""
import json
import time
from typing import Any, Callable, Dict, Optional
from urllib.parse import quote

import httpx
import jwt

from ..config import BridgeSettings
from ..utils.exceptions import ConfigurationError, PassKitError

TOKEN_LIFETIME_SECONDS = 3600


def generate_passkit_token(api_key: str, api_secret: str, now: int) -> str:
    """
    Mint a PassKit API token.

    Args:
        api_key: PassKit API key (token subject)
        api_secret: PassKit API secret (signing key)
        now: Current unix time in seconds

    Returns:
        Encoded JWT
    """
    payload = {'uid': api_key, 'iat': now, 'exp': now + TOKEN_LIFETIME_SECONDS}
    return jwt.encode(payload, api_secret, algorithm='HS256')


def decode_body(text: str) -> Any:
    """
    Decode a PassKit response body.

    List endpoints stream newline-delimited JSON objects, so when the body
    is not a single JSON document the first decodable line is used.
    """
    if not text or not text.strip():
        return None
    try:
        return json.loads(text)
    except ValueError:
        pass

    for line in text.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            return json.loads(line)
        except ValueError:
            continue

    raise ValueError('Response body is not JSON')


class PassKitClient:
    """
    Client for the PassKit REST API.

    Supports:
    - Member upsert (PUT) and delete
    - Member lookup by external id
    - Filtered member search
    - Profile lookup (connection test)
    """

    def __init__(
        self,
        settings: BridgeSettings,
        clock: Callable[[], float] = None,
        transport: httpx.BaseTransport = None
    ):
        self.base_url = settings.passkit_api_url
        self.api_key = settings.passkit_api_key
        self.api_secret = settings.passkit_api_secret
        self.timeout = settings.http_timeout
        self._clock = clock or time.time
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        if not self.api_key or not self.api_secret:
            raise ConfigurationError('Missing PASSKIT_API_KEY or PASSKIT_API_SECRET')

        token = generate_passkit_token(self.api_key, self.api_secret, int(self._clock()))
        return {
            'Authorization': token,
            'Content-Type': 'application/json'
        }

    def _request(self, method: str, endpoint: str, payload: Optional[Dict] = None) -> Any:
        headers = self._headers()

        try:
            with httpx.Client(transport=self._transport, timeout=self.timeout) as client:
                response = client.request(
                    method,
                    f'{self.base_url}{endpoint}',
                    headers=headers,
                    json=payload
                )
        except (httpx.HTTPError, httpx.InvalidURL, httpx.StreamError) as e:
            raise PassKitError(f'PassKit request failed: {e}', original_error=e)

        if response.status_code >= 400:
            try:
                detail = decode_body(response.text)
            except ValueError:
                detail = response.text
            raise PassKitError(
                f'PassKit API error: {response.status_code}',
                status_code=response.status_code,
                detail=detail
            )

        try:
            return decode_body(response.text)
        except ValueError as e:
            raise PassKitError('PassKit returned a non-JSON response',
                               status_code=response.status_code, detail=response.text,
                               original_error=e)

    # ==================== MEMBERS ====================

    def upsert_member(self, record: Dict[str, Any]) -> Any:
        """Create or replace a member (PUT is idempotent on externalId / id)."""
        return self._request('PUT', '/members/member', record)

    def delete_member(self, member_id: str) -> Any:
        return self._request('DELETE', '/members/member', {'id': member_id})

    def lookup_by_external_id(self, program_id: str, external_id: str) -> Any:
        return self._request(
            'GET',
            f'/members/member/externalId/{quote(program_id, safe="")}/{quote(external_id, safe="")}'
        )

    def search_members(self, program_id: str, filters: Dict[str, Any]) -> Any:
        return self._request(
            'POST',
            f'/members/member/list/{quote(program_id, safe="")}',
            {'filters': filters}
        )

    # ==================== ACCOUNT ====================

    def get_profile(self) -> Any:
        """Account profile for the configured credentials (connection test)."""
        return self._request('GET', '/user/profile')
