"""
Acuity Scheduling API client.

Only the calls the bridge needs: fetching an order and the account
lookup used by the connection test.

API Documentation: https://developers.acuityscheduling.com/reference
"""
import re
import requests
from typing import Any, Dict

from ..config import BridgeSettings
from ..utils.exceptions import AcuityError, ConfigurationError, ValidationError

ORDER_ID_PATTERN = re.compile(r'[A-Za-z0-9]+')


def is_valid_order_id(value: Any) -> bool:
    """Order ids go into the URL path, so only letters and digits are allowed."""
    return ORDER_ID_PATTERN.fullmatch('' if value is None else str(value)) is not None


class AcuityClient:
    """
    Acuity REST API client (HTTP basic auth with user id + API key).

    Usage:
        client = AcuityClient(settings)
        order = client.fetch_order('12345')
    """

    def __init__(self, settings: BridgeSettings, session: requests.Session = None):
        self.base_url = settings.acuity_api_url
        self.user_id = settings.acuity_user_id
        self.api_key = settings.acuity_api_key
        self.timeout = settings.http_timeout
        self.session = session or requests.Session()

    def _get(self, endpoint: str) -> Any:
        if not self.user_id or not self.api_key:
            raise ConfigurationError('Missing ACUITY_USER_ID or ACUITY_API_KEY')

        try:
            response = self.session.get(
                f'{self.base_url}{endpoint}',
                auth=(self.user_id, self.api_key),
                headers={'Accept': 'application/json'},
                timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            raise AcuityError(f'Acuity request failed: {e}', original_error=e)

        if response.status_code >= 400:
            try:
                detail = response.json()
            except ValueError:
                detail = response.text
            raise AcuityError(
                f'Acuity API error: {response.status_code}',
                status_code=response.status_code,
                detail=detail
            )

        try:
            return response.json()
        except ValueError as e:
            raise AcuityError('Acuity returned a non-JSON response',
                              status_code=response.status_code, detail=response.text,
                              original_error=e)

    def fetch_order(self, order_id) -> Dict[str, Any]:
        """
        Fetch a single order.

        Args:
            order_id: Acuity order id (from the webhook payload)

        Returns:
            Order payload

        Raises:
            AcuityError: network, auth or not-found failure
            ValidationError: order_id is not alphanumeric
        """
        if not is_valid_order_id(order_id):
            raise ValidationError(f'Invalid Acuity order id: {order_id!r}', field='order_id')

        order = self._get(f'/orders/{order_id}')
        if not isinstance(order, dict):
            raise AcuityError(f'Unexpected order payload for order {order_id}', detail=order)
        return order

    def get_account(self) -> Dict[str, Any]:
        """Account info for the configured credentials (connection test)."""
        return self._get('/me')
