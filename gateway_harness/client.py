"""
Business-level calls against the services under test.

Every method returns the raw ResponseDescriptor; asserting on it is the
caller's job. POSTs go through the retrying executor so a gateway that is
still loading routes does not fail the request outright.
"""
import logging
import time
from typing import Any, Callable, Dict, Optional

from gateway_harness.config import HarnessConfig
from gateway_harness.retry import GATEWAY_POST_POLICY, NO_RETRY, RetryPolicy, execute_with_retry
from gateway_harness.transport import RequestSpec, ResponseDescriptor

logger = logging.getLogger(__name__)


def _require_token(token: Optional[str]) -> str:
    if token is None or not token.strip():
        raise ValueError("Token cannot be null or empty for authenticated request")
    return token


class ApiClient:
    def __init__(self, config: HarnessConfig, transport, post_policy: RetryPolicy = GATEWAY_POST_POLICY,
                 sleep: Callable[[float], None] = time.sleep):
        self.config = config
        self.transport = transport
        self.post_policy = post_policy
        self.sleep = sleep

    def _send(self, spec: RequestSpec, policy: RetryPolicy) -> ResponseDescriptor:
        response = execute_with_retry(self.transport, spec, policy, sleep=self.sleep)
        logger.info("%s %s -> %s", spec.method, spec.endpoint, response.status_code)
        return response

    def _post(self, url: str, body: Dict[str, Any], token: Optional[str] = None) -> ResponseDescriptor:
        return self._send(RequestSpec("POST", url, body=body, auth_token=token), self.post_policy)

    def _get(self, url: str, token: Optional[str] = None, policy: RetryPolicy = NO_RETRY) -> ResponseDescriptor:
        return self._send(RequestSpec("GET", url, auth_token=token), policy)

    # auth

    def register_user(self, username: str, email: str, password: str, role: str = "USER") -> ResponseDescriptor:
        body = {"username": username, "email": email, "password": password, "role": role}
        return self._post(f"{self.config.auth_base}/register", body)

    def login_user(self, username: str, password: str) -> ResponseDescriptor:
        return self._post(f"{self.config.auth_base}/login", {"username": username, "password": password})

    def get_user_details(self, username: str, token: str) -> ResponseDescriptor:
        return self._get(f"{self.config.auth_base}/user/{username}", _require_token(token))

    def get_user_service_health(self) -> ResponseDescriptor:
        return self._get(f"{self.config.auth_base}/health")

    # orders

    def create_order(self, username: str, product_name: str, quantity: int, unit_price: float,
                     token: str) -> ResponseDescriptor:
        body = {
            "username": username,
            "productName": product_name,
            "quantity": quantity,
            "unitPrice": unit_price,
        }
        return self._post(self.config.orders_base, body, _require_token(token))

    def get_order_details(self, order_number: str, token: str) -> ResponseDescriptor:
        return self._get(f"{self.config.orders_base}/{order_number}", _require_token(token))

    def get_user_orders(self, username: str, token: Optional[str] = None) -> ResponseDescriptor:
        """List a user's orders. token=None sends the request unauthenticated."""
        return self._get(f"{self.config.orders_base}/user/{username}", token)

    # payments / notifications

    def get_payment_details(self, order_number: str, token: str, policy: RetryPolicy = NO_RETRY) -> ResponseDescriptor:
        return self._get(f"{self.config.payments_base}/order/{order_number}", _require_token(token), policy)

    def get_user_notifications(self, username: str, token: str) -> ResponseDescriptor:
        return self._get(f"{self.config.notifications_base}/user/{username}", _require_token(token))
