"""
Multi-step business flows: register -> login -> order -> payment/notifications.

The module-level functions are the sequencing contracts; Scenario wraps them
and enforces the per-run state machine

    INIT -> CREDENTIALED -> [ORDERED] -> [PAID | NOTIFIED] -> DONE

A scenario never moves backward, and once an operation raises, the scenario
stays failed at the state it had reached. Nothing is rolled back.
"""
import enum
import logging
import random
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Optional

from gateway_harness.client import ApiClient
from gateway_harness.errors import CredentialError, OrderResolutionError, ScenarioStateError
from gateway_harness.retry import PAYMENT_LOOKUP_POLICY, RetryPolicy
from gateway_harness.tokens import peek_claims
from gateway_harness.transport import ResponseDescriptor

logger = logging.getLogger(__name__)

USERNAME_MIN = 3
USERNAME_MAX = 20
PREFIX_MAX = 10

PAYMENT_SETTLE_SECONDS = 3.0
NOTIFICATION_SETTLE_SECONDS = 2.0


@dataclass(frozen=True)
class Session:
    username: str
    token: Optional[str] = None

    @property
    def authenticated(self) -> bool:
        return bool(self.token)

    def claims(self) -> Dict[str, Any]:
        if not self.token:
            return {}
        return peek_claims(self.token)


@dataclass(frozen=True)
class OrderHandle:
    order_number: str
    product_name: str
    quantity: int
    unit_price: float

    @property
    def resolved(self) -> bool:
        return bool(self.order_number and self.order_number.strip())


def generate_unique_username(prefix: str, clock: Callable[[], float] = time.time,
                             rng: Optional[random.Random] = None) -> str:
    """prefix (at most 10 chars) + last 6 digits of the millisecond clock + 3 random digits.

    The result is clamped to 3..20 characters, the range the user service accepts.
    """
    rng = rng or random
    if not prefix:
        prefix = "u"
    prefix = prefix[:PREFIX_MAX]
    stamp = int(clock() * 1000) % 1_000_000
    noise = rng.randrange(1000)
    username = f"{prefix}{stamp}{noise}"
    if len(username) > USERNAME_MAX:
        username = username[:USERNAME_MAX]
    elif len(username) < USERNAME_MIN:
        username = username + "123"
    return username


def wait_for_async_operation(seconds: float, sleep: Callable[[float], None] = time.sleep) -> None:
    if seconds > 0:
        sleep(seconds)


def resolve_order_number(entries: Iterable[Any], predicate: Callable[[Dict[str, Any]], bool]) -> Optional[str]:
    """Pick an order number out of a user's order list.

    The latest entry satisfying predicate wins. With no match, the last entry
    in the list is used. Returns None when neither yields an order number.
    """
    orders = [entry for entry in entries if isinstance(entry, dict)]
    for order in reversed(orders):
        number = order.get("orderNumber")
        if number is not None and str(number).strip() and predicate(order):
            return str(number)
    if orders:
        number = orders[-1].get("orderNumber")
        if number is not None and str(number).strip():
            return str(number)
    return None


def _token_from(response: ResponseDescriptor, step: str) -> str:
    token = response.json_field("token")
    if not isinstance(token, str) or not token.strip():
        raise CredentialError(f"{step} succeeded ({response.status_code}) but returned no token: {response.body!r}")
    return token


def register_or_login(client: ApiClient, username: str, email: str, password: Optional[str] = None) -> Session:
    """Register the user, or log in with the same credentials when registration is refused."""
    if password is None:
        password = client.config.default_password
    registration = client.register_user(username, email, password)
    if registration.ok:
        logger.info("Registered %s", username)
        return Session(username, _token_from(registration, "registration"))

    logger.info("Registration of %s failed with %s, attempting login", username, registration.status_code)
    login = client.login_user(username, password)
    if login.ok:
        logger.info("Logged in as %s", username)
        return Session(username, _token_from(login, "login"))

    raise CredentialError(
        f"Both registration and login failed for {username}. "
        f"Registration: {registration.status_code} ({registration.body}), "
        f"Login: {login.status_code} ({login.body})"
    )


def _require_session(session: Session) -> str:
    if not session.authenticated:
        raise CredentialError(f"Session for {session.username} has no token")
    return session.token


def _order_number_from_listing(client: ApiClient, session: Session, product_name: str) -> Optional[str]:
    listing = client.get_user_orders(session.username, session.token)
    if not listing.ok:
        logger.warning("Listing orders for %s returned %s", session.username, listing.status_code)
        return None
    entries = listing.json_or_none()
    if not isinstance(entries, list):
        logger.warning("Order listing for %s is not a list: %r", session.username, listing.body)
        return None
    return resolve_order_number(entries, lambda order: order.get("productName") == product_name)


def create_order(client: ApiClient, session: Session, product_name: str, quantity: int,
                 unit_price: float) -> OrderHandle:
    token = _require_session(session)
    response = client.create_order(session.username, product_name, quantity, unit_price, token)
    if not response.ok:
        raise OrderResolutionError(
            f"Order creation failed with status {response.status_code}: {response.body}"
        )

    number = response.json_field("orderNumber")
    if number is None or not str(number).strip():
        # a success status with no usable body: look the order up instead
        logger.warning("Order creation returned %s without an order number, checking user orders",
                       response.status_code)
        number = _order_number_from_listing(client, session, product_name)

    handle = OrderHandle(str(number) if number is not None else "", product_name, quantity, unit_price)
    if not handle.resolved:
        raise OrderResolutionError(
            f"Order for {product_name!r} returned {response.status_code} but no order number could be "
            f"found in the response or in {session.username}'s orders"
        )
    logger.info("Order %s created for %s", handle.order_number, session.username)
    return handle


def fetch_payment_details(client: ApiClient, session: Session, order: OrderHandle,
                          settle: float = PAYMENT_SETTLE_SECONDS,
                          policy: RetryPolicy = PAYMENT_LOOKUP_POLICY,
                          sleep: Callable[[float], None] = time.sleep) -> ResponseDescriptor:
    """Payment is created asynchronously; wait, then poll with backoff while the service answers 503."""
    token = _require_session(session)
    wait_for_async_operation(settle, sleep)
    response = client.get_payment_details(order.order_number, token, policy)
    if response.status_code == 503:
        logger.warning("Payment service still unavailable for order %s after %d attempts",
                       order.order_number, policy.max_attempts)
    return response


def fetch_notifications(client: ApiClient, session: Session, settle: float = NOTIFICATION_SETTLE_SECONDS,
                        sleep: Callable[[float], None] = time.sleep) -> ResponseDescriptor:
    token = _require_session(session)
    wait_for_async_operation(settle, sleep)
    return client.get_user_notifications(session.username, token)


class ScenarioState(enum.Enum):
    INIT = "init"
    CREDENTIALED = "credentialed"
    ORDERED = "ordered"
    PAID = "paid"
    NOTIFIED = "notified"
    DONE = "done"


_RANK = {
    ScenarioState.INIT: 0,
    ScenarioState.CREDENTIALED: 1,
    ScenarioState.ORDERED: 2,
    ScenarioState.PAID: 3,
    ScenarioState.NOTIFIED: 3,
    ScenarioState.DONE: 4,
}


class Scenario:
    def __init__(self, client: ApiClient, name: str = "scenario", sleep: Callable[[float], None] = time.sleep):
        self.client = client
        self.name = name
        self.sleep = sleep
        self.state = ScenarioState.INIT
        self.failed = False
        self.session: Optional[Session] = None
        self.order: Optional[OrderHandle] = None

    def _advance(self, target: ScenarioState) -> None:
        if _RANK[target] < _RANK[self.state]:
            raise ScenarioStateError(f"{self.name}: cannot move from {self.state.value} back to {target.value}")
        self.state = target

    @contextmanager
    def _step(self, label: str, target: ScenarioState):
        if self.failed:
            raise ScenarioStateError(f"{self.name} already failed at {self.state.value}")
        if self.state is ScenarioState.DONE:
            raise ScenarioStateError(f"{self.name} is already done")
        if _RANK[target] < _RANK[self.state]:
            raise ScenarioStateError(f"{self.name}: {label} not allowed after {self.state.value}")
        try:
            yield
        except Exception as e:
            self.failed = True
            logger.error("%s failed during %s at state %s: %s", self.name, label, self.state.value, e)
            raise

    def _need_session(self) -> Session:
        if self.session is None:
            raise ScenarioStateError(f"{self.name} has no session yet")
        return self.session

    def _need_order(self) -> OrderHandle:
        if self.order is None:
            raise ScenarioStateError(f"{self.name} has no order yet")
        return self.order

    def register_or_login(self, username: str, email: str, password: Optional[str] = None) -> Session:
        with self._step("register_or_login", ScenarioState.CREDENTIALED):
            self.session = register_or_login(self.client, username, email, password)
            self._advance(ScenarioState.CREDENTIALED)
        return self.session

    def user_details(self) -> ResponseDescriptor:
        session = self._need_session()
        with self._step("user_details", self.state):
            return self.client.get_user_details(session.username, session.token)

    def create_order(self, product_name: str, quantity: int, unit_price: float) -> OrderHandle:
        session = self._need_session()
        with self._step("create_order", ScenarioState.ORDERED):
            self.order = create_order(self.client, session, product_name, quantity, unit_price)
            self._advance(ScenarioState.ORDERED)
        return self.order

    def order_details(self) -> ResponseDescriptor:
        session = self._need_session()
        order = self._need_order()
        with self._step("order_details", self.state):
            return self.client.get_order_details(order.order_number, session.token)

    def payment_details(self, settle: float = PAYMENT_SETTLE_SECONDS,
                        policy: RetryPolicy = PAYMENT_LOOKUP_POLICY) -> ResponseDescriptor:
        session = self._need_session()
        order = self._need_order()
        with self._step("payment_details", ScenarioState.PAID):
            response = fetch_payment_details(self.client, session, order, settle, policy, self.sleep)
            if response.ok:
                self._advance(ScenarioState.PAID)
        return response

    def notifications(self, settle: float = NOTIFICATION_SETTLE_SECONDS) -> ResponseDescriptor:
        session = self._need_session()
        with self._step("notifications", ScenarioState.NOTIFIED):
            response = fetch_notifications(self.client, session, settle, self.sleep)
            if response.ok:
                self._advance(ScenarioState.NOTIFIED)
        return response

    def finish(self) -> None:
        with self._step("finish", ScenarioState.DONE):
            self._advance(ScenarioState.DONE)
