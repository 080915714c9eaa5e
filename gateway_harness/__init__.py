"""Black-box integration harness for a gateway-fronted microservice stack."""
from gateway_harness.client import ApiClient
from gateway_harness.config import HarnessConfig
from gateway_harness.errors import (
    ConfigurationError,
    CredentialError,
    HarnessError,
    OrderResolutionError,
    ScenarioStateError,
    TransportError,
)
from gateway_harness.readiness import ReadinessCheck, await_ready, marker_predicate
from gateway_harness.retry import (
    GATEWAY_POST_POLICY,
    NO_RETRY,
    PAYMENT_LOOKUP_POLICY,
    ExponentialDelay,
    FixedDelay,
    RetryPolicy,
    execute_with_retry,
    retry_call,
)
from gateway_harness.scenarios import (
    OrderHandle,
    Scenario,
    ScenarioState,
    Session,
    create_order,
    generate_unique_username,
    register_or_login,
    resolve_order_number,
)
from gateway_harness.transport import HttpTransport, RequestSpec, ResponseDescriptor

__version__ = "0.1.0"
