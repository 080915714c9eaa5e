"""
Harness configuration, read once from the process environment.

    HARNESS_GATEWAY_URL        gateway base address (default http://localhost:8080)
    HARNESS_BYPASS_GATEWAY     "true" to call the services directly
    HARNESS_*_SERVICE_URL      per-service addresses used in bypass mode
    HARNESS_TIMEOUT            per-request timeout in seconds
    HARNESS_USER_AGENT         client identifier sent with every request
    HARNESS_HTTP_VERSION       HTTP/1.1 or HTTP/2
    HARNESS_READY_MAX_POLLS    readiness poll budget
    HARNESS_READY_INTERVAL     seconds between readiness polls
    HARNESS_PASSWORD           password used for generated users
"""
import math
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from gateway_harness.errors import ConfigurationError

HTTP_VERSIONS = ("HTTP/1.1", "HTTP/2")
_TRUE = {"1", "true", "yes", "on"}


def _get(environ: Mapping[str, str], name: str, default: str) -> str:
    value = environ.get(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def _number(environ: Mapping[str, str], name: str, default: float) -> float:
    raw = _get(environ, name, str(default))
    try:
        value = float(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from e
    if not math.isfinite(value):
        raise ConfigurationError(f"{name} must be a finite number, got {raw!r}")
    return value


def _integer(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = _get(environ, name, str(default))
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a whole number, got {raw!r}") from e


@dataclass(frozen=True)
class HarnessConfig:
    gateway_url: str = "http://localhost:8080"
    user_service_url: str = "http://localhost:8081"
    order_service_url: str = "http://localhost:8082"
    payment_service_url: str = "http://localhost:8083"
    notification_service_url: str = "http://localhost:8084"
    bypass_gateway: bool = False
    timeout: float = 10.0
    user_agent: str = "curl/8.4.0"
    http_version: str = "HTTP/1.1"
    ready_max_polls: int = 30
    ready_interval: float = 2.0
    default_password: str = "password123"

    def __post_init__(self):
        if self.http_version not in HTTP_VERSIONS:
            raise ConfigurationError(
                f"http_version must be one of {', '.join(HTTP_VERSIONS)}, got {self.http_version!r}"
            )
        if not (math.isfinite(self.timeout) and self.timeout > 0):
            raise ConfigurationError(f"timeout must be positive, got {self.timeout}")
        if self.ready_max_polls < 1:
            raise ConfigurationError(f"ready_max_polls must be >= 1, got {self.ready_max_polls}")
        if not (math.isfinite(self.ready_interval) and self.ready_interval >= 0):
            raise ConfigurationError(f"ready_interval must be >= 0, got {self.ready_interval}")
        for name in ("gateway_url", "user_service_url", "order_service_url",
                     "payment_service_url", "notification_service_url"):
            object.__setattr__(self, name, getattr(self, name).rstrip("/"))

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "HarnessConfig":
        env = os.environ if environ is None else environ
        return cls(
            gateway_url=_get(env, "HARNESS_GATEWAY_URL", cls.gateway_url),
            user_service_url=_get(env, "HARNESS_USER_SERVICE_URL", cls.user_service_url),
            order_service_url=_get(env, "HARNESS_ORDER_SERVICE_URL", cls.order_service_url),
            payment_service_url=_get(env, "HARNESS_PAYMENT_SERVICE_URL", cls.payment_service_url),
            notification_service_url=_get(env, "HARNESS_NOTIFICATION_SERVICE_URL", cls.notification_service_url),
            bypass_gateway=_get(env, "HARNESS_BYPASS_GATEWAY", "false").lower() in _TRUE,
            timeout=_number(env, "HARNESS_TIMEOUT", cls.timeout),
            user_agent=_get(env, "HARNESS_USER_AGENT", cls.user_agent),
            http_version=_get(env, "HARNESS_HTTP_VERSION", cls.http_version).upper(),
            ready_max_polls=_integer(env, "HARNESS_READY_MAX_POLLS", cls.ready_max_polls),
            ready_interval=_number(env, "HARNESS_READY_INTERVAL", cls.ready_interval),
            default_password=_get(env, "HARNESS_PASSWORD", cls.default_password),
        )

    def _base(self, service_url: str) -> str:
        return service_url if self.bypass_gateway else self.gateway_url

    @property
    def auth_base(self) -> str:
        return f"{self._base(self.user_service_url)}/api/auth"

    @property
    def orders_base(self) -> str:
        return f"{self._base(self.order_service_url)}/api/orders"

    @property
    def payments_base(self) -> str:
        return f"{self._base(self.payment_service_url)}/api/payments"

    @property
    def notifications_base(self) -> str:
        return f"{self._base(self.notification_service_url)}/api/notifications"

    @property
    def health_url(self) -> str:
        return f"{self.gateway_url}/actuator/health"

    @property
    def routes_url(self) -> str:
        return f"{self.gateway_url}/actuator/gateway/routes"
