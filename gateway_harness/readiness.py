"""
Readiness gate: wait until the gateway is up and has loaded its routes.

Giving up is not an error. await_ready logs a warning and returns False,
the caller carries on and the retrying executor absorbs what is left.
"""
import logging
import time
from dataclasses import dataclass
from typing import Callable

from gateway_harness.config import HarnessConfig
from gateway_harness.transport import RequestSpec

logger = logging.getLogger(__name__)


def marker_predicate(*markers: str) -> Callable[[str], bool]:
    """Predicate that holds when every marker appears in the body."""
    def predicate(body: str) -> bool:
        return bool(body) and all(marker in body for marker in markers)
    return predicate


@dataclass(frozen=True)
class ReadinessCheck:
    health_endpoint: str
    route_endpoint: str
    predicate: Callable[[str], bool]
    max_polls: int = 30
    poll_interval: float = 2.0

    def __post_init__(self):
        if self.max_polls < 1:
            raise ValueError(f"max_polls must be >= 1, got {self.max_polls}")

    @classmethod
    def for_gateway(cls, config: HarnessConfig, route_id: str = "order-service-post",
                    method: str = "POST") -> "ReadinessCheck":
        return cls(
            health_endpoint=config.health_url,
            route_endpoint=config.routes_url,
            predicate=marker_predicate(route_id, f"Methods: [{method}]"),
            max_polls=config.ready_max_polls,
            poll_interval=config.ready_interval,
        )


def _poll(transport, check: ReadinessCheck) -> bool:
    health = transport.execute(RequestSpec("GET", check.health_endpoint))
    if health.status_code != 200:
        logger.debug("health returned %s", health.status_code)
        return False
    routes = transport.execute(RequestSpec("GET", check.route_endpoint))
    if routes.status_code != 200:
        logger.debug("route table returned %s", routes.status_code)
        return False
    return check.predicate(routes.body)


def await_ready(transport, check: ReadinessCheck, sleep: Callable[[float], None] = time.sleep) -> bool:
    logger.info("Waiting for %s to be ready...", check.health_endpoint)
    for poll in range(1, check.max_polls + 1):
        try:
            if _poll(transport, check):
                logger.info("Gateway is ready after %d poll(s); routes loaded.", poll)
                return True
            logger.info("Gateway not ready yet (poll %d/%d)", poll, check.max_polls)
        except Exception as e:
            logger.warning("Error checking gateway readiness (poll %d/%d): %s", poll, check.max_polls, e)
        if poll < check.max_polls:
            sleep(check.poll_interval)
    logger.warning("Gateway may not be fully ready after %d polls; continuing anyway.", check.max_polls)
    return False
