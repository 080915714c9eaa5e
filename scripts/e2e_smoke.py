#!/usr/bin/env python3
import json
import logging
import sys
from typing import Any

from gateway_harness import (
    ApiClient,
    HarnessConfig,
    HarnessError,
    HttpTransport,
    ReadinessCheck,
    Scenario,
    await_ready,
    generate_unique_username,
)

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')


def fail(msg: str, payload: Any = None):
    print(f"[FAIL] {msg}")
    if payload is not None:
        print(json.dumps(payload, indent=2, ensure_ascii=False) if not isinstance(payload, str) else payload)
    sys.exit(1)


def main():
    print("=== E2E smoke: gateway stack ===")
    config = HarnessConfig.from_env()
    transport = HttpTransport(config)
    client = ApiClient(config, transport)
    mode = "direct services" if config.bypass_gateway else config.gateway_url
    print(f"[info] target: {mode}")

    if not config.bypass_gateway:
        if await_ready(transport, ReadinessCheck.for_gateway(config)):
            print("[ok] gateway ready, routes loaded")
        else:
            print("[warn] gateway may not be fully ready; continuing")

    health = client.get_user_service_health()
    if health.status_code != 200:
        fail(f"user service health failed ({health.status_code})", health.body)
    print(f"[ok] user service health: {health.status_code}")

    username = generate_unique_username("smoke")
    scenario = Scenario(client, name=f"smoke:{username}")
    try:
        # 1) Credentials
        session = scenario.register_or_login(username, f"{username}@example.com")
        print(f"[ok] registered/logged in as {session.username}")

        # 2) User details
        details = scenario.user_details()
        if details.status_code != 200 or details.json_field("username") != username:
            fail(f"user details failed ({details.status_code})", details.body)
        print("[ok] user details match")

        # 3) Order
        order = scenario.create_order("Smoke Product", 2, 9.99)
        print(f"[ok] order created: {order.order_number}")

        order_details = scenario.order_details()
        if order_details.status_code != 200:
            fail(f"order details failed ({order_details.status_code})", order_details.body)
        if order_details.json_field("productName") != order.product_name:
            fail("order details do not match the order", order_details.body)
        print("[ok] order details match")

        # 4) Payment (asynchronous, may be behind an open circuit breaker)
        payment = scenario.payment_details()
        if payment.status_code == 200:
            print(f"[ok] payment {payment.json_field('paymentId')} for order {order.order_number}")
        elif payment.status_code == 503:
            print("[warn] payment service unavailable (503) after retries")
        else:
            fail(f"payment details failed ({payment.status_code})", payment.body)

        # 5) Notifications
        notifications = scenario.notifications()
        if notifications.status_code != 200:
            fail(f"notifications failed ({notifications.status_code})", notifications.body)
        entries = notifications.json_or_none() or []
        if entries:
            print(f"[ok] notifications: {len(entries)}")
        else:
            print("[warn] no notifications returned")

        scenario.finish()
    except HarnessError as e:
        fail(f"{type(e).__name__} at state {scenario.state.value}: {e}")

    print("=== E2E smoke completed ===")
    return 0


if __name__ == "__main__":
    sys.exit(main())
