"""Storefront Checkout Load Testing — Locust entry point.

Discovers the user classes from the scenarios package. The target server
should be seeded with the demo catalogue first (``python src/manage.py seed``).

Usage:
    # All scenarios (web UI):
    locust -f loadtests/locustfile.py

    # Browsing shoppers only:
    locust -f loadtests/locustfile.py CheckoutShopper

    # Stock contention:
    locust -f loadtests/locustfile.py LastUnitRushUser

    # Headless (CI mode):
    locust -f loadtests/locustfile.py CheckoutShopper --headless \
           -u 50 -r 5 -t 300s --csv=results/loadtest
"""

import logging
import time

import requests
from locust import events

# Import all user classes so Locust discovers them
from loadtests.helpers.response import extract_error_detail
from loadtests.scenarios.checkout import CheckoutShopper, LastUnitRushUser  # noqa: F401

logger = logging.getLogger("loadtest")


@events.request.add_listener
def on_request(request_type, name, response, exception, **_kw):
    """Log error details for every failed request.

    Fires globally for all scenarios — no per-task wiring needed.
    Extracts the API error body so you see "STOCK_CONFLICT: Stock changed
    while placing the order" instead of just "409".
    """
    if exception:
        logger.error("[EXCEPTION] %s %s: %s", request_type, name, exception)
    elif response is not None and response.status_code >= 400:
        detail = extract_error_detail(response)
        logger.error("[%s] %s %s: %s", response.status_code, request_type, name, detail)


@events.test_start.add_listener
def on_test_start(environment, **_kwargs):
    """Log a marker and confirm the target is healthy when the load test begins."""
    print(f"\n[LOADTEST] Started at {time.strftime('%H:%M:%S')}")
    print(f"[LOADTEST] Target host: {environment.host}")
    if environment.host:
        try:
            resp = requests.get(f"{environment.host}/health", timeout=5)
            print(f"[LOADTEST] Health: {resp.status_code} {resp.text}")
        except requests.RequestException as e:
            print(f"[LOADTEST] Health check failed: {e}")
    print()


@events.test_stop.add_listener
def on_test_stop(environment, **_kwargs):
    """Print what the demo catalogue has left in stock when the test ends."""
    print(f"\n[LOADTEST] Stopped at {time.strftime('%H:%M:%S')}")
    if not environment.host:
        return
    try:
        from loadtests.data_generators import DEMO_PRODUCT_IDS

        resp = requests.post(
            f"{environment.host}/checkout/stock",
            json={"items": [{"product_id": pid, "quantity": 10_000} for pid in DEMO_PRODUCT_IDS]},
            timeout=5,
        )
        body = resp.json()
        print("\n[LOADTEST] Remaining stock:")
        for item in body.get("out_of_stock_items", []):
            print(f"  {item['product_id']}: {item['available']}")
        print()
    except (requests.RequestException, ValueError) as e:
        print(f"[LOADTEST] Could not fetch remaining stock: {e}\n")
