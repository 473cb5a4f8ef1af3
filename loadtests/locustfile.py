"""Bookorders load testing, Locust entry point.

Seed the stock database first so the books referenced by the generators
exist:

    BOOKORDERS_STOCK_DATABASE_URI=postgresql://... python src/manage.py seed-books

Usage:
    # All scenarios (web UI):
    locust -f loadtests/locustfile.py

    # Mixed workload only:
    locust -f loadtests/locustfile.py MixedWorkloadUser

    # Last-copy contention:
    locust -f loadtests/locustfile.py LastCopyUser --headless -u 50 -r 50 -t 30s

    # Headless (CI mode):
    locust -f loadtests/locustfile.py MixedWorkloadUser --headless \
           -u 50 -r 5 -t 300s --csv=results/loadtest
"""

import logging
import time

import requests
from locust import events

# Import all user classes so Locust discovers them
from loadtests.helpers.response import extract_error_detail
from loadtests.scenarios.contention import LastCopyUser, stats  # noqa: F401
from loadtests.scenarios.mixed import MixedWorkloadUser  # noqa: F401
from loadtests.scenarios.orders import OrderUser  # noqa: F401
from loadtests.scenarios.settlement import SettlementAdminUser  # noqa: F401

logger = logging.getLogger("loadtest")


@events.request.add_listener
def on_request(request_type, name, response, exception, **_kw):
    """Log the API error body for every failed request."""
    if exception:
        logger.error("[EXCEPTION] %s %s: %s", request_type, name, exception)
    elif response is not None and response.status_code >= 400:
        detail = extract_error_detail(response)
        logger.error("[%s] %s %s: %s", response.status_code, request_type, name, detail)


@events.test_start.add_listener
def on_test_start(environment, **_kwargs):
    print(f"\n[LOADTEST] Started at {time.strftime('%H:%M:%S')}")
    print(f"[LOADTEST] Target host: {environment.host}")
    print()


@events.test_stop.add_listener
def on_test_stop(environment, **_kwargs):
    """Print the commission setting the run used and the contention outcome."""
    print(f"\n[LOADTEST] Stopped at {time.strftime('%H:%M:%S')}")
    if stats.placed or stats.sold_out:
        print(f"[LOADTEST] Last copy: {stats.placed} placed, {stats.sold_out} sold out")
    try:
        health = requests.get(f"{environment.host}/health", timeout=5).json()
        print(f"[LOADTEST] Platform commission rate: {health.get('commission_rate')}%\n")
    except Exception as e:
        print(f"[LOADTEST] Could not read /health: {e}\n")
