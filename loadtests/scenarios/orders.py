"""Order lifecycle load test scenarios.

Three stateful SequentialTaskSet journeys: the happy path through
delivery, cancellation after confirmation, and a post-delivery return
with a partial refund.
"""

import random

from locust import HttpUser, SequentialTaskSet, between, task

from loadtests.data_generators import cancellation_data, order_data, refund_data, status_change
from loadtests.helpers.response import extract_error_detail
from loadtests.helpers.state import OrderState


class _OrderJourney(SequentialTaskSet):
    """Shared steps for journeys that start with a cash on delivery order."""

    def on_start(self):
        self.state = OrderState()

    def place_order(self):
        with self.client.post(
            "/orders",
            json=order_data(),
            catch_response=True,
            name="POST /orders",
        ) as resp:
            if resp.status_code == 201:
                self.state.order_id = resp.json()["order_id"]
                self.state.current_status = resp.json()["status"]
            else:
                resp.failure(f"Place order failed: {resp.status_code} - {extract_error_detail(resp)}")
                self.interrupt()

    def advance(self, status, role="admin", note=None):
        with self.client.patch(
            f"/orders/{self.state.order_id}/status",
            json=status_change(status, role=role, note=note),
            catch_response=True,
            name="PATCH /orders/{id}/status",
        ) as resp:
            if resp.status_code == 200:
                self.state.current_status = status
            else:
                resp.failure(f"Move to {status} failed: {resp.status_code} - {extract_error_detail(resp)}")
                self.interrupt()

    def read_order(self):
        with self.client.get(
            f"/orders/{self.state.order_id}",
            catch_response=True,
            name="GET /orders/{id}",
        ) as resp:
            if resp.status_code == 200:
                body = resp.json()
                self.state.total = body["total"]
                self.state.seller_ids = [p["seller_id"] for p in body["seller_payments"]]
                if body["status"] != self.state.current_status:
                    resp.failure(f"Expected {self.state.current_status}, got {body['status']}")
            else:
                resp.failure(f"Read order failed: {resp.status_code} - {extract_error_detail(resp)}")


class OrderDeliveryJourney(_OrderJourney):
    """Place (auto-confirmed COD) -> Read -> Ship -> Deliver -> Read."""

    @task
    def place(self):
        self.place_order()

    @task
    def read_confirmed(self):
        self.read_order()

    @task
    def ship(self):
        self.advance("shipped", role="seller")

    @task
    def deliver(self):
        self.advance("delivered", role="courier")

    @task
    def read_delivered(self):
        self.read_order()

    @task
    def done(self):
        self.interrupt()


class OrderCancellationJourney(_OrderJourney):
    """Place -> Cancel -> Cancel again (expected 409) -> Read."""

    @task
    def place(self):
        self.place_order()

    @task
    def cancel(self):
        with self.client.post(
            f"/orders/{self.state.order_id}/cancel",
            json=cancellation_data(),
            catch_response=True,
            name="POST /orders/{id}/cancel",
        ) as resp:
            if resp.status_code == 200:
                self.state.current_status = "cancelled"
            else:
                resp.failure(f"Cancel failed: {resp.status_code} - {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def cancel_again(self):
        with self.client.post(
            f"/orders/{self.state.order_id}/cancel",
            json=cancellation_data(),
            catch_response=True,
            name="POST /orders/{id}/cancel [repeat]",
        ) as resp:
            if resp.status_code == 409:
                resp.success()
            else:
                resp.failure(f"Repeat cancel should be rejected, got {resp.status_code}")

    @task
    def read_cancelled(self):
        self.read_order()

    @task
    def done(self):
        self.interrupt()


class OrderReturnJourney(_OrderJourney):
    """Place -> Ship -> Deliver -> Return -> Partial refund -> Read."""

    @task
    def place(self):
        self.place_order()

    @task
    def read_placed(self):
        self.read_order()

    @task
    def ship(self):
        self.advance("shipped", role="seller")

    @task
    def deliver(self):
        self.advance("delivered", role="courier")

    @task
    def return_order(self):
        self.advance("returned", role="customer", note="Damaged in transit")

    @task
    def refund(self):
        amount = self.state.total * random.choice([0.25, 0.5, 1.0])
        with self.client.post(
            f"/orders/{self.state.order_id}/refund",
            json=refund_data(amount),
            catch_response=True,
            name="POST /orders/{id}/refund",
        ) as resp:
            if resp.status_code == 200:
                self.state.refunded = round(amount, 2)
            else:
                resp.failure(f"Refund failed: {resp.status_code} - {extract_error_detail(resp)}")

    @task
    def read_returned(self):
        self.read_order()

    @task
    def done(self):
        self.interrupt()


class OrderUser(HttpUser):
    """Customer and operations traffic over the order lifecycle."""

    wait_time = between(0.5, 2.0)
    tasks = {
        OrderDeliveryJourney: 6,
        OrderCancellationJourney: 3,
        OrderReturnJourney: 1,
    }
