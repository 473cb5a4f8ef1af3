"""Seller settlement load test scenarios.

Admin-side traffic: per-order commission overrides, marking sellers paid
and sellers reading their settlement lists, interleaved with the order
placements that create the settlements.
"""

import random

from locust import HttpUser, SequentialTaskSet, between, task

from loadtests.data_generators import commission_override_data, mark_paid_data, order_data, seeded_seller_id
from loadtests.helpers.response import extract_error_detail
from loadtests.helpers.state import OrderState


class SettlementJourney(SequentialTaskSet):
    """Place -> Read settlements -> Override one seller -> Mark another paid -> Mark paid again (409)."""

    def on_start(self):
        self.state = OrderState()

    @task
    def place(self):
        with self.client.post("/orders", json=order_data(), catch_response=True, name="POST /orders") as resp:
            if resp.status_code == 201:
                self.state.order_id = resp.json()["order_id"]
            else:
                resp.failure(f"Place order failed: {resp.status_code} - {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def read_settlements(self):
        with self.client.get(
            f"/orders/{self.state.order_id}",
            catch_response=True,
            name="GET /orders/{id}",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Read order failed: {resp.status_code} - {extract_error_detail(resp)}")
                self.interrupt()
                return
            self.state.seller_ids = [p["seller_id"] for p in resp.json()["seller_payments"]]
            if not self.state.seller_ids:
                resp.failure("Confirmed order has no seller settlements")
                self.interrupt()

    @task
    def override_commission(self):
        seller_id = random.choice(self.state.seller_ids)
        with self.client.patch(
            f"/orders/{self.state.order_id}/sellers/{seller_id}/commission",
            json=commission_override_data(),
            catch_response=True,
            name="PATCH /orders/{id}/sellers/{seller}/commission",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Override failed: {resp.status_code} - {extract_error_detail(resp)}")

    @task
    def mark_paid(self):
        seller_id = self.state.seller_ids[0]
        with self.client.post(
            f"/orders/{self.state.order_id}/sellers/{seller_id}/mark-paid",
            json=mark_paid_data(),
            catch_response=True,
            name="POST /orders/{id}/sellers/{seller}/mark-paid",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Mark paid failed: {resp.status_code} - {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def mark_paid_again(self):
        seller_id = self.state.seller_ids[0]
        with self.client.post(
            f"/orders/{self.state.order_id}/sellers/{seller_id}/mark-paid",
            json=mark_paid_data(),
            catch_response=True,
            name="POST /orders/{id}/sellers/{seller}/mark-paid [repeat]",
        ) as resp:
            if resp.status_code == 409:
                resp.success()
            else:
                resp.failure(f"Repeat mark-paid should be rejected, got {resp.status_code}")

    @task
    def done(self):
        self.interrupt()


class SellerDashboardJourney(SequentialTaskSet):
    """A seller pages through their due settlements, then their paid ones."""

    def on_start(self):
        self.seller_id = seeded_seller_id()

    @task
    def due_settlements(self):
        self.client.get(
            f"/sellers/{self.seller_id}/settlements",
            params={"status": "due", "page": 1},
            name="GET /sellers/{id}/settlements",
        )

    @task
    def paid_settlements(self):
        self.client.get(
            f"/sellers/{self.seller_id}/settlements",
            params={"status": "paid", "page": 1},
            name="GET /sellers/{id}/settlements",
        )

    @task
    def done(self):
        self.interrupt()


class SettlementAdminUser(HttpUser):
    """Platform admins settling sellers while sellers watch their dashboards."""

    wait_time = between(1.0, 3.0)
    tasks = {
        SettlementJourney: 3,
        SellerDashboardJourney: 2,
    }
