"""Mixed order and settlement workload.

Combines the order lifecycle, settlement and shipping quote traffic with
weights that model a normal trading day. This is the recommended scenario
for a load baseline.
"""

from locust import HttpUser, between, task

from loadtests.data_generators import shipping_quote_data
from loadtests.scenarios.orders import OrderCancellationJourney, OrderDeliveryJourney, OrderReturnJourney
from loadtests.scenarios.settlement import SellerDashboardJourney, SettlementJourney


class MixedWorkloadUser(HttpUser):
    """Realistic mixed workload.

    Orders (65%):
    - Delivery happy path: most common
    - Cancellation: occasional
    - Return and refund: rare

    Settlement (25%):
    - Admin overrides and payouts
    - Seller dashboards

    Shipping quotes (10%): checkout pages asking for a delivery charge
    """

    wait_time = between(0.5, 3.0)
    tasks = {
        OrderDeliveryJourney: 8,
        OrderCancellationJourney: 3,
        OrderReturnJourney: 2,
        SettlementJourney: 2,
        SellerDashboardJourney: 3,
    }

    @task(2)
    def shipping_quote(self):
        self.client.post("/shipping/quote", json=shipping_quote_data(), name="POST /shipping/quote")
