"""Stock contention scenario.

Many users try to buy the single seeded copy of ``lt-last-copy`` at once.
At most one checkout may succeed; every other attempt must come back as a
409 ``insufficient_stock``. Any other outcome means the stock ledger
oversold or failed under contention.

    locust -f loadtests/locustfile.py LastCopyUser --headless -u 50 -r 50 -t 30s
"""

from locust import HttpUser, constant, task

from loadtests.data_generators import last_copy_order_data
from loadtests.helpers.response import error_code, extract_error_detail
from loadtests.helpers.state import ContentionStats

stats = ContentionStats()


class LastCopyUser(HttpUser):
    """Hammers checkout for one book with a single copy in stock."""

    wait_time = constant(0.1)

    @task
    def buy_last_copy(self):
        with self.client.post(
            "/orders",
            json=last_copy_order_data(),
            catch_response=True,
            name="POST /orders [last copy]",
        ) as resp:
            if resp.status_code == 201:
                stats.placed += 1
                if stats.placed > 1:
                    resp.failure(f"Oversold: {stats.placed} orders placed for a single copy")
            elif resp.status_code == 409 and error_code(resp) == "insufficient_stock":
                stats.sold_out += 1
                resp.success()
            else:
                resp.failure(f"Unexpected checkout outcome: {resp.status_code} - {extract_error_detail(resp)}")
