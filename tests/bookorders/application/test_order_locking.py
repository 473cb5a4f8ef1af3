"""Application tests for per-order command serialization."""

import json
import threading

from bookorders.errors import InsufficientStockError
from bookorders.order.cancellation import ProcessRefund
from bookorders.order.creation import PlaceOrder
from bookorders.order.locking import lock_for, order_lock, process_for_order
from bookorders.order.order import Order
from bookorders.order.settlement import CorrectShippingCost, MarkSellerPaid
from protean import current_domain

ADDRESS = {"street": "12 MG Road", "city": "Bengaluru", "state": "Karnataka", "postal_code": "560001"}


def _place_order(book_id="book-a1", customer_id="cust-001"):
    return current_domain.process(
        PlaceOrder(
            customer_id=customer_id,
            items=json.dumps([{"book_id": book_id, "quantity": 1}]),
            shipping_address=json.dumps(ADDRESS),
            payment_method="cash_on_delivery",
        ),
        asynchronous=False,
    )


class TestOrderLock:
    def test_same_order_same_lock(self):
        assert lock_for("ORD-1") is lock_for("ORD-1")

    def test_lock_is_reentrant(self):
        with order_lock("ORD-1"):
            with order_lock("ORD-1"):
                pass

    def test_lock_blocks_other_threads(self):
        acquired = []

        def try_acquire():
            acquired.append(lock_for("ORD-1").acquire(blocking=False))

        with order_lock("ORD-1"):
            thread = threading.Thread(target=try_acquire)
            thread.start()
            thread.join()
        assert acquired == [False]


class TestProcessForOrder:
    def test_processes_command(self):
        order_id = _place_order()
        process_for_order(order_id, MarkSellerPaid(order_id=order_id, seller_id="seller-a", paid_by="admin-1"))
        order = current_domain.repository_for(Order).get(order_id)
        assert order.seller_payment_for("seller-a").is_paid


def _run_concurrently(domain, jobs):
    """Start every job at once, each in its own thread and domain context."""
    barrier = threading.Barrier(len(jobs))
    errors = []

    def run(job):
        with domain.domain_context():
            barrier.wait()
            try:
                job()
            except Exception as exc:
                errors.append(exc)

    threads = [threading.Thread(target=run, args=(job,)) for job in jobs]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    return errors


class TestConcurrentCheckouts:
    def test_last_copy_sells_once(self, bookorders_domain, catalog):
        placed = []

        def checkout(customer_id):
            def job():
                placed.append(_place_order(book_id="book-c1", customer_id=customer_id))

            return job

        errors = _run_concurrently(bookorders_domain, [checkout(f"cust-{i}") for i in range(8)])

        assert len(placed) == 1
        assert len(errors) == 7
        assert all(isinstance(exc, InsufficientStockError) for exc in errors)
        assert catalog.stock_of("book-c1") == 0

        order = current_domain.repository_for(Order).get(placed[0])
        assert order.status == "confirmed"
        assert order.stock_reserved is True


class TestNoLostUpdates:
    def test_concurrent_refunds_and_shipping_corrections(self, bookorders_domain):
        order_id = _place_order()
        history_before = len(current_domain.repository_for(Order).get(order_id).status_history)

        def refund():
            process_for_order(
                order_id,
                ProcessRefund(order_id=order_id, amount=10.0, reason="Goodwill", processed_by="admin-1"),
            )

        def correct(cost):
            def job():
                process_for_order(
                    order_id,
                    CorrectShippingCost(order_id=order_id, shipping_cost=cost, corrected_by="admin-1"),
                )

            return job

        jobs = [refund for _ in range(5)] + [correct(cost) for cost in (50.0, 60.0, 70.0)]
        errors = _run_concurrently(bookorders_domain, jobs)
        assert errors == []

        order = current_domain.repository_for(Order).get(order_id)
        assert order.refund_amount == 50.0
        assert order.payment_status == "partially_refunded"
        assert order.shipping_cost in (50.0, 60.0, 70.0)
        assert order.total == order.subtotal + order.shipping_cost
        assert len(order.status_history) == history_before + 8
