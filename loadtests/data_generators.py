"""Faker-based data generators for Locust load test scenarios.

Payloads match the field names of the order API's Pydantic request schemas
and reference the books created by ``python src/manage.py seed-books``.
"""

import random
import uuid

from faker import Faker

fake = Faker("en_IN")

SEEDED_BOOK_COUNT = 200
SEEDED_SELLER_COUNT = 5
LAST_COPY_BOOK_ID = "lt-last-copy"

# Postal prefixes spread across the north, south, east and west zones
POSTAL_PREFIXES = ["110", "122", "400", "411", "560", "600", "700", "751"]


def seeded_book_id() -> str:
    return f"lt-book-{random.randint(1, SEEDED_BOOK_COUNT):04d}"


def seeded_seller_id() -> str:
    return f"lt-seller-{random.randint(1, SEEDED_SELLER_COUNT)}"


def customer_id() -> str:
    return f"lt-cust-{uuid.uuid4().hex[:8]}"


def actor_id(role: str) -> str:
    return f"lt-{role}-{random.randint(1, 20)}"


def postal_code() -> str:
    """Six-digit Indian PIN in one of the zone prefixes."""
    return f"{random.choice(POSTAL_PREFIXES)}{random.randint(0, 999):03d}"


def address_data() -> dict:
    """Generate an AddressSchema payload."""
    return {
        "street": fake.street_address()[:255],
        "city": fake.city()[:100],
        "state": fake.state()[:100],
        "postal_code": postal_code(),
        "country": "India",
    }


def order_lines(min_lines: int = 1, max_lines: int = 4) -> list[dict]:
    """Distinct seeded books so orders usually span more than one seller."""
    count = random.randint(min_lines, max_lines)
    book_ids = {seeded_book_id() for _ in range(count)}
    return [{"book_id": book_id, "quantity": random.randint(1, 3)} for book_id in sorted(book_ids)]


def order_data(payment_method: str = "cash_on_delivery", coupon_code: str | None = None) -> dict:
    """Generate a PlaceOrderRequest payload."""
    payload = {
        "customer_id": customer_id(),
        "items": order_lines(),
        "shipping_address": address_data(),
        "payment_method": payment_method,
    }
    if coupon_code:
        payload["coupon_code"] = coupon_code
    return payload


def last_copy_order_data() -> dict:
    """An order for the single seeded copy that concurrent users fight over."""
    return {
        "customer_id": customer_id(),
        "items": [{"book_id": LAST_COPY_BOOK_ID, "quantity": 1}],
        "shipping_address": address_data(),
        "payment_method": "cash_on_delivery",
    }


def status_change(status: str, role: str = "admin", note: str | None = None) -> dict:
    """Generate an AdvanceStatusRequest payload."""
    payload = {"status": status, "changed_by": actor_id(role)}
    if note:
        payload["note"] = note
    if status == "shipped":
        payload["tracking_number"] = f"TRK-{uuid.uuid4().hex[:10].upper()}"
    return payload


def cancellation_data() -> dict:
    return {
        "reason": random.choice(["Ordered by mistake", "Found a cheaper copy", "Delivery too slow"]),
        "cancelled_by": actor_id("customer"),
    }


def refund_data(amount: float) -> dict:
    return {
        "amount": round(amount, 2),
        "reason": fake.sentence(nb_words=5)[:500],
        "processed_by": actor_id("admin"),
    }


def commission_override_data() -> dict:
    return {
        "commission_rate": float(random.choice([0, 1, 2.5, 5, 7.5, 10])),
        "overridden_by": actor_id("admin"),
    }


def mark_paid_data() -> dict:
    return {"paid_by": actor_id("admin"), "notes": f"UTR {fake.bothify('????########').upper()}"}


def shipping_quote_data() -> dict:
    return {"postal_code": postal_code(), "subtotal": float(random.randint(100, 3000))}
