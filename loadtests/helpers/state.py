"""Per-user state tracking for Locust load test scenarios.

Each Locust user instance keeps its own state. The ids returned by the
order endpoints are stored so follow-up requests can reference them.
"""

from dataclasses import dataclass, field


@dataclass
class OrderState:
    """Tracks state for a single order lifecycle."""

    order_id: str | None = None
    current_status: str = "pending"
    total: float = 0.0
    seller_ids: list[str] = field(default_factory=list)
    refunded: float = 0.0


@dataclass
class ContentionStats:
    """Outcome counts for the last-copy contention scenario."""

    placed: int = 0
    sold_out: int = 0
