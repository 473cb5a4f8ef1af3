"""Bookorders bounded context: order lifecycle and multi-seller settlement.

Handles order placement against live inventory, the delivery state machine,
per-seller settlements, and reconciliation of stock and money when orders
are cancelled, returned or refunded.
"""

from protean.domain import Domain

from bookorders.utils.logging import get_logger

logger = get_logger(__name__)

bookorders = Domain(name="bookorders")
