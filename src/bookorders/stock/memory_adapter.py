"""In-memory stock ledger over the in-memory catalog.

Check-then-decrement runs under the catalog's lock, so concurrent
reservations for the last unit cannot both succeed.
"""

import structlog

from bookorders.catalog.memory_adapter import InMemoryCatalog
from bookorders.errors import InsufficientStockError
from bookorders.stock.port import StockLedger, merge_lines

logger = structlog.get_logger(__name__)


class InMemoryStockLedger(StockLedger):
    def __init__(self, catalog: InMemoryCatalog) -> None:
        self.catalog = catalog
        # order_id -> book_id -> {"reserved": n, "restored": m}
        self._reservations: dict[str, dict[str, dict[str, int]]] = {}

    def reserve(self, order_id: str, lines: list[dict]) -> None:
        wanted = merge_lines(lines)
        with self.catalog.lock:
            if order_id in self._reservations:
                logger.info("stock_already_reserved", order_id=order_id)
                return

            # Check every line before touching any counter
            for book_id, quantity in wanted.items():
                available = self.catalog.stock_of(book_id)
                if quantity > available:
                    raise InsufficientStockError(book_id, quantity, available)

            for book_id, quantity in wanted.items():
                self.catalog._adjust_stock(book_id, -quantity)

            self._reservations[order_id] = {
                book_id: {"reserved": quantity, "restored": 0} for book_id, quantity in wanted.items()
            }

        logger.info("stock_reserved", order_id=order_id, lines=wanted)

    def restore(self, order_id: str, lines: list[dict]) -> list[dict]:
        requested = merge_lines(lines)
        restored: list[dict] = []
        with self.catalog.lock:
            reservation = self._reservations.get(order_id)
            if reservation is None:
                logger.warning("stock_restore_without_reservation", order_id=order_id)
                return restored

            for book_id, quantity in requested.items():
                held = reservation.get(book_id)
                if held is None:
                    continue
                amount = min(quantity, held["reserved"] - held["restored"])
                if amount <= 0:
                    continue
                self.catalog._adjust_stock(book_id, amount)
                held["restored"] += amount
                restored.append({"book_id": book_id, "quantity": amount})

        logger.info("stock_restored", order_id=order_id, lines=restored)
        return restored

    def available(self, book_id: str) -> int:
        return self.catalog.stock_of(book_id)

    def reservation_for(self, order_id: str) -> dict[str, int]:
        with self.catalog.lock:
            reservation = self._reservations.get(order_id, {})
            return {
                book_id: held["reserved"] - held["restored"]
                for book_id, held in reservation.items()
                if held["reserved"] > held["restored"]
            }

    def reset(self) -> None:
        with self.catalog.lock:
            self._reservations.clear()
