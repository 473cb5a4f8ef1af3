"""Stock ledger port (abstract interface).

The ledger is the only writer of per-book stock counters. Reservations are
keyed by order so that every decrement can be undone exactly once and never
by more than was taken.
"""

from abc import ABC, abstractmethod


class StockLedger(ABC):
    """Abstract stock ledger interface.

    ``lines`` are lists of ``{"book_id": str, "quantity": int}`` dicts.
    """

    @abstractmethod
    def reserve(self, order_id: str, lines: list[dict]) -> None:
        """Decrement stock for every line, or for none of them.

        Reserving again for an order that already holds a reservation does
        nothing.

        Raises:
            BookNotFoundError: a book in ``lines`` does not exist.
            InsufficientStockError: a book does not have enough stock.
        """
        ...

    @abstractmethod
    def restore(self, order_id: str, lines: list[dict]) -> list[dict]:
        """Give back stock reserved for ``order_id``.

        Never gives back more than the order reserved, however often it is
        called. Returns the lines actually restored.
        """
        ...

    @abstractmethod
    def available(self, book_id: str) -> int:
        ...

    @abstractmethod
    def reservation_for(self, order_id: str) -> dict[str, int]:
        """Quantities still held by ``order_id`` per book."""
        ...


def merge_lines(lines: list[dict]) -> dict[str, int]:
    """Collapse lines into ``{book_id: quantity}``, rejecting bad quantities."""
    merged: dict[str, int] = {}
    for line in lines:
        quantity = int(line["quantity"])
        if quantity <= 0:
            raise ValueError(f"quantity for {line['book_id']} must be positive")
        merged[str(line["book_id"])] = merged.get(str(line["book_id"]), 0) + quantity
    return merged
