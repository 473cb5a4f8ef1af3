"""In-memory catalog for development and testing.

Holds the per-book stock counters that the in-memory stock ledger mutates.
All reads and writes of a counter happen under ``lock`` so that a ledger
sharing the catalog can do check-then-decrement atomically.
"""

import threading

from bookorders.catalog.port import BookPricingInfo, CatalogReader
from bookorders.errors import BookNotFoundError


class InMemoryCatalog(CatalogReader):
    """Dictionary-backed catalog keyed by book id."""

    def __init__(self) -> None:
        self.lock = threading.RLock()
        self._books: dict[str, dict] = {}

    def add_book(self, book_id: str, title: str, price: float, stock: int, seller_id: str) -> None:
        """Create or replace a book record."""
        if stock < 0:
            raise ValueError("stock must not be negative")
        with self.lock:
            self._books[book_id] = {
                "title": title,
                "price": float(price),
                "stock": int(stock),
                "seller_id": seller_id,
            }

    def set_price(self, book_id: str, price: float) -> None:
        with self.lock:
            self._record(book_id)["price"] = float(price)

    def get_book_pricing_info(self, book_id: str) -> BookPricingInfo:
        with self.lock:
            book = self._record(book_id)
            return BookPricingInfo(
                book_id=book_id,
                title=book["title"],
                price=book["price"],
                stock=book["stock"],
                seller_id=book["seller_id"],
            )

    def stock_of(self, book_id: str) -> int:
        with self.lock:
            return self._record(book_id)["stock"]

    def _record(self, book_id: str) -> dict:
        try:
            return self._books[book_id]
        except KeyError:
            raise BookNotFoundError(book_id) from None

    def _adjust_stock(self, book_id: str, delta: int) -> None:
        """Apply a stock delta. Callers must hold ``lock``."""
        book = self._record(book_id)
        new_stock = book["stock"] + delta
        if new_stock < 0:
            raise ValueError(f"stock for {book_id} would become negative")
        book["stock"] = new_stock

    def reset(self) -> None:
        with self.lock:
            self._books.clear()
