"""Catalog reader port (abstract interface).

The catalog owns book data; the ordering core only reads price, stock and
the owning seller, and snapshots them into the order at placement time.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class BookPricingInfo:
    """Live catalog data for one book."""

    book_id: str
    title: str
    price: float
    stock: int
    seller_id: str


class CatalogReader(ABC):
    """Abstract catalog lookup interface."""

    @abstractmethod
    def get_book_pricing_info(self, book_id: str) -> BookPricingInfo:
        """Return price, stock and seller for a book.

        Raises:
            BookNotFoundError: if the book does not exist.
        """
        ...
