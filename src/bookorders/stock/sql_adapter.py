"""SQLAlchemy stock ledger.

Each reservation is one transaction: a conditional
``UPDATE books SET stock = stock - :qty WHERE id = :id AND stock >= :qty``
per book, followed by the order's rows in ``stock_reservations``. If any
update matches no row the transaction rolls back, so no line stays
decremented.
"""

import structlog
from sqlalchemy import and_, insert, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from bookorders.catalog.sql_adapter import books, stock_reservations
from bookorders.errors import BookNotFoundError, InsufficientStockError
from bookorders.stock.port import StockLedger, merge_lines

logger = structlog.get_logger(__name__)


class SqlStockLedger(StockLedger):
    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def reserve(self, order_id: str, lines: list[dict]) -> None:
        wanted = merge_lines(lines)
        try:
            with self.engine.begin() as conn:
                existing = conn.execute(
                    select(stock_reservations.c.book_id).where(stock_reservations.c.order_id == order_id)
                ).first()
                if existing is not None:
                    logger.info("stock_already_reserved", order_id=order_id)
                    return

                for book_id, quantity in wanted.items():
                    result = conn.execute(
                        update(books)
                        .where(and_(books.c.id == book_id, books.c.stock >= quantity))
                        .values(stock=books.c.stock - quantity)
                    )
                    if result.rowcount != 1:
                        available = conn.execute(select(books.c.stock).where(books.c.id == book_id)).scalar()
                        if available is None:
                            raise BookNotFoundError(book_id)
                        raise InsufficientStockError(book_id, quantity, available)

                conn.execute(
                    insert(stock_reservations),
                    [
                        {"order_id": order_id, "book_id": book_id, "quantity": quantity, "restored": 0}
                        for book_id, quantity in wanted.items()
                    ],
                )
        except IntegrityError:
            # A concurrent reserve for the same order committed first
            logger.info("stock_already_reserved", order_id=order_id)
            return

        logger.info("stock_reserved", order_id=order_id, lines=wanted)

    def restore(self, order_id: str, lines: list[dict]) -> list[dict]:
        requested = merge_lines(lines)
        restored: list[dict] = []
        with self.engine.begin() as conn:
            rows = conn.execute(
                select(stock_reservations).where(stock_reservations.c.order_id == order_id)
            ).mappings()
            held = {row["book_id"]: row for row in rows}

            for book_id, quantity in requested.items():
                row = held.get(book_id)
                if row is None:
                    continue
                amount = min(quantity, row["quantity"] - row["restored"])
                if amount <= 0:
                    continue
                # Guard on the restored count seen above so a concurrent restore cannot double up
                result = conn.execute(
                    update(stock_reservations)
                    .where(
                        and_(
                            stock_reservations.c.order_id == order_id,
                            stock_reservations.c.book_id == book_id,
                            stock_reservations.c.restored == row["restored"],
                        )
                    )
                    .values(restored=row["restored"] + amount)
                )
                if result.rowcount != 1:
                    continue
                conn.execute(update(books).where(books.c.id == book_id).values(stock=books.c.stock + amount))
                restored.append({"book_id": book_id, "quantity": amount})

        logger.info("stock_restored", order_id=order_id, lines=restored)
        return restored

    def available(self, book_id: str) -> int:
        with self.engine.connect() as conn:
            stock = conn.execute(select(books.c.stock).where(books.c.id == book_id)).scalar()
        if stock is None:
            raise BookNotFoundError(book_id)
        return stock

    def reservation_for(self, order_id: str) -> dict[str, int]:
        with self.engine.connect() as conn:
            rows = conn.execute(
                select(stock_reservations).where(stock_reservations.c.order_id == order_id)
            ).mappings()
            return {
                row["book_id"]: row["quantity"] - row["restored"]
                for row in rows
                if row["quantity"] > row["restored"]
            }
