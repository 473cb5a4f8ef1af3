"""SQLAlchemy-backed catalog reader.

Reads the ``books`` table that the SQL stock ledger updates. The table
definitions live here so that ``manage.py setup-db`` can create them.
"""

from sqlalchemy import (
    Column,
    Float,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    CheckConstraint,
    insert,
    select,
)
from sqlalchemy.engine import Engine

from bookorders.catalog.port import BookPricingInfo, CatalogReader
from bookorders.errors import BookNotFoundError

metadata = MetaData()

books = Table(
    "books",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("title", String(255), nullable=False),
    Column("price", Float, nullable=False),
    Column("stock", Integer, nullable=False, default=0),
    Column("seller_id", String(64), nullable=False),
    CheckConstraint("stock >= 0", name="ck_books_stock_non_negative"),
)

stock_reservations = Table(
    "stock_reservations",
    metadata,
    Column("order_id", String(64), primary_key=True),
    Column("book_id", String(64), ForeignKey("books.id"), primary_key=True),
    Column("quantity", Integer, nullable=False),
    Column("restored", Integer, nullable=False, default=0),
)


def create_tables(engine: Engine) -> None:
    metadata.create_all(engine)


def drop_tables(engine: Engine) -> None:
    metadata.drop_all(engine)


class SqlCatalog(CatalogReader):
    """Catalog reader over the ``books`` table."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def add_book(self, book_id: str, title: str, price: float, stock: int, seller_id: str) -> None:
        with self.engine.begin() as conn:
            conn.execute(
                insert(books).values(
                    id=book_id,
                    title=title,
                    price=float(price),
                    stock=int(stock),
                    seller_id=seller_id,
                )
            )

    def get_book_pricing_info(self, book_id: str) -> BookPricingInfo:
        with self.engine.connect() as conn:
            row = conn.execute(select(books).where(books.c.id == book_id)).mappings().first()
        if row is None:
            raise BookNotFoundError(book_id)
        return BookPricingInfo(
            book_id=row["id"],
            title=row["title"],
            price=row["price"],
            stock=row["stock"],
            seller_id=row["seller_id"],
        )
