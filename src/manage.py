"""Bookorders database management CLI.

Creates and drops the order store tables and, when
BOOKORDERS_STOCK_DATABASE_URI is set, the books and stock_reservations
tables used by the SQL stock ledger.

Usage:
    python src/manage.py setup-db   # Create all tables
    python src/manage.py drop-db    # Drop all tables
    python src/manage.py seed-books --count 200 --sellers 5
"""

import argparse
import sys


def setup_databases():
    from bookorders.config import get_settings
    from bookorders.domain import bookorders
    from bookorders.utils.db import setup_db, setup_stock_db

    print("Initializing bookorders domain...")
    bookorders.init()
    print("Creating order store schema...")
    setup_db(bookorders)
    if setup_stock_db(get_settings()):
        print("  stock tables ready.")
    else:
        print("  no stock database configured, skipping stock tables.")

    print("Done.")


def drop_databases():
    from bookorders.config import get_settings
    from bookorders.domain import bookorders
    from bookorders.utils.db import drop_db, drop_stock_db

    print("Initializing bookorders domain...")
    bookorders.init()
    print("Dropping order store schema...")
    drop_db(bookorders)
    if drop_stock_db(get_settings()):
        print("  stock tables dropped.")

    print("Done.")


def seed_books(count, sellers, stock):
    from bookorders.catalog.sql_adapter import SqlCatalog
    from bookorders.config import get_settings
    from bookorders.utils.db import stock_engine

    engine = stock_engine(get_settings())
    if engine is None:
        print("BOOKORDERS_STOCK_DATABASE_URI is not set, nothing to seed.")
        sys.exit(1)

    catalog = SqlCatalog(engine)
    for number in range(1, count + 1):
        seller = (number % sellers) + 1
        price = 100 + (number * 37) % 900
        catalog.add_book(f"lt-book-{number:04d}", f"Load Test Book {number}", price, stock, f"lt-seller-{seller}")
    # A single copy that concurrent checkouts compete for
    catalog.add_book("lt-last-copy", "Last Copy", 499, 1, "lt-seller-1")
    print(f"Seeded {count + 1} books for {sellers} sellers.")


def main():
    parser = argparse.ArgumentParser(description="Bookorders database management")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")
    seed = subparsers.add_parser("seed-books", help="Insert load-test books into the stock database")
    seed.add_argument("--count", type=int, default=200)
    seed.add_argument("--sellers", type=int, default=5)
    seed.add_argument("--stock", type=int, default=1000)

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_databases()
    elif args.command == "drop-db":
        drop_databases()
    elif args.command == "seed-books":
        seed_books(args.count, args.sellers, args.stock)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
