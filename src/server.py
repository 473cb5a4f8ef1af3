"""Protean Engine runner for the bookorders domain.

Runs the Engine that processes order events asynchronously, so the
notification handlers run off the request path:
- OutboxProcessor: publishes committed order events to the broker
- StreamSubscriptions: reads the broker and invokes event handlers

Usage:
    python src/server.py
"""

import asyncio

from protean.server.engine import Engine

from bookorders.config import get_settings
from bookorders.domain import bookorders
from bookorders.utils.db import configure_stock_backend
from bookorders.utils.logging import configure_logging


async def run():
    bookorders.init()
    configure_stock_backend(get_settings())
    await Engine(bookorders).run()


def main():
    configure_logging()
    asyncio.run(run())


if __name__ == "__main__":
    main()
