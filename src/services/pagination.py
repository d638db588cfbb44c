"""Drain cursor-paginated store reads into a single list.

DynamoDB caps a single scan response (1 MB), so a one-shot scan silently
truncates large tables.  ``scan_all`` loops on the continuation cursor until
the store stops returning one.  No sorting happens here; callers that need
an order sort afterwards (e.g. by ``start_time`` descending).
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable

from src.services.store import Cursor, DocumentStore, Item, ScanPage

logger = logging.getLogger("logbook.pagination")


async def scan_all(fetch_page: Callable[[Cursor | None], Awaitable[ScanPage]]) -> list[Item]:
    """Collect every item from a cursor-paginated read.

    Args:
        fetch_page: Async callable taking the previous page's continuation
                    cursor (None for the first page) and returning a ScanPage.

    Returns:
        All items, in page order.
    """
    items: list[Item] = []
    cursor: Cursor | None = None
    pages = 0
    while True:
        page = await fetch_page(cursor)
        pages += 1
        items.extend(page.items)
        cursor = page.continuation_cursor
        if cursor is None:
            break
    logger.debug("Paginated read drained %d pages, %d items", pages, len(items))
    return items


async def scan_table(
    store: DocumentStore,
    table: str,
    projection: list[str] | None = None,
    filter_fn: Callable[[Item], bool] | None = None,
) -> list[Item]:
    """Scan a whole table, following continuation cursors to the end."""
    return await scan_all(
        lambda cursor: store.scan_page(
            table, cursor=cursor, projection=projection, filter_fn=filter_fn
        )
    )


async def query_all(
    store: DocumentStore,
    table: str,
    index: str,
    key_name: str,
    key_value: Any,
    descending: bool = False,
) -> list[Item]:
    """Run an index query to exhaustion."""
    return await scan_all(
        lambda cursor: store.query_page(
            table, index, key_name, key_value, cursor=cursor, descending=descending
        )
    )
