"""Keyed document store contract used by the sync and read paths.

The store is treated as a reliable keyed document store with three
capabilities: a conditional insert that fails distinguishably when the key
already exists, a cursor-paginated scan/query, and a get-by-key lookup.

The conditional insert is the only mutual exclusion in the system: two
overlapping backfill runs racing on the same record cannot both create it.

Implementations:
    DynamoDocumentStore   — AWS DynamoDB via boto3 (``src.services.dynamo``)
    InMemoryDocumentStore — dict-backed, deterministic page size; local runs and tests
"""

from __future__ import annotations

import copy
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable

logger = logging.getLogger("logbook.store")

Item = dict[str, Any]
Cursor = dict[str, Any]


class StoreError(RuntimeError):
    """Any store failure other than a conditional-insert conflict."""


class RecordExistsError(Exception):
    """Raised by ``put_item_if_absent`` when the key is already present.

    This is an expected outcome, not a failure: backfill uses it to detect
    that it has caught up with previously synchronized records.
    """

    def __init__(self, table: str, key: Any) -> None:
        super().__init__(f"{table}: item {key!r} already exists")
        self.table = table
        self.key = key


@dataclass
class ScanPage:
    """One page of a cursor-paginated scan or query.

    Attributes:
        items:               Items on this page (possibly empty even when more follow).
        continuation_cursor: Opaque cursor for the next page; None on the last page.
    """

    items: list[Item] = field(default_factory=list)
    continuation_cursor: Cursor | None = None


class DocumentStore(ABC):
    """Abstract keyed document store."""

    @abstractmethod
    async def get_item(self, table: str, key: Item) -> Item | None:
        """Return the item stored under ``key`` (e.g. ``{"id": "abc"}``), or None."""

    @abstractmethod
    async def put_item_if_absent(self, table: str, item: Item, key_name: str) -> None:
        """Insert ``item`` only if no item with the same ``key_name`` value exists.

        Raises:
            RecordExistsError: If the key is already present.
            StoreError:        On any other failure.
        """

    @abstractmethod
    async def scan_page(
        self,
        table: str,
        cursor: Cursor | None = None,
        projection: list[str] | None = None,
        filter_fn: Callable[[Item], bool] | None = None,
    ) -> ScanPage:
        """Return one page of a full-table scan starting after ``cursor``."""

    @abstractmethod
    async def query_page(
        self,
        table: str,
        index: str,
        key_name: str,
        key_value: Any,
        cursor: Cursor | None = None,
        limit: int | None = None,
        descending: bool = False,
    ) -> ScanPage:
        """Return one page of items whose ``key_name`` equals ``key_value`` on ``index``."""


def _project(item: Item, projection: list[str] | None) -> Item:
    if not projection:
        return copy.deepcopy(item)
    return {k: copy.deepcopy(item[k]) for k in projection if k in item}


class InMemoryDocumentStore(DocumentStore):
    """Dict-backed store with a fixed page size.

    Pages are cut by count rather than bytes, which lets tests force any
    number of pages.  Query indexes are described by ``indexes``:
    ``{index_name: (partition_attr, sort_attr | None)}``.
    """

    def __init__(
        self,
        page_size: int = 100,
        indexes: dict[str, tuple[str, str | None]] | None = None,
    ) -> None:
        self._page_size = page_size
        self._tables: dict[str, dict[Any, Item]] = {}
        self._indexes = indexes or {
            "workout_id-index": ("workout_id", None),
            "exercise_name-workout_date-index": ("exercise_name", "workout_date"),
        }
        self.put_calls = 0

    def table(self, name: str) -> dict[Any, Item]:
        return self._tables.setdefault(name, {})

    async def get_item(self, table: str, key: Item) -> Item | None:
        ((_, value),) = key.items()
        item = self.table(table).get(value)
        return copy.deepcopy(item) if item is not None else None

    async def put_item_if_absent(self, table: str, item: Item, key_name: str) -> None:
        self.put_calls += 1
        rows = self.table(table)
        key = item[key_name]
        if key in rows:
            raise RecordExistsError(table, key)
        rows[key] = copy.deepcopy(item)

    def _paginate(self, items: list[Item], cursor: Cursor | None, limit: int | None) -> ScanPage:
        start = int(cursor["offset"]) if cursor else 0
        size = self._page_size if limit is None else min(limit, self._page_size)
        end = start + size
        chunk = items[start:end]
        # A limit caps the whole result, as DynamoDB's Limit does per request
        more = end < len(items) and (limit is None or end - start < limit)
        return ScanPage(items=chunk, continuation_cursor={"offset": end} if more else None)

    async def scan_page(
        self,
        table: str,
        cursor: Cursor | None = None,
        projection: list[str] | None = None,
        filter_fn: Callable[[Item], bool] | None = None,
    ) -> ScanPage:
        rows = list(self.table(table).values())
        page = self._paginate(rows, cursor, None)
        # Filters apply after the page is cut, like a DynamoDB FilterExpression
        page.items = [
            _project(i, projection) for i in page.items if filter_fn is None or filter_fn(i)
        ]
        return page

    async def query_page(
        self,
        table: str,
        index: str,
        key_name: str,
        key_value: Any,
        cursor: Cursor | None = None,
        limit: int | None = None,
        descending: bool = False,
    ) -> ScanPage:
        partition, sort_attr = self._indexes.get(index, (key_name, None))
        rows = [i for i in self.table(table).values() if i.get(partition) == key_value]
        if sort_attr:
            rows.sort(key=lambda i: i.get(sort_attr) or "", reverse=descending)
        page = self._paginate(rows, cursor, limit)
        page.items = [copy.deepcopy(i) for i in page.items]
        return page
