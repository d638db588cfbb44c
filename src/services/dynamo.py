"""AWS DynamoDB implementation of the document store.

boto3 is synchronous; every call is pushed onto a worker thread with
``asyncio.to_thread`` so a slow table never stalls the event loop (cached
reads keep being served while a backfill waits on DynamoDB).

DynamoDB rejects Python floats, so items are converted to ``Decimal`` on the
way in and back to ``int``/``float`` on the way out.
"""

from __future__ import annotations

import asyncio
import json
import logging
from decimal import Decimal
from typing import Any, Callable

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from src.config import Settings, get_settings
from src.services.store import (
    Cursor,
    DocumentStore,
    Item,
    RecordExistsError,
    ScanPage,
    StoreError,
)

logger = logging.getLogger("logbook.dynamo")


def to_dynamo(item: Item) -> Item:
    """Return a copy of ``item`` with every float replaced by a Decimal."""
    return json.loads(json.dumps(item, default=str), parse_float=Decimal)


def from_dynamo(value: Any) -> Any:
    """Recursively turn DynamoDB Decimals back into ints or floats."""
    if isinstance(value, list):
        return [from_dynamo(v) for v in value]
    if isinstance(value, dict):
        return {k: from_dynamo(v) for k, v in value.items()}
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    return value


def create_dynamo_resource(settings: Settings | None = None) -> Any:
    """Build a boto3 DynamoDB resource from settings.

    Credentials fall back to the default boto3 chain when not configured.
    """
    s = settings or get_settings()
    return boto3.resource(
        "dynamodb",
        region_name=s.aws_region,
        aws_access_key_id=s.aws_access_key_id or None,
        aws_secret_access_key=s.aws_secret_access_key or None,
        config=BotoConfig(
            retries={"max_attempts": 3, "mode": "standard"},
            connect_timeout=5,
            read_timeout=30,
        ),
    )


class DynamoDocumentStore(DocumentStore):
    """DocumentStore backed by DynamoDB tables.

    Args:
        resource: A boto3 DynamoDB service resource (``boto3.resource("dynamodb")``).
    """

    def __init__(self, resource: Any) -> None:
        self._resource = resource
        self._tables: dict[str, Any] = {}

    def _table(self, name: str) -> Any:
        if name not in self._tables:
            self._tables[name] = self._resource.Table(name)
        return self._tables[name]

    async def _call(self, fn: Callable[..., Any], **kwargs: Any) -> Any:
        try:
            return await asyncio.to_thread(fn, **kwargs)
        except ClientError as exc:
            raise StoreError(f"DynamoDB request failed: {exc}") from exc
        except BotoCoreError as exc:
            raise StoreError(f"DynamoDB unreachable: {exc}") from exc

    async def get_item(self, table: str, key: Item) -> Item | None:
        result = await self._call(self._table(table).get_item, Key=key)
        item = result.get("Item")
        return from_dynamo(item) if item is not None else None

    async def put_item_if_absent(self, table: str, item: Item, key_name: str) -> None:
        try:
            await asyncio.to_thread(
                self._table(table).put_item,
                Item=to_dynamo(item),
                ConditionExpression="attribute_not_exists(#k)",
                ExpressionAttributeNames={"#k": key_name},
            )
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException":
                raise RecordExistsError(table, item[key_name]) from exc
            raise StoreError(f"DynamoDB put on {table} failed: {exc}") from exc
        except BotoCoreError as exc:
            raise StoreError(f"DynamoDB unreachable: {exc}") from exc

    async def scan_page(
        self,
        table: str,
        cursor: Cursor | None = None,
        projection: list[str] | None = None,
        filter_fn: Callable[[Item], bool] | None = None,
    ) -> ScanPage:
        params: dict[str, Any] = {}
        if cursor:
            params["ExclusiveStartKey"] = cursor
        if projection:
            names = {f"#p{i}": attr for i, attr in enumerate(projection)}
            params["ProjectionExpression"] = ", ".join(names)
            params["ExpressionAttributeNames"] = names

        result = await self._call(self._table(table).scan, **params)
        items = [from_dynamo(i) for i in result.get("Items", [])]
        if filter_fn is not None:
            items = [i for i in items if filter_fn(i)]
        return ScanPage(items=items, continuation_cursor=result.get("LastEvaluatedKey"))

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
        params: dict[str, Any] = {
            "IndexName": index,
            "KeyConditionExpression": "#k = :v",
            "ExpressionAttributeNames": {"#k": key_name},
            "ExpressionAttributeValues": {":v": key_value},
            "ScanIndexForward": not descending,
        }
        if cursor:
            params["ExclusiveStartKey"] = cursor
        if limit is not None:
            params["Limit"] = limit

        result = await self._call(self._table(table).query, **params)
        return ScanPage(
            items=[from_dynamo(i) for i in result.get("Items", [])],
            continuation_cursor=result.get("LastEvaluatedKey"),
        )
