from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Callable, Iterable, TypeVar

from boto3.dynamodb.types import TypeSerializer

from .client import dynamodb_client, table_resource
from .codec import from_ddb, to_ddb
from .errors import DdbInternal, DdbNotFound
from .pagination import decode_next_token, encode_next_token
from .retry import ddb_call

T = TypeVar("T")

MAX_PAGE_SIZE = 500

_serializer = TypeSerializer()


def _attr_values(values: dict[str, Any]) -> dict[str, Any]:
    # The low-level client wants AttributeValue shapes ({"S": ...}, {"N": ...}).
    return {k: _serializer.serialize(v) for k, v in to_ddb(values).items()}


@dataclass(slots=True)
class Page:
    items: list[dict[str, Any]]
    next_token: str | None


def _request(
    base: dict[str, Any],
    *,
    condition_expression: str | None = None,
    expression_attribute_names: dict[str, str] | None = None,
    expression_attribute_values: dict[str, Any] | None = None,
) -> dict[str, Any]:
    req = dict(base)
    if condition_expression:
        req["ConditionExpression"] = condition_expression
    if expression_attribute_names:
        req["ExpressionAttributeNames"] = expression_attribute_names
    if expression_attribute_values:
        req["ExpressionAttributeValues"] = to_ddb(expression_attribute_values)
    return req


class DynamoTable:
    """
    The single MemeHub table. Items go through the Decimal codec on the way
    in and out; boto errors come back as DdbError subclasses.
    """

    def __init__(self, *, table_name: str):
        self.table_name = str(table_name)
        self._table = table_resource(self.table_name)
        self._client = dynamodb_client()

    def _call(self, operation: str, fn: Callable[[], T], key: dict[str, Any] | None = None) -> T:
        return ddb_call(operation, fn, table_name=self.table_name, key=key)

    def get_item(self, *, key: dict[str, Any]) -> dict[str, Any] | None:
        item = self._call("GetItem", lambda: self._table.get_item(Key=key).get("Item"), key)
        return from_ddb(item) if item else None

    def get_required(self, *, key: dict[str, Any], message: str = "Item not found") -> dict[str, Any]:
        item = self.get_item(key=key)
        if not item:
            raise DdbNotFound(message=message, operation="GetItem", table_name=self.table_name, key=key)
        return item

    def put_item(
        self,
        *,
        item: dict[str, Any],
        condition_expression: str | None = None,
        expression_attribute_names: dict[str, str] | None = None,
        expression_attribute_values: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        req = _request(
            {"Item": to_ddb(item)},
            condition_expression=condition_expression,
            expression_attribute_names=expression_attribute_names,
            expression_attribute_values=expression_attribute_values,
        )
        return self._call("PutItem", lambda: self._table.put_item(**req))

    def delete_item(self, *, key: dict[str, Any], condition_expression: str | None = None) -> dict[str, Any]:
        req = _request({"Key": key}, condition_expression=condition_expression)
        return self._call("DeleteItem", lambda: self._table.delete_item(**req), key)

    def update_item(
        self,
        *,
        key: dict[str, Any],
        update_expression: str,
        expression_attribute_names: dict[str, str] | None,
        expression_attribute_values: dict[str, Any],
        condition_expression: str | None = None,
        return_values: str = "ALL_NEW",
    ) -> dict[str, Any] | None:
        req = _request(
            {"Key": key, "UpdateExpression": update_expression, "ReturnValues": return_values},
            condition_expression=condition_expression,
            expression_attribute_names=expression_attribute_names,
            expression_attribute_values=expression_attribute_values,
        )
        attrs = self._call("UpdateItem", lambda: self._table.update_item(**req).get("Attributes"), key)
        return from_ddb(attrs) if attrs else None

    def query_page(
        self,
        *,
        key_condition_expression: Any,
        index_name: str | None = None,
        limit: int = 50,
        scan_index_forward: bool = False,
        filter_expression: Any | None = None,
        next_token: str | None = None,
    ) -> Page:
        req: dict[str, Any] = {
            "KeyConditionExpression": key_condition_expression,
            "ScanIndexForward": bool(scan_index_forward),
            "Limit": max(1, min(MAX_PAGE_SIZE, int(limit or 50))),
        }
        if index_name:
            req["IndexName"] = index_name
        if filter_expression is not None:
            req["FilterExpression"] = filter_expression
        start_key = decode_next_token(next_token) if next_token else None
        if start_key:
            req["ExclusiveStartKey"] = start_key

        resp = self._call("Query", lambda: self._table.query(**req))
        return Page(
            items=[from_ddb(it) for it in (resp.get("Items") or [])],
            next_token=encode_next_token(resp.get("LastEvaluatedKey")),
        )

    # --- transactions ---

    def transact_write(
        self,
        *,
        puts: Iterable[dict[str, Any]] = (),
        deletes: Iterable[dict[str, Any]] = (),
        updates: Iterable[dict[str, Any]] = (),
    ) -> None:
        """
        All-or-nothing write of items built with tx_put / tx_delete / tx_update.
        A failed condition on any of them cancels the lot and raises DdbConflict.
        """
        actions = [{"Put": p} for p in puts] + [{"Delete": d} for d in deletes] + [{"Update": u} for u in updates]
        if not actions:
            return
        self._call("TransactWriteItems", lambda: self._client.transact_write_items(TransactItems=actions))

    def tx_put(self, *, item: dict[str, Any], condition_expression: str | None = None) -> dict[str, Any]:
        out: dict[str, Any] = {"TableName": self.table_name, "Item": _attr_values(item)}
        if condition_expression:
            out["ConditionExpression"] = condition_expression
        return out

    def tx_delete(self, *, key: dict[str, Any], condition_expression: str | None = None) -> dict[str, Any]:
        out: dict[str, Any] = {"TableName": self.table_name, "Key": _attr_values(key)}
        if condition_expression:
            out["ConditionExpression"] = condition_expression
        return out

    def tx_update(
        self,
        *,
        key: dict[str, Any],
        update_expression: str,
        expression_attribute_values: dict[str, Any],
        expression_attribute_names: dict[str, str] | None = None,
        condition_expression: str | None = None,
    ) -> dict[str, Any]:
        out: dict[str, Any] = {
            "TableName": self.table_name,
            "Key": _attr_values(key),
            "UpdateExpression": update_expression,
            "ExpressionAttributeValues": _attr_values(expression_attribute_values),
        }
        if expression_attribute_names:
            out["ExpressionAttributeNames"] = expression_attribute_names
        if condition_expression:
            out["ConditionExpression"] = condition_expression
        return out


@lru_cache(maxsize=1)
def _table_for(name: str) -> DynamoTable:
    return DynamoTable(table_name=name)


def get_main_table() -> DynamoTable:
    from ...settings import settings

    if not settings.ddb_table_name:
        raise DdbInternal(message="DDB_TABLE_NAME is not set", operation="Config")
    return _table_for(settings.ddb_table_name)
