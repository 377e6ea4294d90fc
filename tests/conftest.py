from __future__ import annotations

import copy
import importlib
import os
import re
import sys
import tempfile
from pathlib import Path
from typing import Any

import pytest

# Ensure the repo root is on sys.path so `import memehub.*` works in tests.
ROOT_DIR = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT_DIR))

# Settings are read once at import time.
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("ASSETS_DIR", tempfile.mkdtemp(prefix="memehub-assets-"))

from memehub.db.dynamodb.errors import DdbConflict, DdbNotFound, DdbUnavailable  # noqa: E402
from memehub.db.dynamodb.table import Page  # noqa: E402

REPO_MODULES = (
    "contacts_repo",
    "likes_repo",
    "media_repo",
    "memes_repo",
    "password_reset_repo",
    "permissions_repo",
    "platform_settings_repo",
    "reviews_repo",
    "roles_repo",
    "support_repo",
    "testimonials_repo",
    "transactions_repo",
    "users_repo",
)

_INDEX_KEYS = {
    None: ("pk", "sk"),
    "GSI1": ("gsi1pk", "gsi1sk"),
    "GSI2": ("gsi2pk", "gsi2sk"),
}


def _matches(condition: Any, item: dict[str, Any]) -> bool:
    expr = condition.get_expression()
    op = expr["operator"]
    values = expr["values"]
    if op == "AND":
        return _matches(values[0], item) and _matches(values[1], item)

    actual = item.get(values[0].name)
    if actual is None:
        return False
    if op == "=":
        return actual == values[1]
    if op == "begins_with":
        return str(actual).startswith(values[1])
    if op == "BETWEEN":
        return values[1] <= actual <= values[2]
    if op == ">=":
        return actual >= values[1]
    if op == ">":
        return actual > values[1]
    if op == "<=":
        return actual <= values[1]
    if op == "<":
        return actual < values[1]
    raise AssertionError(f"FakeTable does not support operator {op}")


class FakeTable:
    """
    In-memory stand-in for DynamoTable: key conditions, GSIs, and the
    attribute_exists / attribute_not_exists conditions the repos use.
    """

    table_name = "fake"

    def __init__(self):
        self.items: dict[tuple[str, str], dict[str, Any]] = {}
        # Tests set this to make matching puts fail like an unavailable table.
        self.fail_put_when: Any = None

    def _maybe_fail(self, item: dict[str, Any], operation: str) -> None:
        if self.fail_put_when is not None and self.fail_put_when(item):
            raise DdbUnavailable(message="DynamoDB unavailable", operation=operation, table_name=self.table_name)

    @staticmethod
    def _k(key: dict[str, Any]) -> tuple[str, str]:
        return (str(key["pk"]), str(key["sk"]))

    def _check(self, key: dict[str, Any], condition_expression: str | None, operation: str) -> None:
        exists = self._k(key) in self.items
        if condition_expression == "attribute_not_exists(pk)" and exists:
            raise DdbConflict(message="Conditional check failed", operation=operation, table_name=self.table_name)
        if condition_expression == "attribute_exists(pk)" and not exists:
            raise DdbConflict(message="Conditional check failed", operation=operation, table_name=self.table_name)

    def get_item(self, *, key):
        item = self.items.get(self._k(key))
        return copy.deepcopy(item) if item else None

    def get_required(self, *, key, message="Item not found"):
        item = self.get_item(key=key)
        if not item:
            raise DdbNotFound(message=message, operation="GetItem", table_name=self.table_name, key=key)
        return item

    def put_item(self, *, item, condition_expression=None, **_):
        self._maybe_fail(item, "PutItem")
        self._check(item, condition_expression, "PutItem")
        self.items[self._k(item)] = copy.deepcopy(item)
        return {}

    def delete_item(self, *, key, condition_expression=None):
        self._check(key, condition_expression, "DeleteItem")
        self.items.pop(self._k(key), None)
        return {}

    def update_item(
        self,
        *,
        key,
        update_expression,
        expression_attribute_names,
        expression_attribute_values,
        condition_expression=None,
        return_values="ALL_NEW",
    ):
        self._check(key, condition_expression, "UpdateItem")
        names = expression_attribute_names or {}
        values = expression_attribute_values or {}
        item = self.items.setdefault(self._k(key), dict(key))

        def _name(token: str) -> str:
            token = token.strip()
            return names.get(token, token)

        parts = re.split(r"\b(SET|ADD|REMOVE)\b", update_expression)
        for action, body in zip(parts[1::2], parts[2::2]):
            for clause in (c.strip() for c in body.split(",")):
                if not clause:
                    continue
                if action == "SET":
                    lhs, rhs = clause.split("=", 1)
                    item[_name(lhs)] = copy.deepcopy(values[rhs.strip()])
                elif action == "ADD":
                    attr, ref = clause.split()
                    item[_name(attr)] = (item.get(_name(attr)) or 0) + values[ref]
                else:
                    item.pop(_name(clause), None)
        return copy.deepcopy(item)

    def tx_put(self, *, item, condition_expression=None):
        return {"op": "put", "item": copy.deepcopy(item), "condition": condition_expression}

    def tx_delete(self, *, key, condition_expression=None):
        return {"op": "delete", "key": dict(key), "condition": condition_expression}

    def tx_update(
        self,
        *,
        key,
        update_expression,
        expression_attribute_values,
        expression_attribute_names=None,
        condition_expression=None,
    ):
        return {
            "op": "update",
            "key": dict(key),
            "condition": condition_expression,
            "kwargs": {
                "update_expression": update_expression,
                "expression_attribute_names": expression_attribute_names,
                "expression_attribute_values": expression_attribute_values,
            },
        }

    def transact_write(self, *, puts=(), deletes=(), updates=()):
        actions = [*puts, *deletes, *updates]
        # Validate everything first so a failure leaves the table untouched.
        for a in actions:
            target = a.get("item") or a["key"]
            if a["op"] == "put":
                self._maybe_fail(target, "TransactWriteItems")
            self._check(target, a["condition"], "TransactWriteItems")
        for a in actions:
            if a["op"] == "put":
                self.items[self._k(a["item"])] = copy.deepcopy(a["item"])
            elif a["op"] == "delete":
                self.items.pop(self._k(a["key"]), None)
            else:
                self.update_item(key=a["key"], **a["kwargs"])
        return {}

    def query_page(
        self,
        *,
        key_condition_expression,
        index_name=None,
        limit=50,
        scan_index_forward=False,
        filter_expression=None,
        next_token=None,
    ):
        assert filter_expression is None, "FakeTable does not evaluate filter expressions"
        pk_name, sk_name = _INDEX_KEYS[index_name]
        rows = [
            it
            for it in self.items.values()
            if pk_name in it and sk_name in it and _matches(key_condition_expression, it)
        ]
        rows.sort(key=lambda it: str(it[sk_name]), reverse=not scan_index_forward)

        start = int(next_token or 0)
        chunk = rows[start : start + int(limit)]
        more = start + int(limit) < len(rows)
        return Page(
            items=[copy.deepcopy(it) for it in chunk],
            next_token=str(start + int(limit)) if more else None,
        )


@pytest.fixture()
def table(monkeypatch):
    fake = FakeTable()
    for name in REPO_MODULES:
        module = importlib.import_module(f"memehub.repositories.{name}")
        monkeypatch.setattr(module, "get_main_table", lambda: fake)
    return fake


@pytest.fixture()
def client(table):
    from fastapi.testclient import TestClient

    from memehub.main import create_app

    return TestClient(create_app())


@pytest.fixture()
def make_user(table):
    from memehub.repositories import users_repo

    counter = {"n": 0}

    def _make(*, role: str = "user", is_public: bool = True, username: str | None = None, **kwargs):
        counter["n"] += 1
        name = username or f"{role}{counter['n']}"
        return users_repo.create_user(
            username=name,
            email=kwargs.pop("email", f"{name}@example.com"),
            password_hash=kwargs.pop("password_hash", "not-a-real-hash"),
            role=role,
            is_public=is_public,
            **kwargs,
        )

    return _make


def auth_headers(user: dict[str, Any]) -> dict[str, str]:
    from memehub.auth.tokens import token_for_user

    return {"Authorization": f"Bearer {token_for_user(user)}"}


@pytest.fixture()
def make_meme(table):
    from memehub.repositories import memes_repo

    def _make(owner: dict[str, Any], *, meme_type: str = "Meme", approved: bool = True, **fields):
        doc = {"url": "/assets/memes/x.png", "title": fields.pop("title", "funny"), **fields}
        if meme_type == memes_repo.GENERATED_IMAGE:
            doc.setdefault("prompt", "a cat")
            doc.setdefault("style", "cartoon")
            doc.setdefault("modelUsed", "dall-e-3")
        meme = memes_repo.create_meme(meme_type, user_id=owner["userId"], doc=doc)
        if approved:
            meme = memes_repo.update_meme(
                meme["memeId"],
                {"is_public": True, "publicationStatus": memes_repo.STATUS_APPROVED},
            )
        return meme

    return _make


@pytest.fixture()
def headers_for():
    return auth_headers
