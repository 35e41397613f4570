"""
Pytest configuration and shared fixtures for MDB_CASBIN tests.

This module provides:
- An in-memory stand-in for the motor database/collection/session surface
  used by the package (find, find_one, insert, delete, replace, transactions)
- Casbin model fixtures
- Metrics reset between tests
"""

import copy
from typing import Any, Dict, List, Optional
from unittest.mock import MagicMock

import pytest
from bson import ObjectId

from mdb_casbin.constants import DEFAULT_RBAC_MODEL
from mdb_casbin.model_store import parse_model
from mdb_casbin.observability import get_metrics_collector

# ============================================================================
# IN-MEMORY MONGODB FIXTURES
# ============================================================================


def _matches(doc: Dict[str, Any], query: Dict[str, Any]) -> bool:
    for key, condition in query.items():
        if isinstance(condition, dict) and "$exists" in condition:
            if (key in doc) != condition["$exists"]:
                return False
        elif doc.get(key) != condition:
            return False
    return True


class FakeCursor:
    """Cursor returned by FakeCollection.find()."""

    def __init__(self, docs: List[Dict[str, Any]]):
        self._docs = docs

    async def to_list(self, length: Optional[int] = None) -> List[Dict[str, Any]]:
        return list(self._docs) if length is None else list(self._docs[:length])


class FakeCollection:
    """
    In-memory collection with the async methods the package calls.

    Set ``failures[method_name] = exception`` to make a method raise.
    """

    def __init__(self, name: str):
        self.name = name
        self.docs: List[Dict[str, Any]] = []
        self.failures: Dict[str, Exception] = {}
        self.indexes: Dict[str, Any] = {}

    def _check(self, method: str) -> None:
        if method in self.failures:
            raise self.failures[method]

    def find(self, query: Optional[Dict[str, Any]] = None, session: Any = None) -> FakeCursor:
        self._check("find")
        query = query or {}
        return FakeCursor([copy.deepcopy(d) for d in self.docs if _matches(d, query)])

    async def find_one(self, query: Dict[str, Any], session: Any = None):
        self._check("find_one")
        for doc in self.docs:
            if _matches(doc, query):
                return copy.deepcopy(doc)
        return None

    async def insert_one(self, doc: Dict[str, Any], session: Any = None):
        self._check("insert_one")
        doc.setdefault("_id", ObjectId())
        self.docs.append(copy.deepcopy(doc))
        return MagicMock(inserted_id=doc["_id"])

    async def insert_many(self, docs: List[Dict[str, Any]], session: Any = None):
        self._check("insert_many")
        ids = []
        for doc in docs:
            doc.setdefault("_id", ObjectId())
            self.docs.append(copy.deepcopy(doc))
            ids.append(doc["_id"])
        return MagicMock(inserted_ids=ids)

    async def delete_many(self, query: Dict[str, Any], session: Any = None):
        self._check("delete_many")
        kept = [d for d in self.docs if not _matches(d, query)]
        deleted = len(self.docs) - len(kept)
        self.docs = kept
        return MagicMock(deleted_count=deleted)

    async def replace_one(
        self,
        query: Dict[str, Any],
        doc: Dict[str, Any],
        upsert: bool = False,
        session: Any = None,
    ):
        self._check("replace_one")
        for i, existing in enumerate(self.docs):
            if _matches(existing, query):
                self.docs[i] = {**copy.deepcopy(doc), "_id": existing["_id"]}
                return MagicMock(matched_count=1, upserted_id=None)
        if upsert:
            new_doc = {**copy.deepcopy(doc), "_id": ObjectId()}
            self.docs.append(new_doc)
            return MagicMock(matched_count=0, upserted_id=new_doc["_id"])
        return MagicMock(matched_count=0, upserted_id=None)

    async def create_index(self, keys: Any, name: Optional[str] = None):
        self._check("create_index")
        self.indexes[name] = keys
        return name


class FakeSession:
    """Session whose transactions restore every collection when the callback fails."""

    def __init__(self, client: "FakeClient"):
        self._client = client

    async def __aenter__(self) -> "FakeSession":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        return False

    async def with_transaction(self, callback, **kwargs):
        snapshot = {
            name: copy.deepcopy(coll.docs) for name, coll in self._client.db.collections.items()
        }
        self._client.transactions += 1
        try:
            return await callback(self)
        except Exception:
            for name, docs in snapshot.items():
                self._client.db.collections[name].docs = docs
            raise


class FakeClient:
    def __init__(self):
        self.db: "FakeDatabase" = None  # type: ignore[assignment]
        self.transactions = 0
        self.closed = False

    async def start_session(self) -> FakeSession:
        return FakeSession(self)

    def close(self) -> None:
        self.closed = True


class FakeDatabase:
    """In-memory database; collections are created on first access."""

    def __init__(self, name: str = "test_db"):
        self.name = name
        self.collections: Dict[str, FakeCollection] = {}
        self.client = FakeClient()
        self.client.db = self

    def __getitem__(self, name: str) -> FakeCollection:
        if name not in self.collections:
            self.collections[name] = FakeCollection(name)
        return self.collections[name]


@pytest.fixture
def fake_database() -> FakeDatabase:
    """Provide an empty in-memory database."""
    return FakeDatabase()


# ============================================================================
# CASBIN FIXTURES
# ============================================================================


@pytest.fixture
def rbac_model():
    """Provide an empty RBAC model (p and g sections)."""
    return parse_model(DEFAULT_RBAC_MODEL)


@pytest.fixture
def model_file(tmp_path):
    """Write the default RBAC model to a .conf file."""
    path = tmp_path / "rbac_model.conf"
    path.write_text(DEFAULT_RBAC_MODEL, encoding="utf-8")
    return path


# ============================================================================
# METRICS
# ============================================================================


@pytest.fixture(autouse=True)
def reset_metrics():
    """Clear the global metrics collector around each test."""
    get_metrics_collector().reset()
    yield
    get_metrics_collector().reset()
