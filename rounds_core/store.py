"""Document store abstraction and an in-memory implementation.

The core never owns persistence. Every component receives a ``DocumentStore``
and talks to it with Mongo-style filters and modifiers:

- filters are dicts of field -> value, with ``{"$in": [...]}`` / ``{"$ne": x}``
  value operators and a top-level ``"$or": [filter, ...]``
- sort is a list of ``(field, 1 | -1)`` pairs; missing fields sort first
- modifiers use ``$set``, ``$unset``, ``$pull`` and ``$addToSet``

``InMemoryStore`` is a thread-safe reference implementation used by the tests
and by embedders that do not need durability.
"""
from __future__ import annotations

import json
import logging
import threading
import uuid
from contextlib import contextmanager
from copy import deepcopy
from typing import Any, ContextManager, Dict, Iterator, List, Protocol, Sequence, Tuple

logger = logging.getLogger(__name__)

Filter = Dict[str, Any]
Modifier = Dict[str, Dict[str, Any]]
SortSpec = Sequence[Tuple[str, int]]


class DocumentStore(Protocol):
    def find(
        self,
        collection: str,
        query: Filter | None = None,
        *,
        sort: SortSpec | None = None,
        fields: Sequence[str] | None = None,
    ) -> List[Dict[str, Any]]:
        ...

    def find_one(
        self,
        collection: str,
        query: Filter | None = None,
        *,
        sort: SortSpec | None = None,
        fields: Sequence[str] | None = None,
    ) -> Dict[str, Any] | None:
        ...

    def count(self, collection: str, query: Filter | None = None) -> int:
        ...

    def insert(self, collection: str, doc: Dict[str, Any]) -> str:
        ...

    def update(self, collection: str, query: Filter, modifier: Modifier) -> int:
        ...

    def remove(self, collection: str, query: Filter) -> int:
        ...

    def transaction(self) -> ContextManager[None]:
        ...


_UPDATE_OPERATORS = {"$set", "$unset", "$pull", "$addToSet"}


def _matches_value(doc_value: Any, expected: Any) -> bool:
    if isinstance(expected, dict) and expected and all(k.startswith("$") for k in expected):
        for op, arg in expected.items():
            if op == "$in":
                if doc_value not in arg:
                    return False
            elif op == "$ne":
                if doc_value == arg:
                    return False
            else:
                raise ValueError(f"Unsupported filter operator {op}")
        return True
    return doc_value == expected


def matches(doc: Dict[str, Any], query: Filter | None) -> bool:
    """Return True if ``doc`` satisfies ``query``."""
    if not query:
        return True
    for key, expected in query.items():
        if key == "$or":
            if not any(matches(doc, sub) for sub in expected):
                return False
            continue
        if not _matches_value(doc.get(key), expected):
            return False
    return True


def _type_rank(value: Any) -> Tuple[int, Any]:
    # Mongo-like cross-type order: null < numbers < strings < objects < arrays < booleans
    if value is None:
        return (0, 0)
    if isinstance(value, bool):
        return (5, int(value))
    if isinstance(value, (int, float)):
        return (1, value)
    if isinstance(value, str):
        return (2, value)
    if isinstance(value, dict):
        return (3, json.dumps(value, sort_keys=True, default=str))
    if isinstance(value, (list, tuple)):
        return (4, json.dumps(list(value), sort_keys=True, default=str))
    return (6, str(value))


def sort_documents(docs: List[Dict[str, Any]], sort: SortSpec | None) -> List[Dict[str, Any]]:
    ordered = list(docs)
    if not sort:
        return ordered
    # Stable sorts applied from the least significant key up.
    for field, direction in reversed(list(sort)):
        ordered.sort(key=lambda d: _type_rank(d.get(field)), reverse=direction < 0)
    return ordered


def _project(doc: Dict[str, Any], fields: Sequence[str] | None) -> Dict[str, Any]:
    if not fields:
        return deepcopy(doc)
    wanted = set(fields) | {"_id"}
    return {k: deepcopy(v) for k, v in doc.items() if k in wanted}


def apply_modifier(doc: Dict[str, Any], modifier: Modifier) -> None:
    """Apply a Mongo-style modifier to ``doc`` in place."""
    unknown = set(modifier) - _UPDATE_OPERATORS
    if unknown:
        raise ValueError(f"Unsupported update operators: {sorted(unknown)}")

    for field, value in (modifier.get("$set") or {}).items():
        if field == "_id":
            continue
        doc[field] = deepcopy(value)
    for field in (modifier.get("$unset") or {}):
        doc.pop(field, None)
    for field, value in (modifier.get("$pull") or {}).items():
        current = doc.get(field)
        if isinstance(current, list):
            doc[field] = [item for item in current if item != value]
    for field, value in (modifier.get("$addToSet") or {}).items():
        current = doc.get(field)
        if current is None:
            doc[field] = [deepcopy(value)]
        elif isinstance(current, list):
            if value not in current:
                current.append(deepcopy(value))
        else:
            raise ValueError(f"$addToSet on non-list field {field}")


class InMemoryStore:
    """Dict-backed ``DocumentStore``.

    All calls are serialized by one re-entrant lock. ``transaction()`` holds
    the lock for the whole block and restores a snapshot if the block raises,
    so a failed batch leaves no partial writes behind.
    """

    def __init__(self) -> None:
        self._data: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._lock = threading.RLock()

    def _collection(self, name: str) -> Dict[str, Dict[str, Any]]:
        return self._data.setdefault(name, {})

    def find(self, collection, query=None, *, sort=None, fields=None):
        with self._lock:
            docs = [d for d in self._collection(collection).values() if matches(d, query)]
            return [_project(d, fields) for d in sort_documents(docs, sort)]

    def find_one(self, collection, query=None, *, sort=None, fields=None):
        found = self.find(collection, query, sort=sort, fields=fields)
        return found[0] if found else None

    def count(self, collection, query=None) -> int:
        with self._lock:
            return sum(1 for d in self._collection(collection).values() if matches(d, query))

    def insert(self, collection, doc) -> str:
        with self._lock:
            stored = deepcopy(doc)
            doc_id = stored.get("_id") or uuid.uuid4().hex
            stored["_id"] = doc_id
            docs = self._collection(collection)
            if doc_id in docs:
                raise ValueError(f"Duplicate _id {doc_id} in {collection}")
            docs[doc_id] = stored
            return doc_id

    def update(self, collection, query, modifier) -> int:
        with self._lock:
            hits = [d for d in self._collection(collection).values() if matches(d, query)]
            for doc in hits:
                apply_modifier(doc, modifier)
            return len(hits)

    def remove(self, collection, query) -> int:
        with self._lock:
            docs = self._collection(collection)
            doomed = [doc_id for doc_id, d in docs.items() if matches(d, query)]
            for doc_id in doomed:
                del docs[doc_id]
            return len(doomed)

    @contextmanager
    def transaction(self) -> Iterator[None]:
        with self._lock:
            snapshot = deepcopy(self._data)
            try:
                yield
            except Exception:
                logger.warning("Store transaction failed, restoring snapshot")
                self._data = snapshot
                raise


__all__ = [
    "DocumentStore",
    "InMemoryStore",
    "apply_modifier",
    "matches",
    "sort_documents",
]
