"""
In-process document store.

Used for local development and tests. It evaluates the same filter
dictionary as the PostgreSQL store and counts every query it serves, so
callers can check which reads actually reached the database.
"""

import copy
import re
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from shared.errors import ConflictError, ValidationError
from .documents import DocumentStore, Filter, Sort, apply_projection, new_document_id

READ_OPERATIONS = ("find", "find_by_id", "count", "distinct")


def _compare(operator: str, value: Any, operand: Any) -> bool:
    if value is None:
        return False
    if operator == "$gt":
        return value > operand
    if operator == "$gte":
        return value >= operand
    if operator == "$lt":
        return value < operand
    return value <= operand


def matches(document: Dict[str, Any], filter: Optional[Filter]) -> bool:
    """True when ``document`` satisfies every condition in ``filter``."""
    for field, condition in (filter or {}).items():
        value = document.get(field)

        if not isinstance(condition, dict):
            if value != condition:
                return False
            continue

        for operator, operand in condition.items():
            if operator in ("$gt", "$gte", "$lt", "$lte"):
                if not _compare(operator, value, operand):
                    return False
            elif operator == "$in":
                if value not in operand:
                    return False
            elif operator == "$regex":
                flags = re.IGNORECASE if "i" in condition.get("$options", "") else 0
                if value is None or not re.search(operand, str(value), flags):
                    return False
            elif operator == "$options":
                continue
            else:
                raise ValidationError(f"Unsupported filter operator {operator}", {"field": field})

    return True


class InMemoryDocumentStore(DocumentStore):
    """Dictionary-backed document store with per-operation query counters."""

    def __init__(self):
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self.queries: Counter = Counter()

    def _collection(self, collection: str) -> Dict[str, Dict[str, Any]]:
        return self._collections.setdefault(collection, {})

    def query_count(self, collection: Optional[str] = None, operation: Optional[str] = None) -> int:
        """Number of reads served, optionally narrowed by collection and operation."""
        return sum(
            count
            for (op, coll), count in self.queries.items()
            if op in READ_OPERATIONS
            and (collection is None or coll == collection)
            and (operation is None or op == operation)
        )

    def reset_counters(self):
        self.queries.clear()

    def seed(self, collection: str, documents: List[Dict[str, Any]]):
        """Load documents directly without counting them as queries."""
        target = self._collection(collection)
        for document in documents:
            doc = copy.deepcopy(document)
            doc["_id"] = str(doc.get("_id") or new_document_id())
            doc.setdefault("created_at", datetime.now(timezone.utc))
            doc.setdefault("updated_at", doc["created_at"])
            target[doc["_id"]] = doc

    async def find(self, collection, filter=None, *, projection=None, sort=None, limit=None, skip=None):
        self.queries[("find", collection)] += 1

        docs = [doc for doc in self._collection(collection).values() if matches(doc, filter)]
        docs = self._sorted(docs, sort)
        if skip:
            docs = docs[skip:]
        if limit is not None:
            docs = docs[:limit]

        return [apply_projection(copy.deepcopy(doc), projection) for doc in docs]

    @staticmethod
    def _sorted(docs: List[Dict[str, Any]], sort: Optional[Sort]) -> List[Dict[str, Any]]:
        for field, direction in reversed(list((sort or {}).items())):
            docs = sorted(
                docs,
                key=lambda doc: (doc.get(field) is None, doc.get(field)),
                reverse=direction < 0,
            )
        return docs

    async def find_by_id(self, collection, document_id):
        self.queries[("find_by_id", collection)] += 1
        doc = self._collection(collection).get(document_id)
        return copy.deepcopy(doc) if doc is not None else None

    async def count(self, collection, filter=None):
        self.queries[("count", collection)] += 1
        return sum(1 for doc in self._collection(collection).values() if matches(doc, filter))

    async def distinct(self, collection, field, filter=None):
        self.queries[("distinct", collection)] += 1
        values = {
            doc[field]
            for doc in self._collection(collection).values()
            if field in doc and matches(doc, filter)
        }
        return sorted(values)

    async def insert(self, collection, document):
        self.queries[("insert", collection)] += 1

        doc = copy.deepcopy(document)
        doc["_id"] = str(doc.get("_id") or new_document_id())
        now = datetime.now(timezone.utc)
        doc["created_at"] = doc.get("created_at") or now
        doc["updated_at"] = doc.get("updated_at") or now

        documents = self._collection(collection)
        if doc["_id"] in documents:
            raise ConflictError("Document already exists", {"collection": collection, "id": doc["_id"]})
        documents[doc["_id"]] = doc
        return copy.deepcopy(doc)

    async def update(self, collection, document_id, fields):
        self.queries[("update", collection)] += 1

        doc = self._collection(collection).get(document_id)
        if doc is None:
            return None
        doc.update({k: copy.deepcopy(v) for k, v in fields.items() if k not in ("_id", "created_at")})
        doc["updated_at"] = datetime.now(timezone.utc)
        return copy.deepcopy(doc)

    async def increment(self, collection, document_id, field, amount):
        self.queries[("increment", collection)] += 1

        doc = self._collection(collection).get(document_id)
        if doc is None:
            return None
        doc[field] = (doc.get(field) or 0) + amount
        doc["updated_at"] = datetime.now(timezone.utc)
        return copy.deepcopy(doc)

    async def delete(self, collection, document_id):
        self.queries[("delete", collection)] += 1
        return self._collection(collection).pop(document_id, None) is not None
