"""
Document persistence for the Storefront service.

Documents live in a single PostgreSQL table keyed by (collection, id) with the
body in a JSONB column. Queries use a small document-filter dictionary:

    {"category": "laptops"}                          equality
    {"created_at": {"$gte": start, "$lte": end}}     range
    {"price": {"$lte": 500}}                         numeric comparison
    {"status": {"$in": ["Processing", "Shipped"]}}   membership
    {"name": {"$regex": "phone", "$options": "i"}}   regular expression
"""

import json
import uuid
from abc import ABC, abstractmethod
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

import asyncpg

from shared.errors import ServiceError, ValidationError
from shared.logging import get_logger

Filter = Dict[str, Any]
Sort = Dict[str, int]

COLUMN_FIELDS = {"_id": "id", "created_at": "created_at", "updated_at": "updated_at"}
COMPARISON_OPERATORS = {"$gt": ">", "$gte": ">=", "$lt": "<", "$lte": "<="}


class DocumentStore(ABC):
    """Query interface the read-through cache and mutation handlers rely on."""

    async def start(self):
        """Open connections."""

    async def stop(self):
        """Close connections."""

    async def health_check(self) -> bool:
        return True

    @abstractmethod
    async def find(
        self,
        collection: str,
        filter: Optional[Filter] = None,
        *,
        projection: Optional[Sequence[str]] = None,
        sort: Optional[Sort] = None,
        limit: Optional[int] = None,
        skip: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Return documents matching ``filter``."""

    @abstractmethod
    async def find_by_id(self, collection: str, document_id: str) -> Optional[Dict[str, Any]]:
        """Return one document or None."""

    @abstractmethod
    async def count(self, collection: str, filter: Optional[Filter] = None) -> int:
        """Count documents matching ``filter``."""

    @abstractmethod
    async def distinct(self, collection: str, field: str, filter: Optional[Filter] = None) -> List[Any]:
        """Distinct values of ``field`` among matching documents."""

    @abstractmethod
    async def insert(self, collection: str, document: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a document, assigning ``_id`` and timestamps when absent."""

    @abstractmethod
    async def update(self, collection: str, document_id: str, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Merge ``fields`` into a document; None when it does not exist."""

    @abstractmethod
    async def increment(self, collection: str, document_id: str, field: str, amount: float) -> Optional[Dict[str, Any]]:
        """Atomically add ``amount`` to a numeric field; None when the document does not exist."""

    @abstractmethod
    async def delete(self, collection: str, document_id: str) -> bool:
        """Delete a document; False when it does not exist."""


def new_document_id() -> str:
    return uuid.uuid4().hex


def apply_projection(document: Dict[str, Any], projection: Optional[Sequence[str]]) -> Dict[str, Any]:
    """Keep only projected fields. ``_id`` and ``created_at`` are always kept."""
    if not projection:
        return document
    keep = set(projection) | {"_id", "created_at"}
    return {key: value for key, value in document.items() if key in keep}


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if hasattr(value, "value"):
        return value.value
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _encode_json(value: Any) -> str:
    return json.dumps(value, default=_json_default)


class FilterCompiler:
    """Translate a document filter into a SQL WHERE clause over the documents table."""

    def __init__(self, first_param: int = 2):
        self._params: List[Any] = []
        self._first_param = first_param

    @property
    def params(self) -> List[Any]:
        return self._params

    def _param(self, value: Any) -> str:
        self._params.append(value)
        return f"${self._first_param + len(self._params) - 1}"

    def compile(self, filter: Optional[Filter]) -> str:
        clauses = ["collection = $1"]
        for field, condition in (filter or {}).items():
            clauses.extend(self._compile_field(field, condition))
        return " AND ".join(clauses)

    def _compile_field(self, field: str, condition: Any) -> List[str]:
        column = COLUMN_FIELDS.get(field)
        if not isinstance(condition, dict):
            if column:
                return [f"{column} = {self._param(condition)}"]
            return [f"data @> {self._param({field: condition})}::jsonb"]

        clauses = []
        for operator, operand in condition.items():
            if operator in COMPARISON_OPERATORS:
                sql_op = COMPARISON_OPERATORS[operator]
                if column:
                    clauses.append(f"{column} {sql_op} {self._param(operand)}")
                else:
                    clauses.append(f"(data->>'{field}')::numeric {sql_op} {self._param(operand)}")
            elif operator == "$in":
                target = column or f"data->>'{field}'"
                clauses.append(f"{target} = ANY({self._param([str(v) for v in operand])}::text[])")
            elif operator == "$regex":
                regex_op = "~*" if "i" in condition.get("$options", "") else "~"
                clauses.append(f"data->>'{field}' {regex_op} {self._param(operand)}")
            elif operator == "$options":
                continue
            else:
                raise ValidationError(f"Unsupported filter operator {operator}", {"field": field})
        return clauses


def compile_sort(sort: Optional[Sort]) -> str:
    if not sort:
        return ""
    parts = []
    for field, direction in sort.items():
        column = COLUMN_FIELDS.get(field, f"data->'{field}'")
        parts.append(f"{column} {'ASC' if direction >= 0 else 'DESC'}")
    return " ORDER BY " + ", ".join(parts)


class PostgresDocumentStore(DocumentStore):
    """PostgreSQL JSONB document store."""

    def __init__(self, dsn: str):
        self.dsn = dsn
        self.logger = get_logger("storefront.persistence.postgres")
        self.pool: Optional[asyncpg.Pool] = None

    async def start(self):
        """Start the persistence layer."""
        try:
            self.pool = await asyncpg.create_pool(
                self.dsn,
                min_size=2,
                max_size=10,
                command_timeout=30,
                init=self._init_connection,
            )
            await self._create_tables()
            self.logger.info("PostgreSQL document store started")

        except (OSError, asyncpg.PostgresError) as e:
            self.logger.error("Failed to start PostgreSQL document store", error=str(e))
            raise ServiceError("Document store unavailable", {"error": str(e)}) from e

    async def stop(self):
        """Stop the persistence layer."""
        if self.pool:
            await self.pool.close()
            self.pool = None
            self.logger.info("PostgreSQL document store stopped")

    async def health_check(self) -> bool:
        if not self.pool:
            return False
        try:
            async with self.pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
            return True
        except (OSError, asyncpg.PostgresError):
            return False

    @staticmethod
    async def _init_connection(conn: asyncpg.Connection):
        await conn.set_type_codec(
            "jsonb",
            encoder=_encode_json,
            decoder=json.loads,
            schema="pg_catalog",
        )

    async def _create_tables(self):
        async with self.pool.acquire() as conn:
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS documents (
                    collection VARCHAR(64) NOT NULL,
                    id VARCHAR(255) NOT NULL,
                    data JSONB NOT NULL DEFAULT '{}',
                    created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW(),
                    updated_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW(),
                    PRIMARY KEY (collection, id)
                );
            """)
            await conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_documents_created
                ON documents(collection, created_at DESC);
            """)
            await conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_documents_data
                ON documents USING GIN (data jsonb_path_ops);
            """)

    @staticmethod
    def _row_to_document(row: asyncpg.Record) -> Dict[str, Any]:
        document = dict(row["data"])
        document["_id"] = row["id"]
        document["created_at"] = row["created_at"]
        document["updated_at"] = row["updated_at"]
        return document

    def _where(self, collection: str, filter: Optional[Filter]) -> Tuple[str, List[Any]]:
        compiler = FilterCompiler()
        clause = compiler.compile(filter)
        return clause, [collection, *compiler.params]

    async def find(self, collection, filter=None, *, projection=None, sort=None, limit=None, skip=None):
        where, params = self._where(collection, filter)
        query = f"SELECT id, data, created_at, updated_at FROM documents WHERE {where}{compile_sort(sort)}"
        if limit is not None:
            params.append(limit)
            query += f" LIMIT ${len(params)}"
        if skip:
            params.append(skip)
            query += f" OFFSET ${len(params)}"

        async with self.pool.acquire() as conn:
            rows = await conn.fetch(query, *params)
        return [apply_projection(self._row_to_document(row), projection) for row in rows]

    async def find_by_id(self, collection, document_id):
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                "SELECT id, data, created_at, updated_at FROM documents WHERE collection = $1 AND id = $2",
                collection, document_id,
            )
        return self._row_to_document(row) if row else None

    async def count(self, collection, filter=None):
        where, params = self._where(collection, filter)
        async with self.pool.acquire() as conn:
            return await conn.fetchval(f"SELECT COUNT(*) FROM documents WHERE {where}", *params)

    async def distinct(self, collection, field, filter=None):
        where, params = self._where(collection, filter)
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                f"SELECT DISTINCT data->'{field}' AS value FROM documents "
                f"WHERE {where} AND data ? '{field}' ORDER BY value",
                *params,
            )
        return [row["value"] for row in rows]

    async def insert(self, collection, document):
        body = dict(document)
        document_id = str(body.pop("_id", None) or new_document_id())
        now = datetime.now(timezone.utc)
        created_at = body.pop("created_at", None) or now
        updated_at = body.pop("updated_at", None) or now

        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                """
                INSERT INTO documents (collection, id, data, created_at, updated_at)
                VALUES ($1, $2, $3, $4, $5)
                RETURNING id, data, created_at, updated_at
                """,
                collection, document_id, body, created_at, updated_at,
            )
        self.logger.debug("Document inserted", collection=collection, document_id=document_id)
        return self._row_to_document(row)

    async def update(self, collection, document_id, fields):
        body = {k: v for k, v in fields.items() if k not in COLUMN_FIELDS}
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                """
                UPDATE documents SET data = data || $3, updated_at = NOW()
                WHERE collection = $1 AND id = $2
                RETURNING id, data, created_at, updated_at
                """,
                collection, document_id, body,
            )
        return self._row_to_document(row) if row else None

    async def increment(self, collection, document_id, field, amount):
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                """
                UPDATE documents
                SET data = data || jsonb_build_object($3::text, COALESCE((data->>$3)::numeric, 0) + $4),
                    updated_at = NOW()
                WHERE collection = $1 AND id = $2
                RETURNING id, data, created_at, updated_at
                """,
                collection, document_id, field, amount,
            )
        return self._row_to_document(row) if row else None

    async def delete(self, collection, document_id):
        async with self.pool.acquire() as conn:
            status = await conn.execute(
                "DELETE FROM documents WHERE collection = $1 AND id = $2",
                collection, document_id,
            )
        return status.endswith(" 1")
