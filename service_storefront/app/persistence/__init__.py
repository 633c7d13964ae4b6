"""
Persistence package.

Documents are stored in PostgreSQL as JSONB rows and queried with a small
filter dictionary shared by every backend. An in-process store with the
same query semantics serves local development and tests.
"""

from shared.config import BaseConfig
from .documents import DocumentStore, PostgresDocumentStore
from .memory import InMemoryDocumentStore


def build_document_store(config: BaseConfig) -> DocumentStore:
    """Create the document store selected by ``document_backend``."""
    if config.document_backend == "memory":
        return InMemoryDocumentStore()
    return PostgresDocumentStore(config.postgres_dsn)


__all__ = [
    "DocumentStore",
    "InMemoryDocumentStore",
    "PostgresDocumentStore",
    "build_document_store",
]
