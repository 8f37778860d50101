"""Storage backends for RewardShop."""

from .base import AuditStore, DocumentStore, DOCUMENT_NAMES
from .json_files import JsonDocumentStore, JsonLinesAuditStore
from .memory import InMemoryAuditStore, InMemoryDocumentStore
from .sqlalchemy import AsyncSQLAlchemyStorage

__all__ = [
    "AuditStore",
    "DocumentStore",
    "DOCUMENT_NAMES",
    "JsonDocumentStore",
    "JsonLinesAuditStore",
    "InMemoryAuditStore",
    "InMemoryDocumentStore",
    "AsyncSQLAlchemyStorage",
]
