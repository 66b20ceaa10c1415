"""
Storage Services Package

Provides the abstract remote data service interface and its concrete
implementations: the hosted PostgREST endpoint and an in-memory store.
"""

from familyhub.services.storage.interface import (
    AuditStorageInterface,
    AuthError,
    NotFoundError,
    RemoteDataService,
    RemoteError,
    Row,
)
from familyhub.services.storage.audit_table import AUDIT_TABLE, TableAuditStorage
from familyhub.services.storage.memory import InMemoryDataService
from familyhub.services.storage.postgrest import (
    PostgrestClient,
    PostgrestDataService,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "RemoteDataService",
    "Row",
    # Exceptions
    "AuthError",
    "NotFoundError",
    "RemoteError",
    # Implementations
    "AUDIT_TABLE",
    "InMemoryDataService",
    "PostgrestClient",
    "PostgrestDataService",
    "TableAuditStorage",
]
