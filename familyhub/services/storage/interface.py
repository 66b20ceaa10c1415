"""
Abstract Remote Data Service Interface

DESIGN DECISION: We define an abstract interface for the hosted table store.
This allows us to:
1. Talk to the hosted PostgREST endpoint in production
2. Use in-memory storage for testing and local development
3. Keep the store's sequencing logic decoupled from the wire format

The interface is intentionally small - we're not building an ORM.
Rows are plain dicts keyed by column name; the store converts them
to models. Only the predicates the store needs are supported:
- equality on any number of columns (AND)
- membership across one or more columns (OR between columns)
- ordering by a single column
- embedding child tables that reference the parent row
"""

from abc import ABC, abstractmethod
from typing import Any, Optional, Sequence
from uuid import UUID

from familyhub.models.audit import AuditEvent
from familyhub.models.user import AuthUser


Row = dict[str, Any]


class RemoteDataService(ABC):
    """
    Abstract interface for table-scoped CRUD on the remote store.

    Any backend (PostgREST, in-memory, ...) must implement these methods.
    Every method raises RemoteError (or a subclass) on failure.
    """

    @abstractmethod
    async def get_current_user(self) -> Optional[AuthUser]:
        """
        Resolve the user of the current session.

        Returns:
            The authenticated user, or None when there is no session
        """
        pass

    @abstractmethod
    async def select(
        self,
        table: str,
        *,
        eq: Optional[dict[str, Any]] = None,
        any_in: Optional[dict[str, Sequence[Any]]] = None,
        embed: Sequence[str] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> list[Row]:
        """
        Read rows from a table.

        Args:
            table: Table name
            eq: Column -> value equality filters, all must hold
            any_in: Column -> allowed values; a row matches when ANY
                    of the listed columns holds one of its values
            embed: Child tables to embed as lists under their own name
            order_by: Column to sort by
            descending: Sort direction

        Returns:
            Matching rows
        """
        pass

    @abstractmethod
    async def insert(self, table: str, row: Row) -> Row:
        """
        Insert one row.

        Returns:
            The stored row, including generated id and timestamps
        """
        pass

    @abstractmethod
    async def update(self, table: str, values: Row, *, eq: dict[str, Any]) -> list[Row]:
        """
        Update every row matching the equality filters.

        Returns:
            The updated rows (may be empty)
        """
        pass

    @abstractmethod
    async def delete(self, table: str, *, eq: dict[str, Any]) -> int:
        """
        Delete every row matching the equality filters.

        Returns:
            Number of rows deleted
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        """Get all events for a specific entity, oldest first."""
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get the most recent audit events, newest first."""
        pass


class RemoteError(Exception):
    """Base exception for any failure surfaced by a remote service."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class NotFoundError(RemoteError):
    """Entity not found in the remote store."""
    pass


class AuthError(Exception):
    """No authenticated user for an operation that needs one."""

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message)
