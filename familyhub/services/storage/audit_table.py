"""
Audit storage on top of the remote data service.

Events go to the `audit_events` table of the same project, so they
are visible next to the data they describe.
"""

from uuid import UUID

import structlog

from familyhub.models.audit import AuditEvent
from familyhub.services.storage.interface import (
    AuditStorageInterface,
    RemoteDataService,
    RemoteError,
)


AUDIT_TABLE = "audit_events"

logger = structlog.get_logger(__name__)


class TableAuditStorage(AuditStorageInterface):
    """Append-only audit log stored as rows of one table."""

    def __init__(self, data_service: RemoteDataService, table: str = AUDIT_TABLE):
        self._data = data_service
        self._table = table

    async def append_event(self, event: AuditEvent) -> bool:
        try:
            await self._data.insert(self._table, event.to_row())
            return True
        except RemoteError as e:
            # Audit logging should not break the main flow
            logger.warning(
                "audit_append_failed",
                error=str(e),
                event_id=str(event.event_id),
            )
            return False

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        rows = await self._data.select(
            self._table,
            eq={"entity_type": entity_type, "entity_id": str(entity_id)},
            order_by="timestamp",
        )
        return [AuditEvent.model_validate(row) for row in rows]

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        rows = await self._data.select(
            self._table,
            order_by="timestamp",
            descending=True,
        )
        return [AuditEvent.model_validate(row) for row in rows[:limit]]
