"""
Audit Logger

DESIGN DECISION: Every significant store action is logged.
This provides:
1. Traceability of balance changes
2. Debugging capability for half-finished multi-step operations
3. A history the family can look back at

The audit logger:
- Is async so it can persist without blocking on a sync client
- Gracefully handles failures (doesn't crash the app if logging fails)
"""

from typing import Optional, Union
from uuid import UUID

import structlog

from familyhub.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
)
from familyhub.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An audit storage backend, when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("familyhub.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        elif event.severity.value == "debug":
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_mirror_synced(self, member_count: int, transaction_count: int) -> None:
        await self.log(AuditEventBuilder.mirror_synced(member_count, transaction_count))

    async def log_sync_failed(self, error_message: str) -> None:
        await self.log(AuditEventBuilder.sync_failed(error_message))

    async def log_member_changed(
        self,
        event_type: AuditEventType,
        member_id: UUID,
        fields: Optional[list[str]] = None,
    ) -> None:
        await self.log(AuditEventBuilder.member_changed(event_type, member_id, fields))

    async def log_record_changed(
        self,
        event_type: AuditEventType,
        entity_type: str,
        entity_id: UUID,
        member_id: UUID,
    ) -> None:
        await self.log(
            AuditEventBuilder.record_changed(event_type, entity_type, entity_id, member_id)
        )

    async def log_recommendations_refreshed(self, member_id: UUID, count: int) -> None:
        await self.log(AuditEventBuilder.recommendations_refreshed(member_id, count))

    async def log_recommendations_failed(self, member_id: UUID, error_message: str) -> None:
        await self.log(AuditEventBuilder.recommendations_failed(member_id, error_message))

    async def log_transfer_recorded(
        self,
        transaction_id: UUID,
        from_id: UUID,
        to_id: UUID,
        amount: str,
    ) -> None:
        await self.log(
            AuditEventBuilder.transfer_recorded(transaction_id, from_id, to_id, amount)
        )

    async def log_transfer_rejected(
        self,
        from_id: Union[UUID, str],
        to_id: Union[UUID, str],
        amount: str,
        reason: str,
    ) -> None:
        await self.log(AuditEventBuilder.transfer_rejected(from_id, to_id, amount, reason))

    async def log_transfer_partially_failed(
        self,
        transaction_id: UUID,
        failed_member_ids: list[UUID],
        error_message: str,
    ) -> None:
        await self.log(
            AuditEventBuilder.transfer_partially_failed(
                transaction_id, failed_member_ids, error_message
            )
        )

    async def log_payment_proof_attached(
        self,
        transaction_id: UUID,
        has_image: bool,
        has_utr: bool,
    ) -> None:
        await self.log(
            AuditEventBuilder.payment_proof_attached(transaction_id, has_image, has_utr)
        )

    async def log_gateway_payment(
        self,
        payment_id: str,
        from_id: UUID,
        to_id: UUID,
        amount: str,
    ) -> None:
        await self.log(
            AuditEventBuilder.gateway_payment_received(payment_id, from_id, to_id, amount)
        )

    async def log_operation_failed(
        self,
        operation: str,
        error_message: str,
        member_id: Optional[UUID] = None,
    ) -> None:
        await self.log(
            AuditEventBuilder.operation_failed(operation, error_message, member_id)
        )
