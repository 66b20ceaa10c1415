"""
Audit Models for FamilyHub

Every significant store action is logged for audit purposes.
This provides:
1. Traceability of balance changes and health-record edits
2. Debugging information when a remote write fails half way
3. A record of payments that went through the gateway

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Union
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Synchronization
    MIRROR_SYNCED = "mirror_synced"
    SYNC_FAILED = "sync_failed"

    # Members
    MEMBER_ADDED = "member_added"
    MEMBER_UPDATED = "member_updated"
    MEMBER_REMOVED = "member_removed"

    # Health records
    MEDICATION_ADDED = "medication_added"
    MEDICATION_UPDATED = "medication_updated"
    MEDICATION_REMOVED = "medication_removed"
    MEDICAL_RECORD_ADDED = "medical_record_added"
    MEDICAL_RECORD_UPDATED = "medical_record_updated"
    MEDICAL_RECORD_REMOVED = "medical_record_removed"

    # Diet
    DIET_PLAN_ADDED = "diet_plan_added"
    DIET_PLAN_UPDATED = "diet_plan_updated"

    # Recommendations
    RECOMMENDATIONS_REFRESHED = "recommendations_refreshed"
    RECOMMENDATIONS_FAILED = "recommendations_failed"

    # Money
    TRANSFER_RECORDED = "transfer_recorded"
    TRANSFER_REJECTED = "transfer_rejected"
    TRANSFER_PARTIALLY_FAILED = "transfer_partially_failed"
    PAYMENT_PROOF_ATTACHED = "payment_proof_attached"
    GATEWAY_PAYMENT_RECEIVED = "gateway_payment_received"

    # System events
    OPERATION_FAILED = "operation_failed"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'member', 'transaction', 'medication')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )
    member_id: Optional[UUID] = Field(
        default=None,
        description="Member the entity belongs to, if any"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "member_id": str(self.member_id) if self.member_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }

    def to_row(self) -> dict:
        """Convert to a row for the audit_events table."""
        return self.model_dump(mode="json")


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.member_added(member_id, name)
        event = AuditEventBuilder.transfer_recorded(txn_id, from_id, to_id, amount)
    """

    @staticmethod
    def mirror_synced(member_count: int, transaction_count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MIRROR_SYNCED,
            severity=AuditSeverity.DEBUG,
            description=f"Loaded {member_count} members and {transaction_count} transactions",
            details={
                "member_count": member_count,
                "transaction_count": transaction_count,
            },
        )

    @staticmethod
    def sync_failed(error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYNC_FAILED,
            severity=AuditSeverity.ERROR,
            description="Could not load members and transactions",
            error_message=error_message,
        )

    @staticmethod
    def member_changed(
        event_type: AuditEventType,
        member_id: UUID,
        fields: Optional[list[str]] = None,
    ) -> AuditEvent:
        verb = event_type.value.split("_")[-1]
        return AuditEvent(
            event_type=event_type,
            entity_type="member",
            entity_id=member_id,
            member_id=member_id,
            description=f"Member {verb}",
            details={"fields": fields or []},
        )

    @staticmethod
    def record_changed(
        event_type: AuditEventType,
        entity_type: str,
        entity_id: UUID,
        member_id: UUID,
    ) -> AuditEvent:
        verb = event_type.value.split("_")[-1]
        return AuditEvent(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            member_id=member_id,
            description=f"{entity_type.replace('_', ' ').capitalize()} {verb}",
        )

    @staticmethod
    def recommendations_refreshed(member_id: UUID, count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECOMMENDATIONS_REFRESHED,
            entity_type="member",
            entity_id=member_id,
            member_id=member_id,
            description=f"Stored {count} health recommendations",
            details={"count": count},
        )

    @staticmethod
    def recommendations_failed(member_id: UUID, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECOMMENDATIONS_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="member",
            entity_id=member_id,
            member_id=member_id,
            description="Health recommendation refresh failed; previous list kept",
            error_message=error_message,
        )

    @staticmethod
    def transfer_recorded(
        transaction_id: UUID,
        from_id: UUID,
        to_id: UUID,
        amount: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSFER_RECORDED,
            entity_type="transaction",
            entity_id=transaction_id,
            member_id=from_id,
            description=f"Transfer recorded: ₹{amount}",
            details={
                "from_id": str(from_id),
                "to_id": str(to_id),
                "amount": amount,
            },
        )

    @staticmethod
    def transfer_rejected(
        from_id: Union[UUID, str],
        to_id: Union[UUID, str],
        amount: str,
        reason: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSFER_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="transaction",
            member_id=from_id if isinstance(from_id, UUID) else None,
            description="Transfer rejected before any write",
            details={
                "from_id": str(from_id),
                "to_id": str(to_id),
                "amount": amount,
            },
            error_message=reason,
        )

    @staticmethod
    def transfer_partially_failed(
        transaction_id: UUID,
        failed_member_ids: list[UUID],
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSFER_PARTIALLY_FAILED,
            severity=AuditSeverity.CRITICAL,
            entity_type="transaction",
            entity_id=transaction_id,
            description="Transaction recorded but balance update failed",
            details={"failed_member_ids": [str(m) for m in failed_member_ids]},
            error_message=error_message,
        )

    @staticmethod
    def payment_proof_attached(
        transaction_id: UUID,
        has_image: bool,
        has_utr: bool,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PAYMENT_PROOF_ATTACHED,
            entity_type="transaction",
            entity_id=transaction_id,
            description="Payment proof attached",
            details={"image": has_image, "utr": has_utr},
        )

    @staticmethod
    def gateway_payment_received(
        payment_id: str,
        from_id: UUID,
        to_id: UUID,
        amount: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GATEWAY_PAYMENT_RECEIVED,
            entity_type="payment",
            member_id=from_id,
            description=f"Gateway confirmed payment {payment_id}",
            details={
                "payment_id": payment_id,
                "from_id": str(from_id),
                "to_id": str(to_id),
                "amount": amount,
            },
        )

    @staticmethod
    def operation_failed(
        operation: str,
        error_message: str,
        member_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.OPERATION_FAILED,
            severity=AuditSeverity.ERROR,
            member_id=member_id,
            description=f"Operation failed: {operation}",
            details={"operation": operation},
            error_message=error_message,
        )
