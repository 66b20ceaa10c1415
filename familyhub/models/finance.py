"""
Finance Data Models for FamilyHub

Transactions record money moved between two family members.
A transaction is only ever created by a transfer and is never
deleted; after completion only the proof fields may change.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator


class TransactionStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"


class TransferDirection(str, Enum):
    """Direction of a transaction from one member's point of view."""
    SENT = "sent"
    RECEIVED = "received"


class Transaction(BaseModel):
    """A recorded transfer between two members."""
    model_config = ConfigDict(extra="ignore")

    id: UUID
    from_id: UUID
    to_id: UUID
    amount: Decimal = Field(gt=0)
    description: Optional[str] = None
    payment_proof: Optional[str] = Field(
        default=None,
        description="Public URL of the payment proof image"
    )
    utr_number: Optional[str] = Field(
        default=None,
        description="Bank/UPI transaction reference or gateway payment id"
    )
    status: TransactionStatus = TransactionStatus.PENDING
    created_at: Optional[datetime] = None

    def involves(self, member_id: UUID) -> bool:
        return self.from_id == member_id or self.to_id == member_id


class TransferRequest(BaseModel):
    """
    Input of a transfer, before any remote write.

    Amount positivity is NOT enforced here so that the validator can
    report it as a ValidationError with a clear message.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    from_id: UUID
    to_id: UUID
    amount: Decimal
    description: Optional[str] = Field(default=None, max_length=500)
    payment_proof: Optional[str] = None

    def to_transaction_row(self) -> dict:
        return {
            "from_id": str(self.from_id),
            "to_id": str(self.to_id),
            "amount": str(self.amount),
            "description": self.description,
            "payment_proof": self.payment_proof,
            "status": TransactionStatus.COMPLETED.value,
        }


class PaymentProofUpdate(BaseModel):
    """Proof attached to an existing transaction after the fact."""
    model_config = ConfigDict(str_strip_whitespace=True)

    payment_proof: Optional[str] = None
    utr_number: Optional[str] = Field(default=None, max_length=50)

    @model_validator(mode='after')
    def require_something(self) -> 'PaymentProofUpdate':
        if not self.payment_proof and not self.utr_number:
            raise ValueError("Either a payment proof image or a UTR number is required")
        return self


class PaymentConfirmation(BaseModel):
    """What the checkout widget hands to its success handler."""
    model_config = ConfigDict(extra="ignore")

    razorpay_payment_id: str = Field(..., min_length=1)
    razorpay_order_id: Optional[str] = None
    razorpay_signature: Optional[str] = None


class CheckoutOptions(BaseModel):
    """Options object passed to the checkout widget."""

    key: str
    amount: int = Field(..., gt=0, description="Amount in the smallest currency unit")
    currency: str
    name: str
    description: str
    prefill: dict[str, str] = Field(default_factory=dict)
    notes: dict[str, str] = Field(default_factory=dict)
    theme: dict[str, str] = Field(default_factory=dict)


# =============================================================================
# LEDGER VIEWS (read-only, computed from the mirror)
# =============================================================================

class LedgerEntry(BaseModel):
    """One transaction seen from one member's side."""

    transaction_id: UUID
    direction: TransferDirection
    counterparty_id: UUID
    counterparty_name: Optional[str] = None
    amount: Decimal
    signed_amount: Decimal
    status: TransactionStatus
    description: Optional[str] = None
    payment_proof: Optional[str] = None
    created_at: Optional[datetime] = None


class MemberLedger(BaseModel):
    member_id: UUID
    entries: list[LedgerEntry] = Field(default_factory=list)
    total_sent: Decimal = Decimal("0")
    total_received: Decimal = Decimal("0")

    @property
    def net(self) -> Decimal:
        return self.total_received - self.total_sent


class DashboardStats(BaseModel):
    needs_attention: int = Field(ge=0)
    total_balance: Decimal
    active_members: int = Field(ge=0)
