"""
Ledger Queries

Deterministic, read-only computations over the mirror. Nothing here
talks to a remote service; results only ever reflect the members and
transactions passed in.
"""

from decimal import Decimal
from typing import Iterable, Optional, Sequence
from uuid import UUID

from familyhub.models.finance import (
    DashboardStats,
    LedgerEntry,
    MemberLedger,
    Transaction,
    TransferDirection,
)
from familyhub.models.member import FamilyMember


def dashboard_stats(members: Sequence[FamilyMember]) -> DashboardStats:
    """Headline numbers for the dashboard."""
    return DashboardStats(
        needs_attention=sum(1 for m in members if m.needs_attention),
        total_balance=sum((m.balance for m in members), Decimal("0")),
        active_members=len(members),
    )


def member_ledger(
    member_id: UUID,
    transactions: Iterable[Transaction],
    members: Optional[Iterable[FamilyMember]] = None,
) -> MemberLedger:
    """
    A member's transactions from their own point of view.

    Entries keep the order of `transactions` (newest first when taken
    from the store). Sent amounts are negative in `signed_amount`.
    Counterparty names are resolved from `members` when given.
    """
    names = {m.id: m.name for m in members or ()}
    ledger = MemberLedger(member_id=member_id)

    for txn in transactions:
        if not txn.involves(member_id):
            continue

        if txn.from_id == member_id:
            direction = TransferDirection.SENT
            counterparty = txn.to_id
            signed = -txn.amount
            ledger.total_sent += txn.amount
        else:
            direction = TransferDirection.RECEIVED
            counterparty = txn.from_id
            signed = txn.amount
            ledger.total_received += txn.amount

        ledger.entries.append(LedgerEntry(
            transaction_id=txn.id,
            direction=direction,
            counterparty_id=counterparty,
            counterparty_name=names.get(counterparty),
            amount=txn.amount,
            signed_amount=signed,
            status=txn.status,
            description=txn.description,
            payment_proof=txn.payment_proof,
            created_at=txn.created_at,
        ))

    return ledger


def order_members_for_user(
    members: Sequence[FamilyMember],
    user_id: Optional[UUID],
) -> list[FamilyMember]:
    """Members owned by the user first; otherwise the original order."""
    if user_id is None:
        return list(members)
    return sorted(members, key=lambda m: m.user_id != user_id)
