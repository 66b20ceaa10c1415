"""
Tests for ledger queries
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

from familyhub.models import (
    FamilyMember,
    HealthStatus,
    Transaction,
    TransactionStatus,
    TransferDirection,
)
from familyhub.queries import dashboard_stats, member_ledger, order_members_for_user


def member(name: str, balance: str = "0", status=HealthStatus.HEALTHY, owner=None) -> FamilyMember:
    return FamilyMember(
        id=uuid4(),
        user_id=owner or uuid4(),
        name=name,
        relation="Sibling",
        date_of_birth=date(1990, 1, 1),
        gender="male",
        health_status=status,
        balance=Decimal(balance),
    )


def transfer(src: FamilyMember, dst: FamilyMember, amount: str, **extra) -> Transaction:
    return Transaction(
        id=uuid4(),
        from_id=src.id,
        to_id=dst.id,
        amount=Decimal(amount),
        status=TransactionStatus.COMPLETED,
        **extra,
    )


class TestDashboardStats:
    """Tests for dashboard numbers."""

    def test_counts_and_totals(self):
        members = [
            member("A", "100.50"),
            member("B", "-20", HealthStatus.NEEDS_ATTENTION),
            member("C", "0", HealthStatus.CRITICAL),
        ]

        stats = dashboard_stats(members)

        assert stats.needs_attention == 2
        assert stats.total_balance == Decimal("80.50")
        assert stats.active_members == 3

    def test_empty_family(self):
        stats = dashboard_stats([])
        assert stats.total_balance == Decimal("0")
        assert stats.active_members == 0


class TestMemberLedger:
    """Tests for per-member ledgers."""

    def test_directions_names_and_totals(self):
        a, b, c = member("Asha"), member("Ravi"), member("Meera")
        transactions = [
            transfer(b, a, "300", description="Rent share"),
            transfer(a, c, "120", payment_proof="https://cdn/p.jpg"),
            transfer(b, c, "999"),
        ]

        ledger = member_ledger(a.id, transactions, [a, b, c])

        assert [e.direction for e in ledger.entries] == [
            TransferDirection.RECEIVED,
            TransferDirection.SENT,
        ]
        assert [e.counterparty_name for e in ledger.entries] == ["Ravi", "Meera"]
        assert [e.signed_amount for e in ledger.entries] == [Decimal("300"), Decimal("-120")]
        assert ledger.entries[0].description == "Rent share"
        assert ledger.entries[1].payment_proof == "https://cdn/p.jpg"
        assert ledger.total_received == Decimal("300")
        assert ledger.total_sent == Decimal("120")
        assert ledger.net == Decimal("180")

    def test_unknown_counterparty_has_no_name(self):
        a, b = member("Asha"), member("Gone")

        ledger = member_ledger(a.id, [transfer(b, a, "5")])

        assert ledger.entries[0].counterparty_id == b.id
        assert ledger.entries[0].counterparty_name is None


class TestOrderMembers:
    """Tests for member ordering."""

    def test_own_members_first_stable(self):
        me = uuid4()
        x1, mine1, x2, mine2 = member("X1"), member("M1", owner=me), member("X2"), member("M2", owner=me)

        ordered = order_members_for_user([x1, mine1, x2, mine2], me)

        assert [m.name for m in ordered] == ["M1", "M2", "X1", "X2"]

    def test_no_user_keeps_order(self):
        members = [member("B"), member("A")]
        assert order_members_for_user(members, None) == members
