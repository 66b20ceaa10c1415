"""Ledger query package."""

from familyhub.queries.ledger import (
    dashboard_stats,
    member_ledger,
    order_members_for_user,
)

__all__ = ["dashboard_stats", "member_ledger", "order_members_for_user"]
