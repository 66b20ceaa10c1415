"""
In-Memory Storage Implementation

Behaves like the hosted table store closely enough for tests and
local development:
- generated ids and timestamps on insert
- foreign-key checks for member children and transactions
- cascade delete of member children
- embedding of child tables on select

Every call is recorded in `calls` as (operation, table) so tests can
assert which remote writes happened and in what order.
"""

import copy
import itertools
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Optional, Sequence
from uuid import uuid4

from familyhub.models.user import AuthUser
from familyhub.services.storage.interface import (
    RemoteDataService,
    RemoteError,
    Row,
)


# child table -> (parent table, foreign key column)
CHILD_TABLES = {
    "medical_records": ("family_members", "member_id"),
    "medications": ("family_members", "member_id"),
    "diet_plans": ("family_members", "member_id"),
    "emergency_contacts": ("family_members", "member_id"),
}

# table -> columns that must reference an existing member
MEMBER_REFERENCES = {
    "medical_records": ("member_id",),
    "medications": ("member_id",),
    "diet_plans": ("member_id",),
    "emergency_contacts": ("member_id",),
    "transactions": ("from_id", "to_id"),
}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _matches(row: Row, eq: Optional[dict[str, Any]]) -> bool:
    for column, value in (eq or {}).items():
        if value is None:
            if row.get(column) is not None:
                return False
        elif str(row.get(column)) != str(value):
            return False
    return True


def _matches_any(row: Row, any_in: Optional[dict[str, Sequence[Any]]]) -> bool:
    if any_in is None:
        return True
    for column, values in any_in.items():
        if str(row.get(column)) in {str(v) for v in values}:
            return True
    return False


class InMemoryDataService(RemoteDataService):
    """Dict-of-lists table store."""

    def __init__(self, user: Optional[AuthUser] = None):
        self._tables: dict[str, list[Row]] = defaultdict(list)
        self._user = user
        self._sequence = itertools.count()
        self.calls: list[tuple[str, str]] = []

    def set_user(self, user: Optional[AuthUser]) -> None:
        self._user = user

    def rows(self, table: str) -> list[Row]:
        """Snapshot of a table, without embedding."""
        return [self._public(row) for row in self._tables[table]]

    def seed(self, table: str, row: Row) -> Row:
        """Insert without recording a call or checking references."""
        return self._public(self._store(table, row))

    def writes(self) -> list[tuple[str, str]]:
        return [call for call in self.calls if call[0] != "select"]

    def _store(self, table: str, row: Row) -> Row:
        stored = copy.deepcopy(row)
        stored.setdefault("id", str(uuid4()))
        stored.setdefault("created_at", _now())
        if table != "transactions":
            stored.setdefault("updated_at", stored["created_at"])
        stored["_seq"] = next(self._sequence)
        self._tables[table].append(stored)
        return stored

    @staticmethod
    def _public(row: Row) -> Row:
        return {k: copy.deepcopy(v) for k, v in row.items() if k != "_seq"}

    def _check_references(self, table: str, row: Row) -> None:
        member_ids = {str(m["id"]) for m in self._tables["family_members"]}
        for column in MEMBER_REFERENCES.get(table, ()):
            if column in row and str(row[column]) not in member_ids:
                raise RemoteError(
                    f'insert or update on table "{table}" violates foreign key '
                    f'constraint on "{column}"',
                    status_code=409,
                )

    async def get_current_user(self) -> Optional[AuthUser]:
        return self._user

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
        self.calls.append(("select", table))

        found = [
            row for row in self._tables[table]
            if _matches(row, eq) and _matches_any(row, any_in)
        ]

        if order_by:
            found.sort(
                key=lambda r: (str(r.get(order_by) or ""), r["_seq"]),
                reverse=descending,
            )

        results = []
        for row in found:
            result = self._public(row)
            for child in embed:
                if child not in CHILD_TABLES:
                    raise RemoteError(
                        f"Could not find a relationship between '{table}' and '{child}'",
                        status_code=400,
                    )
                _, fk = CHILD_TABLES[child]
                result[child] = [
                    self._public(c) for c in self._tables[child]
                    if str(c.get(fk)) == str(row["id"])
                ]
            results.append(result)
        return results

    async def insert(self, table: str, row: Row) -> Row:
        self.calls.append(("insert", table))
        self._check_references(table, row)
        return self._public(self._store(table, row))

    async def update(self, table: str, values: Row, *, eq: dict[str, Any]) -> list[Row]:
        self.calls.append(("update", table))
        if not eq:
            raise RemoteError("Refusing to update without a filter")
        self._check_references(table, values)

        updated = []
        for row in self._tables[table]:
            if _matches(row, eq):
                row.update(copy.deepcopy(values))
                if table != "transactions":
                    row["updated_at"] = _now()
                updated.append(self._public(row))
        return updated

    async def delete(self, table: str, *, eq: dict[str, Any]) -> int:
        self.calls.append(("delete", table))
        if not eq:
            raise RemoteError("Refusing to delete without a filter")

        doomed = [row for row in self._tables[table] if _matches(row, eq)]
        doomed_ids = {str(row["id"]) for row in doomed}
        self._tables[table] = [
            row for row in self._tables[table] if str(row["id"]) not in doomed_ids
        ]

        # ON DELETE CASCADE for member children
        for child, (parent, fk) in CHILD_TABLES.items():
            if parent == table:
                self._tables[child] = [
                    c for c in self._tables[child] if str(c.get(fk)) not in doomed_ids
                ]

        return len(doomed)
