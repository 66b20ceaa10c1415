"""
Shared fixtures.

No test talks to a real service: the table store is the in-memory
implementation, recommendations and audit storage are fakes.
"""

import asyncio
from typing import Any, Callable, Optional
from uuid import UUID, uuid4

import pytest

from familyhub.audit import AuditLogger
from familyhub.models import AuditEvent, AuthUser
from familyhub.services.storage import (
    AuditStorageInterface,
    InMemoryDataService,
    RemoteError,
)
from familyhub.store import FamilyStore


class FailingDataService(InMemoryDataService):
    """
    In-memory store that can be told to fail specific calls.

    Every operation yields to the event loop once, so concurrent
    store operations really interleave.
    """

    def __init__(self, user: Optional[AuthUser] = None):
        super().__init__(user)
        self._failures: list[tuple[str, str, Callable[[dict], bool], Exception]] = []

    def fail(
        self,
        operation: str,
        table: str,
        error: Optional[Exception] = None,
        when: Optional[Callable[[dict], bool]] = None,
    ) -> None:
        self._failures.append((
            operation,
            table,
            when or (lambda eq: True),
            error or RemoteError(f"{operation} on {table} failed", status_code=500),
        ))

    async def _maybe_fail(self, operation: str, table: str, eq: Optional[dict]) -> None:
        await asyncio.sleep(0)
        for op, tbl, when, error in self._failures:
            if op == operation and tbl == table and when(eq or {}):
                self.calls.append((operation, table))
                raise error

    async def select(self, table, **kwargs):
        await self._maybe_fail("select", table, kwargs.get("eq"))
        return await super().select(table, **kwargs)

    async def insert(self, table, row):
        await self._maybe_fail("insert", table, None)
        return await super().insert(table, row)

    async def update(self, table, values, *, eq):
        await self._maybe_fail("update", table, eq)
        return await super().update(table, values, eq=eq)

    async def delete(self, table, *, eq):
        await self._maybe_fail("delete", table, eq)
        return await super().delete(table, eq=eq)


class FakeRecommendationService:
    """Records every context it is asked about."""

    def __init__(self):
        self.recommendations = ["Walk 30 minutes a day", "Drink more water"]
        self.error: Optional[Exception] = None
        self.calls: list[Any] = []

    async def health_recommendations(self, context) -> list[str]:
        self.calls.append(context)
        if self.error:
            raise self.error
        return list(self.recommendations)


class RecordingAuditStorage(AuditStorageInterface):
    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    async def get_events_by_entity(self, entity_type: str, entity_id: UUID) -> list[AuditEvent]:
        return [
            e for e in self.events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return list(reversed(self.events))[:limit]

    def types(self) -> list[str]:
        return [event.event_type.value for event in self.events]


@pytest.fixture
def user() -> AuthUser:
    return AuthUser(id=uuid4(), email="parent@example.com")


@pytest.fixture
def data_service(user) -> FailingDataService:
    return FailingDataService(user)


@pytest.fixture
def recommender() -> FakeRecommendationService:
    return FakeRecommendationService()


@pytest.fixture
def audit_storage() -> RecordingAuditStorage:
    return RecordingAuditStorage()


@pytest.fixture
def store(data_service, recommender, audit_storage) -> FamilyStore:
    return FamilyStore(
        data_service=data_service,
        recommendation_service=recommender,
        audit_logger=AuditLogger(audit_storage),
    )


@pytest.fixture
def seed_member(data_service, user):
    """Factory: put a member row straight into the table store."""

    def _seed(name: str = "Asha", balance: str = "0", owner: Optional[UUID] = None, **extra) -> dict:
        row = {
            "user_id": str(owner or user.id),
            "name": name,
            "relation": "Parent",
            "date_of_birth": "1975-04-12",
            "gender": "female",
            "health_status": "Healthy",
            "balance": balance,
            "recommendations": [],
        }
        row.update(extra)
        return data_service.seed("family_members", row)

    return _seed
