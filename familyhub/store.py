"""
Family Store

This module owns the in-memory mirror of a user's family members and
their transactions, and sequences every write to the remote data
service with the matching mirror update.

DESIGN DECISION: The remote store is the source of truth; the mirror
is a cache that is:
- replaced wholesale by fetch_members()
- patched locally after each successful single-entity write
- resynchronised after a transfer (balances change in two rows)

Mirror patches are applied AFTER the awaited remote write, against
the mirror as it is at that moment. Overlapping patches on different
fields of the same member therefore merge instead of clobbering each
other. There is no locking and no version check.

Error policy:
- fetch_members / fetch_transactions record or log failures, never raise
- mutations record the message in `error`, audit it and re-raise
- generate_health_recommendations swallows everything and returns []
- nothing retries
"""

import asyncio
from contextlib import contextmanager
from decimal import Decimal
from typing import Callable, Iterator, Optional, Union
from uuid import UUID

import structlog
from pydantic import BaseModel
from pydantic import ValidationError as ModelValidationError

from familyhub.audit import AuditLogger
from familyhub.config import Settings, get_settings
from familyhub.models.audit import AuditEventType
from familyhub.models.finance import (
    PaymentProofUpdate,
    Transaction,
    TransactionStatus,
    TransferRequest,
)
from familyhub.models.member import (
    DietPlan,
    DietPlanCreate,
    DietPlanUpdate,
    FamilyMember,
    FamilyMemberCreate,
    FamilyMemberUpdate,
    MedicalRecord,
    MedicalRecordCreate,
    MedicalRecordUpdate,
    Medication,
    MedicationCreate,
    MedicationUpdate,
)
from familyhub.models.user import AuthUser
from familyhub.services.recommendations import HealthContext, RecommendationService
from familyhub.services.storage import (
    AuthError,
    PostgrestClient,
    PostgrestDataService,
    RemoteDataService,
    TableAuditStorage,
)
from familyhub.validation import (
    TransferValidator,
    ValidationError,
    parse_amount,
    parse_member_id,
)


logger = structlog.get_logger(__name__)

MEMBERS = "family_members"
TRANSACTIONS = "transactions"
MEDICATIONS = "medications"
MEDICAL_RECORDS = "medical_records"
DIET_PLANS = "diet_plans"
MEMBER_CHILDREN = (MEDICAL_RECORDS, MEDICATIONS, DIET_PLANS, "emergency_contacts")

Listener = Callable[["FamilyStore"], None]
IdLike = Union[UUID, str]


class PartialTransferFailure(Exception):
    """
    The transaction row was written but one or both balance updates
    failed. Balances no longer add up to the transaction history.

    Raised after the mirror has been resynchronised, so the mirror
    shows what the remote store actually holds.
    """

    def __init__(
        self,
        transaction_id: UUID,
        failed_member_ids: list[UUID],
        errors: Optional[list[BaseException]] = None,
    ):
        self.transaction_id = transaction_id
        self.failed_member_ids = failed_member_ids
        self.errors = errors or []
        detail = "; ".join(str(e) for e in self.errors)
        message = (
            f"Transaction {transaction_id} was recorded but the balance of "
            f"{len(failed_member_ids)} member(s) could not be updated"
        )
        super().__init__(f"{message}: {detail}" if detail else message)


def _as_uuid(value: IdLike) -> UUID:
    return value if isinstance(value, UUID) else UUID(str(value))


def _set_fields(patch: BaseModel) -> dict:
    """Fields the caller actually supplied, as model values."""
    return {name: getattr(patch, name) for name in patch.model_fields_set}


class FamilyStore:
    """
    State container for one signed-in user's family.

    State:
        members       FamilyMember list, each with embedded children
        transactions  Transactions touching any mirrored member, newest first
        is_loading    True while any loading operation is in flight
        error         Message of the last recorded failure, or None

    Subscribers are called with the store after every state change.
    """

    def __init__(
        self,
        data_service: RemoteDataService,
        recommendation_service: RecommendationService,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[TransferValidator] = None,
    ):
        self._data = data_service
        self._recommendations = recommendation_service
        self._audit_logger = audit_logger
        self._validator = validator or TransferValidator()

        self._members: list[FamilyMember] = []
        self._transactions: list[Transaction] = []
        self._in_flight = 0
        self._error: Optional[str] = None
        self._listeners: list[Listener] = []

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def members(self) -> list[FamilyMember]:
        return list(self._members)

    @property
    def transactions(self) -> list[Transaction]:
        return list(self._transactions)

    @property
    def is_loading(self) -> bool:
        return self._in_flight > 0

    @property
    def error(self) -> Optional[str]:
        return self._error

    def get_member(self, member_id: IdLike) -> Optional[FamilyMember]:
        member_id = _as_uuid(member_id)
        for member in self._members:
            if member.id == member_id:
                return member
        return None

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a listener; returns a function that unregisters it.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    @contextmanager
    def _loading(self) -> Iterator[None]:
        self._in_flight += 1
        self._error = None
        self._notify()
        try:
            yield
        finally:
            self._in_flight -= 1
            self._notify()

    def _record_error(self, error: BaseException) -> None:
        self._error = str(error) or error.__class__.__name__
        self._notify()

    async def _fail(
        self,
        operation: str,
        error: BaseException,
        member_id: Optional[UUID] = None,
    ) -> None:
        """Record a mutation failure; the caller re-raises."""
        self._record_error(error)
        logger.warning(
            "store_operation_failed",
            operation=operation,
            error=str(error),
            member_id=str(member_id) if member_id else None,
        )
        if self._audit_logger:
            await self._audit_logger.log_operation_failed(
                operation=operation,
                error_message=str(error),
                member_id=member_id,
            )

    def _replace_member(
        self,
        member_id: UUID,
        change: Callable[[FamilyMember], FamilyMember],
    ) -> Optional[FamilyMember]:
        """Apply `change` to the current mirror copy of one member."""
        patched = None
        members = []
        for member in self._members:
            if member.id == member_id:
                member = patched = change(member)
            members.append(member)
        self._members = members
        self._notify()
        return patched

    async def _require_user(self, user: Optional[AuthUser]) -> AuthUser:
        if user is None:
            user = await self._data.get_current_user()
        if user is None:
            raise AuthError()
        return user

    # =========================================================================
    # LOADING
    # =========================================================================

    async def _load_transactions(self, member_ids: list[UUID]) -> list[Transaction]:
        if not member_ids:
            return []
        ids = [str(member_id) for member_id in member_ids]
        rows = await self._data.select(
            TRANSACTIONS,
            any_in={"from_id": ids, "to_id": ids},
            order_by="created_at",
            descending=True,
        )
        return [Transaction.model_validate(row) for row in rows]

    async def fetch_members(self, user: Optional[AuthUser] = None) -> None:
        """
        Replace the mirror with the user's members and their transactions.

        Failures (including a missing session) are recorded in `error`;
        the previous mirror is kept.
        """
        with self._loading():
            try:
                user = await self._require_user(user)
                rows = await self._data.select(
                    MEMBERS,
                    eq={"user_id": str(user.id)},
                    embed=MEMBER_CHILDREN,
                )
                members = [FamilyMember.model_validate(row) for row in rows]
                transactions = await self._load_transactions([m.id for m in members])
            except Exception as e:
                self._record_error(e)
                logger.warning("fetch_members_failed", error=str(e))
                if self._audit_logger:
                    await self._audit_logger.log_sync_failed(str(e))
                return

            self._members = members
            self._transactions = transactions
            self._notify()

        if self._audit_logger:
            await self._audit_logger.log_mirror_synced(len(members), len(transactions))

    async def fetch_transactions(self) -> None:
        """Reload only the transactions of the mirrored members."""
        if not self._members:
            return

        try:
            transactions = await self._load_transactions([m.id for m in self._members])
        except Exception as e:
            logger.error("fetch_transactions_failed", error=str(e))
            return

        self._transactions = transactions
        self._notify()

    async def get_transaction_history(self, member_id: IdLike) -> list[Transaction]:
        """
        Transactions where the member is sender or receiver, newest first.

        Read-only: the mirror is not touched. On failure `error` is set
        and an empty list is returned.
        """
        member_id = _as_uuid(member_id)
        try:
            rows = await self._data.select(
                TRANSACTIONS,
                any_in={"from_id": [str(member_id)], "to_id": [str(member_id)]},
                order_by="created_at",
                descending=True,
            )
            return [Transaction.model_validate(row) for row in rows]
        except Exception as e:
            self._record_error(e)
            logger.warning(
                "transaction_history_failed",
                member_id=str(member_id),
                error=str(e),
            )
            return []

    # =========================================================================
    # MEMBERS
    # =========================================================================

    async def add_member(
        self,
        data: FamilyMemberCreate,
        user: Optional[AuthUser] = None,
    ) -> FamilyMember:
        """Create a member owned by the user and append it to the mirror."""
        with self._loading():
            try:
                user = await self._require_user(user)
                row = data.model_dump(mode="json")
                row["user_id"] = str(user.id)
                member = FamilyMember.model_validate(await self._data.insert(MEMBERS, row))
            except Exception as e:
                await self._fail("add_member", e)
                raise

            self._members = [*self._members, member]
            self._notify()

        if self._audit_logger:
            await self._audit_logger.log_member_changed(
                AuditEventType.MEMBER_ADDED, member.id, sorted(data.model_fields_set)
            )
        return member

    async def update_member(
        self,
        member_id: IdLike,
        patch: FamilyMemberUpdate,
    ) -> Optional[FamilyMember]:
        """
        Write the supplied fields, then merge exactly those fields into
        the mirror copy. Returns the patched member, None if not mirrored.
        """
        member_id = _as_uuid(member_id)
        with self._loading():
            try:
                await self._data.update(
                    MEMBERS,
                    patch.model_dump(mode="json", exclude_unset=True),
                    eq={"id": str(member_id)},
                )
            except Exception as e:
                await self._fail("update_member", e, member_id)
                raise

            changes = _set_fields(patch)
            member = self._replace_member(
                member_id, lambda m: m.model_copy(update=changes)
            )

        if self._audit_logger:
            await self._audit_logger.log_member_changed(
                AuditEventType.MEMBER_UPDATED, member_id, sorted(changes)
            )
        return member

    async def remove_member(self, member_id: IdLike) -> None:
        """
        Delete a member (children cascade remotely and leave the mirror
        with their parent). Transactions stay in the mirror.
        """
        member_id = _as_uuid(member_id)
        with self._loading():
            try:
                await self._data.delete(MEMBERS, eq={"id": str(member_id)})
            except Exception as e:
                await self._fail("remove_member", e, member_id)
                raise

            self._members = [m for m in self._members if m.id != member_id]
            self._notify()

        if self._audit_logger:
            await self._audit_logger.log_member_changed(
                AuditEventType.MEMBER_REMOVED, member_id
            )

    # =========================================================================
    # DIET PLANS
    # =========================================================================

    async def add_diet_plan(
        self,
        member_id: IdLike,
        plan: DietPlanCreate,
    ) -> DietPlan:
        member_id = _as_uuid(member_id)
        with self._loading():
            try:
                row = plan.normalized().model_dump(mode="json")
                row["member_id"] = str(member_id)
                created = DietPlan.model_validate(await self._data.insert(DIET_PLANS, row))
            except Exception as e:
                await self._fail("add_diet_plan", e, member_id)
                raise

            self._replace_member(
                member_id,
                lambda m: m.model_copy(update={"diet_plans": [*m.diet_plans, created]}),
            )

        if self._audit_logger:
            await self._audit_logger.log_record_changed(
                AuditEventType.DIET_PLAN_ADDED, "diet_plan", created.id, member_id
            )
        return created

    async def update_diet_plan(
        self,
        member_id: IdLike,
        plan_id: IdLike,
        patch: DietPlanUpdate,
    ) -> None:
        member_id, plan_id = _as_uuid(member_id), _as_uuid(plan_id)
        with self._loading():
            try:
                await self._data.update(
                    DIET_PLANS,
                    patch.model_dump(mode="json", exclude_unset=True),
                    eq={"id": str(plan_id), "member_id": str(member_id)},
                )
            except Exception as e:
                await self._fail("update_diet_plan", e, member_id)
                raise

            changes = _set_fields(patch)
            self._replace_member(
                member_id,
                lambda m: m.model_copy(update={"diet_plans": [
                    p.model_copy(update=changes) if p.id == plan_id else p
                    for p in m.diet_plans
                ]}),
            )

        if self._audit_logger:
            await self._audit_logger.log_record_changed(
                AuditEventType.DIET_PLAN_UPDATED, "diet_plan", plan_id, member_id
            )

    # =========================================================================
    # MEDICATIONS & MEDICAL RECORDS
    #
    # Every write is followed by exactly one recommendation refresh,
    # which runs BEFORE the mirror patch and therefore sees the
    # member's previous medications/records.
    # =========================================================================

    async def add_medication(
        self,
        member_id: IdLike,
        medication: MedicationCreate,
    ) -> Medication:
        member_id = _as_uuid(member_id)
        with self._loading():
            try:
                row = medication.model_dump(mode="json")
                row["member_id"] = str(member_id)
                created = Medication.model_validate(await self._data.insert(MEDICATIONS, row))
            except Exception as e:
                await self._fail("add_medication", e, member_id)
                raise

            await self.generate_health_recommendations(member_id)
            self._replace_member(
                member_id,
                lambda m: m.model_copy(update={"medications": [*m.medications, created]}),
            )

        if self._audit_logger:
            await self._audit_logger.log_record_changed(
                AuditEventType.MEDICATION_ADDED, "medication", created.id, member_id
            )
        return created

    async def update_medication(
        self,
        member_id: IdLike,
        medication_id: IdLike,
        patch: MedicationUpdate,
    ) -> None:
        member_id, medication_id = _as_uuid(member_id), _as_uuid(medication_id)
        with self._loading():
            try:
                await self._data.update(
                    MEDICATIONS,
                    patch.model_dump(mode="json", exclude_unset=True),
                    eq={"id": str(medication_id), "member_id": str(member_id)},
                )
            except Exception as e:
                await self._fail("update_medication", e, member_id)
                raise

            await self.generate_health_recommendations(member_id)
            changes = _set_fields(patch)
            self._replace_member(
                member_id,
                lambda m: m.model_copy(update={"medications": [
                    med.model_copy(update=changes) if med.id == medication_id else med
                    for med in m.medications
                ]}),
            )

        if self._audit_logger:
            await self._audit_logger.log_record_changed(
                AuditEventType.MEDICATION_UPDATED, "medication", medication_id, member_id
            )

    async def remove_medication(self, member_id: IdLike, medication_id: IdLike) -> None:
        member_id, medication_id = _as_uuid(member_id), _as_uuid(medication_id)
        with self._loading():
            try:
                await self._data.delete(
                    MEDICATIONS,
                    eq={"id": str(medication_id), "member_id": str(member_id)},
                )
            except Exception as e:
                await self._fail("remove_medication", e, member_id)
                raise

            await self.generate_health_recommendations(member_id)
            self._replace_member(
                member_id,
                lambda m: m.model_copy(update={"medications": [
                    med for med in m.medications if med.id != medication_id
                ]}),
            )

        if self._audit_logger:
            await self._audit_logger.log_record_changed(
                AuditEventType.MEDICATION_REMOVED, "medication", medication_id, member_id
            )

    async def add_medical_record(
        self,
        member_id: IdLike,
        record: MedicalRecordCreate,
    ) -> MedicalRecord:
        member_id = _as_uuid(member_id)
        with self._loading():
            try:
                row = record.model_dump(mode="json")
                row["member_id"] = str(member_id)
                created = MedicalRecord.model_validate(
                    await self._data.insert(MEDICAL_RECORDS, row)
                )
            except Exception as e:
                await self._fail("add_medical_record", e, member_id)
                raise

            await self.generate_health_recommendations(member_id)
            self._replace_member(
                member_id,
                lambda m: m.model_copy(
                    update={"medical_records": [*m.medical_records, created]}
                ),
            )

        if self._audit_logger:
            await self._audit_logger.log_record_changed(
                AuditEventType.MEDICAL_RECORD_ADDED, "medical_record", created.id, member_id
            )
        return created

    async def update_medical_record(
        self,
        member_id: IdLike,
        record_id: IdLike,
        patch: MedicalRecordUpdate,
    ) -> None:
        member_id, record_id = _as_uuid(member_id), _as_uuid(record_id)
        with self._loading():
            try:
                await self._data.update(
                    MEDICAL_RECORDS,
                    patch.model_dump(mode="json", exclude_unset=True),
                    eq={"id": str(record_id), "member_id": str(member_id)},
                )
            except Exception as e:
                await self._fail("update_medical_record", e, member_id)
                raise

            await self.generate_health_recommendations(member_id)
            changes = _set_fields(patch)
            self._replace_member(
                member_id,
                lambda m: m.model_copy(update={"medical_records": [
                    r.model_copy(update=changes) if r.id == record_id else r
                    for r in m.medical_records
                ]}),
            )

        if self._audit_logger:
            await self._audit_logger.log_record_changed(
                AuditEventType.MEDICAL_RECORD_UPDATED, "medical_record", record_id, member_id
            )

    async def remove_medical_record(self, member_id: IdLike, record_id: IdLike) -> None:
        member_id, record_id = _as_uuid(member_id), _as_uuid(record_id)
        with self._loading():
            try:
                await self._data.delete(
                    MEDICAL_RECORDS,
                    eq={"id": str(record_id), "member_id": str(member_id)},
                )
            except Exception as e:
                await self._fail("remove_medical_record", e, member_id)
                raise

            await self.generate_health_recommendations(member_id)
            self._replace_member(
                member_id,
                lambda m: m.model_copy(update={"medical_records": [
                    r for r in m.medical_records if r.id != record_id
                ]}),
            )

        if self._audit_logger:
            await self._audit_logger.log_record_changed(
                AuditEventType.MEDICAL_RECORD_REMOVED, "medical_record", record_id, member_id
            )

    # =========================================================================
    # RECOMMENDATIONS
    # =========================================================================

    async def generate_health_recommendations(self, member_id: IdLike) -> list[str]:
        """
        Refresh a member's stored health recommendations.

        Best effort: any failure (service down, bad body, failed write)
        is logged and [] is returned; the stored list is left as it was.
        An unknown member also yields [].
        """
        member_id = _as_uuid(member_id)
        member = self.get_member(member_id)
        if member is None:
            return []

        try:
            recommendations = await self._recommendations.health_recommendations(
                HealthContext.from_member(member)
            )
            await self._data.update(
                MEMBERS,
                {"recommendations": recommendations},
                eq={"id": str(member_id)},
            )
        except Exception as e:
            logger.warning(
                "recommendation_refresh_failed",
                member_id=str(member_id),
                error=str(e),
            )
            if self._audit_logger:
                await self._audit_logger.log_recommendations_failed(member_id, str(e))
            return []

        self._replace_member(
            member_id,
            lambda m: m.model_copy(update={"recommendations": list(recommendations)}),
        )

        if self._audit_logger:
            await self._audit_logger.log_recommendations_refreshed(
                member_id, len(recommendations)
            )
        return recommendations

    # =========================================================================
    # MONEY
    # =========================================================================

    async def transfer_money(
        self,
        from_id: IdLike,
        to_id: IdLike,
        amount: Union[Decimal, int, str],
        description: Optional[str] = None,
        payment_proof: Optional[str] = None,
        user: Optional[AuthUser] = None,
    ) -> Transaction:
        """
        Move money between two mirrored members.

        Steps:
        1. Insert a completed transaction
        2. Read both balances from the mirror
        3. Write both new balances concurrently
        4. Resynchronise the mirror with fetch_members()

        The transaction is never rolled back. If a balance write fails
        the caller gets PartialTransferFailure after step 4.

        Raises:
            ValidationError: Malformed id, bad amount, self-transfer or
                             unknown member (nothing was written)
            RemoteError: The transaction insert failed (nothing was written)
            PartialTransferFailure: See above
        """
        with self._loading():
            try:
                from_id = parse_member_id(from_id, "from_id")
                to_id = parse_member_id(to_id, "to_id")
                warnings = self._validator.validate(from_id, to_id, amount, self._members)
                value = parse_amount(amount)
            except ValidationError as e:
                self._record_error(e)
                if self._audit_logger:
                    await self._audit_logger.log_transfer_rejected(
                        from_id, to_id, str(amount), str(e)
                    )
                raise

            for warning in warnings:
                logger.info("transfer_warning", issue=warning.issue_type, message=warning.message)

            request = TransferRequest(
                from_id=from_id,
                to_id=to_id,
                amount=value,
                description=description,
                payment_proof=payment_proof,
            )
            try:
                transaction = Transaction.model_validate(
                    await self._data.insert(TRANSACTIONS, request.to_transaction_row())
                )
            except Exception as e:
                await self._fail("transfer_money", e, from_id)
                raise

            if self._audit_logger:
                await self._audit_logger.log_transfer_recorded(
                    transaction.id, from_id, to_id, str(value)
                )

            # Balances come from the mirror, not from a fresh read
            sender, receiver = self.get_member(from_id), self.get_member(to_id)
            targets = []
            if sender is not None:
                targets.append((from_id, sender.balance - value))
            if receiver is not None:
                targets.append((to_id, receiver.balance + value))

            results = await asyncio.gather(
                *(
                    self._data.update(
                        MEMBERS,
                        {"balance": str(balance)},
                        eq={"id": str(member_id)},
                    )
                    for member_id, balance in targets
                ),
                return_exceptions=True,
            )

            failed = [
                member_id for (member_id, _), result in zip(targets, results)
                if isinstance(result, BaseException)
            ]
            errors = [result for result in results if isinstance(result, BaseException)]
            # A member that left the mirror mid-transfer never got its write
            failed.extend(
                member_id for member_id, member in ((from_id, sender), (to_id, receiver))
                if member is None
            )

            await self.fetch_members(user)

            if failed:
                failure = PartialTransferFailure(transaction.id, failed, errors)
                self._record_error(failure)
                logger.error(
                    "transfer_partially_failed",
                    transaction_id=str(transaction.id),
                    failed_member_ids=[str(m) for m in failed],
                )
                if self._audit_logger:
                    await self._audit_logger.log_transfer_partially_failed(
                        transaction.id, failed, str(failure)
                    )
                raise failure

        return transaction

    async def attach_payment_proof(
        self,
        transaction_id: IdLike,
        proof_url: Optional[str] = None,
        utr_number: Optional[str] = None,
    ) -> None:
        """
        Attach a proof image URL and/or UTR number to a transaction and
        mark it completed, then reload the transactions.
        """
        transaction_id = _as_uuid(transaction_id)
        with self._loading():
            try:
                proof = PaymentProofUpdate(payment_proof=proof_url, utr_number=utr_number)
            except ModelValidationError as e:
                error = ValidationError(e.errors()[0]["msg"])
                self._record_error(error)
                raise error from e

            try:
                await self._data.update(
                    TRANSACTIONS,
                    {
                        "payment_proof": proof.payment_proof,
                        "utr_number": proof.utr_number,
                        "status": TransactionStatus.COMPLETED.value,
                    },
                    eq={"id": str(transaction_id)},
                )
            except Exception as e:
                await self._fail("attach_payment_proof", e)
                raise

            await self.fetch_transactions()

        if self._audit_logger:
            await self._audit_logger.log_payment_proof_attached(
                transaction_id,
                has_image=proof.payment_proof is not None,
                has_utr=proof.utr_number is not None,
            )


def create_store_components(
    settings: Optional[Settings] = None,
    access_token: Optional[str] = None,
) -> tuple[FamilyStore, PostgrestDataService]:
    """
    Factory function wiring the store to the hosted services.

    Args:
        settings: Settings to use (defaults to the environment)
        access_token: Session token of the signed-in user, if known

    Returns:
        (store, data_service); sign in through the data service when
        no access token was given.
    """
    settings = settings or get_settings()

    client = PostgrestClient(settings.data_service, access_token=access_token)
    data_service = PostgrestDataService(client)
    recommendation_service = RecommendationService(
        settings.data_service, settings.recommendations
    )

    if settings.app.persist_audit_events:
        audit_logger = AuditLogger(TableAuditStorage(data_service))
    else:
        audit_logger = AuditLogger()  # Local-only logging

    store = FamilyStore(
        data_service=data_service,
        recommendation_service=recommendation_service,
        audit_logger=audit_logger,
    )
    return store, data_service
