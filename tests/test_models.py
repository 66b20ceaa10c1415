"""
Tests for FamilyHub models

Test strategy:
1. Unit tests for models, validators and pure helpers
2. Store tests against the in-memory table store
3. No real API calls in tests (fakes and httpx.MockTransport)
"""

import json
from datetime import date, datetime, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from familyhub.models import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
    DietPlanCreate,
    FamilyMember,
    FamilyMemberCreate,
    FamilyMemberUpdate,
    HealthStatus,
    MealSlot,
    Meals,
    MedicalRecordCreate,
    MedicationCreate,
    PaymentProofUpdate,
    Transaction,
    TransactionStatus,
    TransferRequest,
)


class TestMemberModels:
    """Tests for member-related Pydantic models."""

    def test_member_from_row_with_null_collections(self):
        """The store returns null for never-written arrays."""
        member = FamilyMember.model_validate({
            "id": str(uuid4()),
            "user_id": str(uuid4()),
            "name": "Asha",
            "relation": "Mother",
            "date_of_birth": "1970-01-01",
            "gender": "female",
            "balance": 250.5,
            "recommendations": None,
            "medications": None,
            "some_new_column": "ignored",
        })
        assert member.recommendations == []
        assert member.medications == []
        assert member.balance == Decimal("250.5")
        assert member.health_status == HealthStatus.HEALTHY
        assert member.current_diet_plan is None

    def test_needs_attention(self):
        base = {
            "id": uuid4(), "user_id": uuid4(), "name": "R", "relation": "Son",
            "date_of_birth": date(2000, 1, 1), "gender": "male",
        }
        assert not FamilyMember(**base).needs_attention
        assert FamilyMember(**base, health_status="Critical").needs_attention

    def test_free_text_health_status(self):
        """Statuses outside the known set are kept as written."""
        member = FamilyMember(
            id=uuid4(), user_id=uuid4(), name="R", relation="Son",
            date_of_birth=date(2000, 1, 1), gender="male",
            health_status="Post-surgery recovery",
        )
        assert member.health_status == "Post-surgery recovery"
        assert member.health_label == "Post-surgery recovery"
        assert member.needs_attention

    def test_known_health_status_is_the_enum(self):
        member = FamilyMember(
            id=uuid4(), user_id=uuid4(), name="R", relation="Son",
            date_of_birth=date(2000, 1, 1), gender="male",
            health_status="Needs Attention",
        )
        assert member.health_status is HealthStatus.NEEDS_ATTENTION
        assert member.health_label == "Needs Attention"

    def test_member_create_blank_optional_fields(self):
        """Empty form fields become None."""
        data = FamilyMemberCreate(
            name="  Meera  ",
            relation="Daughter",
            date_of_birth=date(2012, 3, 3),
            blood_group="",
            upi_qr_code="   ",
        )
        assert data.name == "Meera"
        assert data.blood_group is None
        assert data.upi_qr_code is None
        assert data.gender == "male"

    def test_member_create_rejects_future_birth_date(self):
        with pytest.raises(ValueError):
            FamilyMemberCreate(
                name="Future",
                relation="Son",
                date_of_birth=date.today() + timedelta(days=1),
            )

    def test_member_update_tracks_set_fields(self):
        patch = FamilyMemberUpdate(name="New")
        assert patch.model_dump(exclude_unset=True) == {"name": "New"}

    def test_member_create_requires_name(self):
        with pytest.raises(ValueError):
            FamilyMemberCreate(name="", relation="Son", date_of_birth=date(2000, 1, 1))


class TestHealthModels:
    """Tests for medications and medical records."""

    def test_medication_dates_must_be_ordered(self):
        with pytest.raises(ValueError):
            MedicationCreate(
                name="Amoxicillin", dosage="250mg", frequency="Thrice daily",
                start_date=date(2024, 5, 10), end_date=date(2024, 5, 1),
            )

    def test_medication_blank_notes(self):
        med = MedicationCreate(name="A", dosage="1", frequency="Daily", notes=" ")
        assert med.notes is None

    def test_medical_record_json_dump(self):
        record = MedicalRecordCreate(
            type="Lab", description="HbA1c 6.8", date=date(2024, 2, 2), doctor="",
        )
        assert record.model_dump(mode="json") == {
            "type": "Lab",
            "description": "HbA1c 6.8",
            "date": "2024-02-02",
            "doctor": None,
            "attachments": [],
        }


class TestDietModels:
    """Tests for diet plan models."""

    def test_meals_by_slot(self):
        meals = Meals(breakfast=["Idli"], snacks=["Nuts"])
        assert meals.items_for(MealSlot.BREAKFAST) == ["Idli"]
        assert meals.items_for(MealSlot.DINNER) == []

    def test_normalized_drops_blank_items(self):
        plan = DietPlanCreate(
            calories=2000, protein=100, carbs=250, fat=70,
            meals=Meals(lunch=[" Dal ", "", "Rice"]),
            recommendations=["", "Eat slowly"],
        ).normalized()
        assert plan.meals.lunch == ["Dal", "Rice"]
        assert plan.recommendations == ["Eat slowly"]

    def test_negative_macros_rejected(self):
        with pytest.raises(ValueError):
            DietPlanCreate(calories=-1, protein=0, carbs=0, fat=0)

    def test_end_before_start_rejected(self):
        with pytest.raises(ValueError):
            DietPlanCreate(
                calories=1, protein=1, carbs=1, fat=1,
                start_date=datetime(2024, 2, 1), end_date=datetime(2024, 1, 1),
            )

    def test_default_start_is_utc_aware(self):
        plan = DietPlanCreate(calories=1, protein=1, carbs=1, fat=1)
        assert plan.start_date.tzinfo is not None

    def test_naive_end_compares_with_default_start(self):
        with pytest.raises(ValueError):
            DietPlanCreate(
                calories=1, protein=1, carbs=1, fat=1,
                end_date=datetime(2000, 1, 1),
            )


class TestFinanceModels:
    """Tests for transactions and transfers."""

    def test_transfer_request_row(self):
        src, dst = uuid4(), uuid4()
        row = TransferRequest(
            from_id=src, to_id=dst, amount=Decimal("99.90"), description=" Rent ",
        ).to_transaction_row()
        assert row == {
            "from_id": str(src),
            "to_id": str(dst),
            "amount": "99.90",
            "description": "Rent",
            "payment_proof": None,
            "status": "completed",
        }

    def test_transaction_amount_must_be_positive(self):
        with pytest.raises(ValueError):
            Transaction(id=uuid4(), from_id=uuid4(), to_id=uuid4(), amount=Decimal("0"))

    def test_transaction_involves(self):
        a, b = uuid4(), uuid4()
        txn = Transaction(
            id=uuid4(), from_id=a, to_id=b, amount="1",
            status=TransactionStatus.COMPLETED,
        )
        assert txn.involves(a) and txn.involves(b)
        assert not txn.involves(uuid4())

    def test_payment_proof_needs_image_or_utr(self):
        with pytest.raises(ValueError):
            PaymentProofUpdate()
        assert PaymentProofUpdate(utr_number="UTR1").payment_proof is None


class TestAuditModels:
    """Tests for audit models."""

    def test_audit_event_creation(self):
        event = AuditEvent(
            event_type=AuditEventType.MEMBER_ADDED,
            description="Member added",
        )
        assert event.event_id is not None
        assert event.severity == AuditSeverity.INFO
        assert event.timestamp.tzinfo is not None

    def test_audit_event_to_log_dict(self):
        member_id = uuid4()
        event = AuditEventBuilder.recommendations_failed(member_id, "HTTP 500")
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "recommendations_failed"
        assert log_dict["severity"] == "warning"
        assert log_dict["member_id"] == str(member_id)
        assert log_dict["error_message"] == "HTTP 500"

    def test_audit_event_row_is_json_serialisable(self):
        event = AuditEventBuilder.transfer_recorded(uuid4(), uuid4(), uuid4(), "10.00")
        row = event.to_row()
        json.dumps(row)
        assert row["details"]["amount"] == "10.00"

    def test_record_changed_description(self):
        event = AuditEventBuilder.record_changed(
            AuditEventType.MEDICAL_RECORD_REMOVED, "medical_record", uuid4(), uuid4()
        )
        assert event.description == "Medical record removed"
