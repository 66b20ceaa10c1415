"""
Data Models Package

This package contains all Pydantic models used in FamilyHub.
All data flowing between the store and the remote services
must conform to these schemas.
"""

from familyhub.models.member import (
    DietPlan,
    DietPlanCreate,
    DietPlanUpdate,
    EmergencyContact,
    FamilyMember,
    FamilyMemberCreate,
    FamilyMemberUpdate,
    HealthStatus,
    MealSlot,
    Meals,
    MedicalRecord,
    MedicalRecordCreate,
    MedicalRecordUpdate,
    Medication,
    MedicationCreate,
    MedicationUpdate,
)
from familyhub.models.finance import (
    CheckoutOptions,
    DashboardStats,
    LedgerEntry,
    MemberLedger,
    PaymentConfirmation,
    PaymentProofUpdate,
    Transaction,
    TransactionStatus,
    TransferDirection,
    TransferRequest,
)
from familyhub.models.user import AuthUser
from familyhub.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Member models
    "DietPlan",
    "DietPlanCreate",
    "DietPlanUpdate",
    "EmergencyContact",
    "FamilyMember",
    "FamilyMemberCreate",
    "FamilyMemberUpdate",
    "HealthStatus",
    "MealSlot",
    "Meals",
    "MedicalRecord",
    "MedicalRecordCreate",
    "MedicalRecordUpdate",
    "Medication",
    "MedicationCreate",
    "MedicationUpdate",
    # Finance models
    "CheckoutOptions",
    "DashboardStats",
    "LedgerEntry",
    "MemberLedger",
    "PaymentConfirmation",
    "PaymentProofUpdate",
    "Transaction",
    "TransactionStatus",
    "TransferDirection",
    "TransferRequest",
    # Auth
    "AuthUser",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
