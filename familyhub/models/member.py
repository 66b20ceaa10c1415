"""
Member Data Models for FamilyHub

These models define the schemas for family members and the records
attached to them (medical records, medications, diet plans,
emergency contacts).

DESIGN DECISION: Each entity has three shapes:
1. The row model (what the remote store returns, includes id/timestamps)
2. A *Create model (what the caller supplies for an insert)
3. A *Update model (all-optional patch, applied with exclude_unset)

Only fields the caller actually set are sent to the store and merged
into the mirror. This is what makes concurrent patches on different
fields of the same member merge instead of overwrite.
"""

import datetime as dt
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional, Union
from uuid import UUID

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


# =============================================================================
# ENUMS
# =============================================================================

class HealthStatus(str, Enum):
    """Overall health flag shown on the dashboard."""
    HEALTHY = "Healthy"
    NEEDS_ATTENTION = "Needs Attention"
    CRITICAL = "Critical"


class MealSlot(str, Enum):
    """Meal slots of a diet plan, in display order."""
    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"
    SNACKS = "snacks"


def _blank_to_none(v):
    """Forms submit empty strings for optional fields."""
    if isinstance(v, str) and not v.strip():
        return None
    return v


def _clean_items(items: list[str]) -> list[str]:
    return [item.strip() for item in items if item and item.strip()]


def _as_utc(value: datetime) -> datetime:
    """Naive datetimes from forms are taken as UTC."""
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


# =============================================================================
# MEDICAL RECORDS & MEDICATIONS
# =============================================================================

class MedicalRecord(BaseModel):
    """A single entry in a member's medical history."""
    model_config = ConfigDict(extra="ignore")

    id: UUID
    member_id: UUID
    type: str
    description: str
    date: dt.date
    doctor: Optional[str] = None
    attachments: list[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None


class MedicalRecordCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    type: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=2000)
    date: dt.date
    doctor: Optional[str] = Field(default=None, max_length=200)
    attachments: list[str] = Field(default_factory=list)

    @field_validator('doctor', mode='before')
    @classmethod
    def none_if_blank(cls, v):
        return _blank_to_none(v)


class MedicalRecordUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    type: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, min_length=1, max_length=2000)
    date: Optional[dt.date] = None
    doctor: Optional[str] = Field(default=None, max_length=200)
    attachments: Optional[list[str]] = None


class Medication(BaseModel):
    """A medication a member is currently or was previously taking."""
    model_config = ConfigDict(extra="ignore")

    id: UUID
    member_id: UUID
    name: str
    dosage: str
    frequency: str
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class MedicationCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=200)
    dosage: str = Field(..., min_length=1, max_length=100)
    frequency: str = Field(..., min_length=1, max_length=100)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    notes: Optional[str] = Field(default=None, max_length=1000)

    @field_validator('notes', mode='before')
    @classmethod
    def none_if_blank(cls, v):
        return _blank_to_none(v)

    @model_validator(mode='after')
    def validate_dates(self) -> 'MedicationCreate':
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("Medication end date cannot be before start date")
        return self


class MedicationUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    dosage: Optional[str] = Field(default=None, min_length=1, max_length=100)
    frequency: Optional[str] = Field(default=None, min_length=1, max_length=100)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    notes: Optional[str] = Field(default=None, max_length=1000)


# =============================================================================
# EMERGENCY CONTACTS
# =============================================================================

class EmergencyContact(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: UUID
    member_id: UUID
    name: str
    relation: Optional[str] = None
    phone: str
    created_at: Optional[datetime] = None


# =============================================================================
# DIET PLANS
# =============================================================================

class Meals(BaseModel):
    """Meal map of a diet plan: slot -> ordered list of free-text items."""
    model_config = ConfigDict(extra="ignore")

    breakfast: list[str] = Field(default_factory=list)
    lunch: list[str] = Field(default_factory=list)
    dinner: list[str] = Field(default_factory=list)
    snacks: list[str] = Field(default_factory=list)

    def items_for(self, slot: MealSlot) -> list[str]:
        return getattr(self, slot.value)

    def cleaned(self) -> 'Meals':
        """Copy with blank items removed from every slot."""
        return Meals(**{
            slot.value: _clean_items(self.items_for(slot)) for slot in MealSlot
        })


class DietPlan(BaseModel):
    """
    A diet plan attached to a member.

    Macro targets are whole numbers (kcal and grams).
    """
    model_config = ConfigDict(extra="ignore")

    id: UUID
    member_id: UUID
    calories: int = Field(ge=0)
    protein: int = Field(ge=0)
    carbs: int = Field(ge=0)
    fat: int = Field(ge=0)
    meals: Meals = Field(default_factory=Meals)
    recommendations: list[str] = Field(default_factory=list)
    restrictions: list[str] = Field(default_factory=list)
    start_date: datetime
    end_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class DietPlanCreate(BaseModel):
    """
    A new diet plan as entered by the user.

    Use normalized() before saving to drop the blank rows a form
    leaves behind.
    """

    calories: int = Field(..., ge=0)
    protein: int = Field(..., ge=0)
    carbs: int = Field(..., ge=0)
    fat: int = Field(..., ge=0)
    meals: Meals = Field(default_factory=Meals)
    recommendations: list[str] = Field(default_factory=list)
    restrictions: list[str] = Field(default_factory=list)
    start_date: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    end_date: Optional[datetime] = None

    @model_validator(mode='after')
    def validate_dates(self) -> 'DietPlanCreate':
        if self.end_date and _as_utc(self.end_date) < _as_utc(self.start_date):
            raise ValueError("Diet plan end date cannot be before start date")
        return self

    def normalized(self) -> 'DietPlanCreate':
        return self.model_copy(update={
            "meals": self.meals.cleaned(),
            "recommendations": _clean_items(self.recommendations),
            "restrictions": _clean_items(self.restrictions),
        })


class DietPlanUpdate(BaseModel):
    calories: Optional[int] = Field(default=None, ge=0)
    protein: Optional[int] = Field(default=None, ge=0)
    carbs: Optional[int] = Field(default=None, ge=0)
    fat: Optional[int] = Field(default=None, ge=0)
    meals: Optional[Meals] = None
    recommendations: Optional[list[str]] = None
    restrictions: Optional[list[str]] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


# =============================================================================
# FAMILY MEMBER
# =============================================================================

class FamilyMember(BaseModel):
    """
    A person profile owned by one application user.

    Child collections are embedded; they are loaded in the same
    request as the member and live inside it in the mirror, so a
    removed member can never leave orphaned children behind.
    """
    model_config = ConfigDict(extra="ignore")

    id: UUID
    user_id: UUID
    name: str
    relation: str
    date_of_birth: date
    gender: str
    blood_group: Optional[str] = None
    # Free-text column; statuses outside the enum are kept as plain strings
    health_status: Union[HealthStatus, str] = Field(
        default=HealthStatus.HEALTHY,
        union_mode='left_to_right',
    )
    balance: Decimal = Decimal("0")
    upi_qr_code: Optional[str] = None
    recommendations: list[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    medical_records: list[MedicalRecord] = Field(default_factory=list)
    medications: list[Medication] = Field(default_factory=list)
    diet_plans: list[DietPlan] = Field(default_factory=list)
    emergency_contacts: list[EmergencyContact] = Field(default_factory=list)

    @field_validator(
        'recommendations',
        'medical_records',
        'medications',
        'diet_plans',
        'emergency_contacts',
        mode='before',
    )
    @classmethod
    def null_to_empty(cls, v):
        """The store returns null for never-written array columns."""
        return [] if v is None else v

    @property
    def needs_attention(self) -> bool:
        return self.health_status != HealthStatus.HEALTHY

    @property
    def health_label(self) -> str:
        if isinstance(self.health_status, HealthStatus):
            return self.health_status.value
        return self.health_status

    @property
    def current_diet_plan(self) -> Optional[DietPlan]:
        """The plan shown as active: the first one loaded."""
        return self.diet_plans[0] if self.diet_plans else None


class FamilyMemberCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=200)
    relation: str = Field(..., min_length=1, max_length=100)
    date_of_birth: date
    gender: str = Field(default="male", max_length=50)
    blood_group: Optional[str] = Field(default=None, max_length=10)
    health_status: HealthStatus = HealthStatus.HEALTHY
    balance: Decimal = Field(default=Decimal("0"), decimal_places=2)
    upi_qr_code: Optional[str] = None

    @field_validator('blood_group', 'upi_qr_code', mode='before')
    @classmethod
    def none_if_blank(cls, v):
        return _blank_to_none(v)

    @field_validator('date_of_birth')
    @classmethod
    def not_in_future(cls, v: date) -> date:
        if v > date.today():
            raise ValueError("Date of birth cannot be in the future")
        return v


class FamilyMemberUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    relation: Optional[str] = Field(default=None, min_length=1, max_length=100)
    date_of_birth: Optional[date] = None
    gender: Optional[str] = Field(default=None, max_length=50)
    blood_group: Optional[str] = Field(default=None, max_length=10)
    health_status: Optional[HealthStatus] = None
    balance: Optional[Decimal] = Field(default=None, decimal_places=2)
    upi_qr_code: Optional[str] = None
    recommendations: Optional[list[str]] = None
