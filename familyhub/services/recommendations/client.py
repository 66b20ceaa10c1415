"""
Recommendation Service Client

The hosted project exposes two recommendation functions:
- health-recommendations: medical history + medications + health status
- generate-diet-plan: weekly meals + weight goal + dietary restrictions

Both take a JSON body and answer {"recommendations": [...]}.

CRITICAL: A non-2xx response is a hard failure for the caller.
Whether that failure is swallowed is the caller's decision
(the store swallows it for the health refresh, nothing else does).
"""

from typing import Optional, Union

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from familyhub.config import (
    DataServiceSettings,
    RecommendationSettings,
    get_settings,
)
from familyhub.models.member import FamilyMember, HealthStatus, Meals
from familyhub.services.storage.interface import RemoteError


class RecommendationServiceError(RemoteError):
    """The recommendation function failed or answered garbage."""
    pass


# =============================================================================
# REQUEST / RESPONSE BODIES
# =============================================================================

class MedicalHistoryItem(BaseModel):
    type: str
    description: str
    date: str


class MedicationItem(BaseModel):
    name: str
    dosage: str
    frequency: str


class HealthContext(BaseModel):
    """Body of a health-recommendations request."""
    model_config = ConfigDict(populate_by_name=True)

    medical_history: list[MedicalHistoryItem] = Field(
        default_factory=list, alias="medicalHistory"
    )
    medications: list[MedicationItem] = Field(default_factory=list)
    health_status: Union[HealthStatus, str] = Field(
        default=HealthStatus.HEALTHY,
        alias="healthStatus",
        union_mode='left_to_right',
    )

    @classmethod
    def from_member(cls, member: FamilyMember) -> "HealthContext":
        return cls(
            medical_history=[
                MedicalHistoryItem(
                    type=record.type,
                    description=record.description,
                    date=record.date.isoformat(),
                )
                for record in member.medical_records
            ],
            medications=[
                MedicationItem(
                    name=med.name,
                    dosage=med.dosage,
                    frequency=med.frequency,
                )
                for med in member.medications
            ],
            health_status=member.health_status,
        )


class WeightGoal(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: str = Field(default="maintain", pattern="^(lose|maintain|gain)$")
    current_weight: float = Field(default=70, gt=0, alias="currentWeight")
    target_weight: float = Field(default=70, gt=0, alias="targetWeight")


class DietContext(BaseModel):
    """Body of a generate-diet-plan request."""
    model_config = ConfigDict(populate_by_name=True)

    weekly_mess: Meals = Field(default_factory=Meals, alias="weeklyMess")
    weight_goal: WeightGoal = Field(default_factory=WeightGoal, alias="weightGoal")
    dietary_restrictions: list[str] = Field(
        default_factory=list, alias="dietaryRestrictions"
    )


class RecommendationResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    recommendations: list[str]


# =============================================================================
# CLIENT
# =============================================================================

class RecommendationService:
    """
    HTTP client for the recommendation functions.

    Authenticates with the project's anon key as bearer token.
    """

    def __init__(
        self,
        data_settings: Optional[DataServiceSettings] = None,
        settings: Optional[RecommendationSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._data_settings = data_settings or get_settings().data_service
        self._settings = settings or get_settings().recommendations
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._data_settings.functions_url,
                headers={
                    "Authorization": f"Bearer {self._data_settings.anon_key}",
                    "Content-Type": "application/json",
                },
                timeout=self._settings.timeout_seconds,
                transport=self._transport,
            )
        return self._client

    async def _post(self, function: str, body: BaseModel) -> list[str]:
        try:
            response = await self._get_client().post(
                function,
                json=body.model_dump(mode="json", by_alias=True),
            )
        except httpx.HTTPError as e:
            raise RecommendationServiceError(f"{function} unreachable: {e}") from e

        if not response.is_success:
            raise RecommendationServiceError(
                f"{function} failed with HTTP {response.status_code}",
                status_code=response.status_code,
            )

        try:
            parsed = RecommendationResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise RecommendationServiceError(
                f"{function} returned an unexpected body: {e}"
            ) from e

        return [rec.strip() for rec in parsed.recommendations if rec.strip()]

    async def health_recommendations(self, context: HealthContext) -> list[str]:
        """Recommendations for a member's medical history and medications."""
        return await self._post(self._settings.health_function, context)

    async def diet_recommendations(self, context: DietContext) -> list[str]:
        """Recommendations for a weekly meal plan and weight goal."""
        return await self._post(self._settings.diet_function, context)

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
