"""
Tests for the recommendation service client
"""

import json
from datetime import date
from uuid import uuid4

import httpx
import pytest

from familyhub.config import DataServiceSettings, RecommendationSettings
from familyhub.models import FamilyMember, HealthStatus, Meals
from familyhub.services.recommendations import (
    DietContext,
    HealthContext,
    RecommendationService,
    RecommendationServiceError,
    WeightGoal,
)


def make_service(handler):
    return RecommendationService(
        DataServiceSettings(url="https://project.example.co", anon_key="anon-key"),
        RecommendationSettings(),
        transport=httpx.MockTransport(handler),
    )


def make_member(**overrides) -> FamilyMember:
    member_id = uuid4()
    data = {
        "id": member_id,
        "user_id": uuid4(),
        "name": "Asha",
        "relation": "Mother",
        "date_of_birth": date(1970, 1, 1),
        "gender": "female",
        "health_status": HealthStatus.NEEDS_ATTENTION,
        "medical_records": [{
            "id": uuid4(), "member_id": member_id, "type": "Diagnosis",
            "description": "Type 2 diabetes", "date": "2023-05-10", "doctor": "Dr. Rao",
        }],
        "medications": [{
            "id": uuid4(), "member_id": member_id, "name": "Metformin",
            "dosage": "500mg", "frequency": "Twice daily", "notes": "After meals",
        }],
    }
    data.update(overrides)
    return FamilyMember.model_validate(data)


class TestHealthContext:
    """Tests for the health request body."""

    def test_from_member_uses_wire_names(self):
        """Only the fields the function needs, camelCase keys."""
        body = HealthContext.from_member(make_member()).model_dump(mode="json", by_alias=True)

        assert body == {
            "medicalHistory": [
                {"type": "Diagnosis", "description": "Type 2 diabetes", "date": "2023-05-10"}
            ],
            "medications": [
                {"name": "Metformin", "dosage": "500mg", "frequency": "Twice daily"}
            ],
            "healthStatus": "Needs Attention",
        }

    def test_member_without_children(self):
        body = HealthContext.from_member(
            make_member(medical_records=None, medications=None, health_status="Healthy")
        ).model_dump(mode="json", by_alias=True)

        assert body["medicalHistory"] == []
        assert body["medications"] == []

    def test_free_text_status_is_sent_as_is(self):
        body = HealthContext.from_member(
            make_member(health_status="Under Treatment")
        ).model_dump(mode="json", by_alias=True)

        assert body["healthStatus"] == "Under Treatment"


class TestRecommendationService:
    """Tests for the HTTP client."""

    @pytest.mark.asyncio
    async def test_health_recommendations_request(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"recommendations": ["Check sugar weekly", " ", "Walk daily "]})

        result = await make_service(handler).health_recommendations(
            HealthContext.from_member(make_member())
        )

        assert seen["path"] == "/functions/v1/health-recommendations"
        assert seen["auth"] == "Bearer anon-key"
        assert seen["body"]["healthStatus"] == "Needs Attention"
        assert result == ["Check sugar weekly", "Walk daily"]

    @pytest.mark.asyncio
    async def test_diet_recommendations_request(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"recommendations": ["More fibre"]})

        context = DietContext(
            weekly_mess=Meals(breakfast=["Poha"], lunch=["Rajma chawal"]),
            weight_goal=WeightGoal(type="lose", current_weight=82, target_weight=75),
            dietary_restrictions=["Vegetarian"],
        )
        result = await make_service(handler).diet_recommendations(context)

        assert seen["path"] == "/functions/v1/generate-diet-plan"
        assert seen["body"]["weightGoal"] == {
            "type": "lose", "currentWeight": 82.0, "targetWeight": 75.0,
        }
        assert seen["body"]["weeklyMess"]["breakfast"] == ["Poha"]
        assert seen["body"]["dietaryRestrictions"] == ["Vegetarian"]
        assert result == ["More fibre"]

    @pytest.mark.asyncio
    async def test_non_2xx_is_an_error(self):
        service = make_service(lambda request: httpx.Response(500, text="boom"))

        with pytest.raises(RecommendationServiceError) as exc_info:
            await service.health_recommendations(HealthContext())

        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_body_without_list_is_an_error(self):
        service = make_service(lambda request: httpx.Response(200, json={"error": "quota"}))

        with pytest.raises(RecommendationServiceError):
            await service.health_recommendations(HealthContext())

    @pytest.mark.asyncio
    async def test_unreachable_is_an_error(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(RecommendationServiceError):
            await make_service(handler).health_recommendations(HealthContext())

    def test_invalid_weight_goal_type(self):
        with pytest.raises(ValueError):
            WeightGoal(type="bulk")
