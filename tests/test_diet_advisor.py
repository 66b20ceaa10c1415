"""
Tests for the diet advisor agent

The chat model is a fake exposing generate_content_async.
"""

from datetime import date, datetime
from types import SimpleNamespace
from uuid import uuid4

import pytest

from familyhub.agents import (
    DietAdvisorAgent,
    DietAdvisorError,
    build_prompt,
    parse_recommendations,
)
from familyhub.models import FamilyMember, HealthStatus


class FakeModel:
    def __init__(self, text="", error=None):
        self.text = text
        self.error = error
        self.prompts = []

    async def generate_content_async(self, prompt):
        self.prompts.append(prompt)
        if self.error:
            raise self.error
        return SimpleNamespace(text=self.text)


def make_member(with_plan: bool = True) -> FamilyMember:
    member_id = uuid4()
    plans = []
    if with_plan:
        plans.append({
            "id": uuid4(), "member_id": member_id,
            "calories": 1800, "protein": 80, "carbs": 210, "fat": 55,
            "meals": {"breakfast": ["Poha", "Tea"], "lunch": ["Dal", "Rice"]},
            "restrictions": ["No peanuts"],
            "start_date": datetime(2024, 1, 1),
        })
    return FamilyMember(
        id=member_id, user_id=uuid4(), name="Ravi", relation="Son",
        date_of_birth=date(2005, 2, 2), gender="male",
        health_status=HealthStatus.NEEDS_ATTENTION, diet_plans=plans,
    )


class TestPrompt:
    """Tests for prompt construction."""

    def test_prompt_describes_plan(self):
        prompt = build_prompt(make_member())

        assert "professional nutritionist" in prompt
        assert "Breakfast: Poha, Tea" in prompt
        assert "Dinner: nothing planned" in prompt
        assert "1800 kcal" in prompt
        assert "Dietary restrictions: No peanuts" in prompt
        assert "Health status: Needs Attention" in prompt

    def test_prompt_without_plan(self):
        prompt = build_prompt(make_member(with_plan=False))

        assert "No diet plan recorded." in prompt
        assert "Dietary restrictions: None" in prompt

    def test_parse_strips_bullets_and_blanks(self):
        text = "- Add a fruit to breakfast\n\n* Swap white rice for brown rice  \n   \nDrink water"
        assert parse_recommendations(text) == [
            "Add a fruit to breakfast",
            "Swap white rice for brown rice",
            "Drink water",
        ]


class TestDietAdvisorAgent:
    """Tests for the agent."""

    @pytest.mark.asyncio
    async def test_recommend(self):
        model = FakeModel("Eat more greens\nCut sugar\n")

        result = await DietAdvisorAgent(model=model).recommend(make_member())

        assert result == ["Eat more greens", "Cut sugar"]
        assert len(model.prompts) == 1

    @pytest.mark.asyncio
    async def test_model_failure(self):
        model = FakeModel(error=RuntimeError("quota exceeded"))

        with pytest.raises(DietAdvisorError) as exc_info:
            await DietAdvisorAgent(model=model).recommend(make_member())

        assert isinstance(exc_info.value.__cause__, RuntimeError)

    @pytest.mark.asyncio
    async def test_empty_reply(self):
        with pytest.raises(DietAdvisorError):
            await DietAdvisorAgent(model=FakeModel("  \n\n")).recommend(make_member())
