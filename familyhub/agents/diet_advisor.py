"""
Diet Advisor Agent

DESIGN DECISION: The chat model only REPHRASES what is already on
the member's profile (current meals, restrictions, health status)
into short, actionable advice.

CRITICAL BOUNDARIES:
- CAN: Suggest adjustments to the current meal plan
- CANNOT: Change the diet plan (the caller decides what to save)
- CANNOT: Diagnose or recommend medication
- MUST: Fail loudly (DietAdvisorError) instead of inventing advice

The agent is optional; the hosted recommendation functions remain
the primary source of recommendations.
"""

from typing import Any, Optional

import google.generativeai as genai
import structlog

from familyhub.config import GeminiSettings, get_settings
from familyhub.models.member import DietPlan, FamilyMember, MealSlot


logger = structlog.get_logger(__name__)

RECOMMENDATION_COUNT = 5


class DietAdvisorError(Exception):
    """The chat model could not produce recommendations."""
    pass


def _describe_plan(plan: Optional[DietPlan]) -> str:
    if plan is None:
        return "No diet plan recorded."

    lines = [
        f"Daily targets: {plan.calories} kcal, {plan.protein} g protein, "
        f"{plan.carbs} g carbs, {plan.fat} g fat"
    ]
    for slot in MealSlot:
        items = plan.meals.items_for(slot)
        lines.append(f"{slot.value.title()}: {', '.join(items) if items else 'nothing planned'}")
    return "\n".join(lines)


def build_prompt(member: FamilyMember) -> str:
    """Nutritionist prompt for one member."""
    plan = member.current_diet_plan
    restrictions = ", ".join(plan.restrictions) if plan and plan.restrictions else "None"

    return f"""You are a professional nutritionist advising a family member.

Current meal plan:
{_describe_plan(plan)}

Dietary restrictions: {restrictions}
Health status: {member.health_label}

Give exactly {RECOMMENDATION_COUNT} specific, actionable recommendations to improve this plan.
Rules:
- One recommendation per line
- No numbering, no headings, no extra commentary
- Respect every dietary restriction
- Do not recommend medication"""


def parse_recommendations(text: str) -> list[str]:
    """Non-blank lines of the reply, trimmed, bullets removed."""
    recommendations = []
    for line in text.splitlines():
        line = line.strip().lstrip("-*•").strip()
        if line:
            recommendations.append(line)
    return recommendations


class DietAdvisorAgent:
    """
    Chat-completion diet advisor.

    Args:
        settings: Gemini settings (defaults to the environment)
        model: Pre-built model exposing `generate_content_async`;
               when given, the SDK is not configured
    """

    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        model: Optional[Any] = None,
    ):
        self._settings = settings
        self._model = model

    def _get_model(self) -> Any:
        if self._model is None:
            settings = self._settings or get_settings().gemini
            genai.configure(api_key=settings.api_key)
            self._model = genai.GenerativeModel(
                model_name=settings.model_name,
                generation_config={
                    "temperature": settings.temperature,
                    "max_output_tokens": settings.max_tokens,
                },
            )
        return self._model

    async def recommend(self, member: FamilyMember) -> list[str]:
        """
        Ask the model for diet recommendations for a member.

        Raises:
            DietAdvisorError: If the model call fails or answers nothing
        """
        prompt = build_prompt(member)

        try:
            response = await self._get_model().generate_content_async(prompt)
            text = response.text
        except Exception as e:
            logger.warning(
                "diet_advice_failed",
                member_id=str(member.id),
                error=str(e),
            )
            raise DietAdvisorError(f"Diet advisor failed: {e}") from e

        recommendations = parse_recommendations(text or "")
        if not recommendations:
            raise DietAdvisorError("Diet advisor returned no recommendations")

        logger.info(
            "diet_advice_generated",
            member_id=str(member.id),
            count=len(recommendations),
        )
        return recommendations
