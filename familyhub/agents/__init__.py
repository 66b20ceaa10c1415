"""AI agents package."""

from familyhub.agents.diet_advisor import (
    DietAdvisorAgent,
    DietAdvisorError,
    build_prompt,
    parse_recommendations,
)

__all__ = [
    "DietAdvisorAgent",
    "DietAdvisorError",
    "build_prompt",
    "parse_recommendations",
]
