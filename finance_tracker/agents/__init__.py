"""AI Agents package."""

from finance_tracker.agents.ai_agents import (
    CategorySuggestion,
    CategorySuggestionAgent,
    SuggestionRejected,
)

__all__ = [
    "CategorySuggestion",
    "CategorySuggestionAgent",
    "SuggestionRejected",
]
