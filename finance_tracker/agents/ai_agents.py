"""
AI Agents for Finance Tracker

CRITICAL BOUNDARIES:

CATEGORY SUGGESTION AGENT:
   - CAN: Suggest a category for a transaction description
   - CANNOT: Insert, edit or delete anything
   - CANNOT: Block a transaction from being saved

The suggestion is ADVISORY. Any failure (no API key, network error,
unparseable reply, a label we don't know, a category not valid for the
transaction type) degrades to "no suggestion" and the user picks the
category manually.
"""

import json
from typing import Any, Optional, Union

import google.generativeai as genai
import structlog
from pydantic import BaseModel, Field

from finance_tracker.audit import AuditLogger
from finance_tracker.config import get_settings
from finance_tracker.config.settings import GeminiSettings
from finance_tracker.models.ledger import Category, TransactionType, categories_for


logger = structlog.get_logger(__name__)


class CategorySuggestion(BaseModel):
    """AI's suggestion for a transaction category."""

    category: Category
    confidence: float = Field(ge=0.0, le=1.0)
    reasoning: str = ""


class SuggestionRejected(ValueError):
    """The model replied, but not with a usable suggestion."""
    pass


def _match_category(label: str) -> Category:
    wanted = label.strip().lower()
    for category in Category:
        if category.value.lower() == wanted:
            return category
    raise SuggestionRejected(f"Unknown category label: {label!r}")


class CategorySuggestionAgent:
    """
    Suggests a category from a description and optional vendor.

    The Gemini model is configured on first use, so building the agent
    never needs an API key. Tests inject any object with an async
    generate_content_async(prompt) method.
    """

    def __init__(
        self,
        model: Optional[Any] = None,
        settings: Optional[GeminiSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._model = model
        self._settings = settings
        self._audit_logger = audit_logger

    def _get_model(self) -> Any:
        """Configure Google Generative AI."""
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

    @staticmethod
    def build_prompt(
        description: str,
        vendor: Optional[str] = None,
        transaction_type: Optional[TransactionType] = None,
    ) -> str:
        if transaction_type is not None:
            allowed = sorted(c.value for c in categories_for(transaction_type))
        else:
            allowed = [c.value for c in Category]

        context = f"Description: {description}"
        if vendor:
            context += f"\nVendor: {vendor}"
        if transaction_type is not None:
            context += f"\nType: {transaction_type.value}"

        return f"""You are helping categorize a transaction for a personal finance tracker.

Transaction:
{context}

Available categories: {', '.join(allowed)}

Respond with ONLY a JSON object in this exact format:
{{"category": "category_name", "confidence": 0.8, "reasoning": "brief explanation"}}

Be conservative - if unsure, use "Other" with a low confidence."""

    @staticmethod
    def parse_reply(
        text: str,
        transaction_type: Optional[TransactionType] = None,
    ) -> CategorySuggestion:
        """
        Turn the model's reply into a suggestion.

        Raises:
            SuggestionRejected: No JSON object, unknown label, or a
                category not valid for the transaction type
        """
        start = text.find("{")
        end = text.rfind("}") + 1
        if start < 0 or end <= start:
            raise SuggestionRejected("Reply contains no JSON object")
        try:
            data = json.loads(text[start:end])
        except json.JSONDecodeError as e:
            raise SuggestionRejected(f"Reply is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise SuggestionRejected("Reply JSON is not an object")

        category = _match_category(str(data.get("category", "")))
        if transaction_type is not None and category not in categories_for(transaction_type):
            raise SuggestionRejected(
                f"'{category.value}' is not a valid {transaction_type.value} category"
            )
        try:
            confidence = float(data.get("confidence", 0.5))
        except (TypeError, ValueError) as e:
            raise SuggestionRejected(f"Bad confidence: {data.get('confidence')!r}") from e
        if not 0.0 <= confidence <= 1.0:
            raise SuggestionRejected(f"Confidence out of range: {confidence}")

        return CategorySuggestion(
            category=category,
            confidence=confidence,
            reasoning=str(data.get("reasoning", "")),
        )

    async def suggest_category(
        self,
        description: str,
        vendor: Optional[str] = None,
        transaction_type: Optional[Union[TransactionType, str]] = None,
    ) -> Optional[CategorySuggestion]:
        """
        Suggest a category, or None when no usable suggestion exists.

        Never raises. Any failure, an unknown transaction type included,
        is logged and gives None.
        """
        if not description or not description.strip():
            return None

        try:
            if transaction_type is not None:
                transaction_type = TransactionType(transaction_type)
            prompt = self.build_prompt(description.strip(), vendor, transaction_type)
            response = await self._get_model().generate_content_async(prompt)
            suggestion = self.parse_reply(response.text.strip(), transaction_type)
        except Exception as e:
            logger.warning("category_suggestion_failed", error=str(e))
            if self._audit_logger:
                await self._audit_logger.log_category_suggestion_failed(
                    error_message=str(e),
                    description=description,
                )
            return None

        if self._audit_logger:
            await self._audit_logger.log_category_suggested(
                category=suggestion.category.value,
                confidence=suggestion.confidence,
                description=description,
            )
        return suggestion
