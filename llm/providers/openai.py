"""OpenAI extraction oracle using structured outputs."""

from datetime import date
from typing import Optional
from pydantic import BaseModel, Field
from openai import OpenAI
from errors import UnparseableExpense
from llm.dates import parse_expense_date
from llm.providers.base import ExtractionOracle
from llm.prompts.loader import PromptManager
from models.expense import ExtractedDraft, to_positive_amount
from logger import get_logger

logger = get_logger("llm")


# Pydantic model for structured output
class ExpenseExtraction(BaseModel):
    """Expense fields the model is asked to fill in."""

    amount: Optional[float] = None
    currency: str = "MXN"
    description: str = ""
    merchant_name: Optional[str] = None
    expense_date: Optional[str] = None
    confidence: float = Field(default=0.8, ge=0.0, le=1.0)


class OpenAIExtractor(ExtractionOracle):
    """OpenAI implementation using structured outputs for reliable JSON parsing."""

    def __init__(
        self,
        api_key: str,
        model: Optional[str] = None,
        client: Optional[OpenAI] = None,
        prompt_manager: Optional[PromptManager] = None,
    ):
        """Initialize the OpenAI extractor.

        Args:
            api_key: OpenAI API key.
            model: Model to use (e.g., "gpt-4o-mini"). If None, uses prompt default.
            client: Pre-built client, mainly for tests.
            prompt_manager: Prompt source, defaults to the bundled prompts.
        """
        self.client = client or OpenAI(api_key=api_key)
        self.model = model
        self.prompt_manager = prompt_manager or PromptManager()

    def extract(self, text: str, today: Optional[date] = None) -> ExtractedDraft:
        """Extract an expense draft from a chat message.

        Raises:
            UnparseableExpense: If the model found no positive amount.
            Exception: If the OpenAI API call fails.
        """
        today = today or date.today()
        rendered_prompt = self.prompt_manager.render_prompt(
            "extract_expense", {"text": text, "today": today.isoformat()}
        )

        model = self.model or rendered_prompt["parameters"].get("model", "gpt-4o-mini")
        temperature = rendered_prompt["parameters"].get("temperature", 0.1)
        max_tokens = rendered_prompt["parameters"].get("max_tokens", 500)

        logger.info(
            f"Extracting expense with model: {model}, "
            f"prompt version: {rendered_prompt['version']}"
        )

        try:
            response = self.client.beta.chat.completions.parse(
                model=model,
                messages=[
                    {"role": "system", "content": rendered_prompt["system_prompt"]},
                    {"role": "user", "content": rendered_prompt["user_prompt"]},
                ],
                temperature=temperature,
                max_tokens=max_tokens,
                response_format=ExpenseExtraction,
            )
        except Exception as e:
            logger.error(f"OpenAI API error: {e}")
            raise

        result = response.choices[0].message.parsed
        if result is None:
            logger.warning("OpenAI returned null parsed response")
            raise UnparseableExpense(f"No structured response for: {text!r}")

        return self._to_draft(result, text, today)

    def _to_draft(
        self, result: ExpenseExtraction, text: str, today: date
    ) -> ExtractedDraft:
        amount = to_positive_amount(result.amount)
        if amount is None:
            logger.info(f"No amount found in message: {text!r}")
            raise UnparseableExpense(f"No amount found in: {text!r}")

        return ExtractedDraft(
            amount=amount,
            description=result.description.strip() or text.strip(),
            raw_input=text,
            currency=(result.currency or "MXN").upper(),
            merchant_name=result.merchant_name or None,
            expense_date=parse_expense_date(result.expense_date, today),
            confidence_score=result.confidence,
        )

