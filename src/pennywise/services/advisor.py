import asyncio
import json
import os

from openai import OpenAI

from pennywise.core.settings import DEFAULT_OPENAI_MODEL
from pennywise.logger import get_logger
from pennywise.models import Transaction

logger = get_logger(__name__)

MAX_TRANSACTIONS = 50
UNAVAILABLE_MESSAGE = "Unable to generate insights at this time."
APOLOGY_MESSAGE = (
    "Sorry, I couldn't analyze your data right now. Please ensure your API key is valid."
)

PROMPT_TEMPLATE = """
Analyze the following list of recent financial transactions.

Transactions:
{transactions}

Please provide a brief, helpful analysis in markdown format.
1. Summarize the spending habits.
2. Point out the largest expense categories.
3. Give one specific, actionable tip to save money based on this data.

Keep the tone encouraging but professional. Limit response to 150 words.
"""


def build_prompt(transactions: list[Transaction]) -> str:
    recent = [
        {
            "date": t.date,
            "type": t.type.value,
            "category": t.category_name,
            "subcategory": t.subcategory_name,
            "amount": t.amount,
            "desc": t.description,
        }
        for t in transactions[:MAX_TRANSACTIONS]
    ]
    return PROMPT_TEMPLATE.format(transactions=json.dumps(recent))


class FinancialAdvisor:
    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
    ):
        self.client = OpenAI(
            api_key=api_key or os.getenv("OPENAI_API_KEY"),
            base_url=base_url or os.getenv("OPENAI_BASE_URL") or None,
        )
        self.model = model or os.getenv("OPENAI_MODEL") or DEFAULT_OPENAI_MODEL

    def _generate(self, prompt: str) -> str:
        try:
            response = self.client.responses.create(
                model=self.model,
                instructions="You are a wise personal finance advisor.",
                input=prompt,
            )
        except Exception as e:
            logger.error("[ADVISOR] Text generation failed: %s", e)
            return APOLOGY_MESSAGE
        return self._extract_output_text(response) or UNAVAILABLE_MESSAGE

    async def advise(self, transactions: list[Transaction]) -> str:
        """Short markdown commentary on the most recent transactions. Never raises."""
        prompt = build_prompt(transactions)
        logger.info(
            "[ADVISOR] Requesting advice for %s transactions.",
            min(len(transactions), MAX_TRANSACTIONS),
        )
        return await asyncio.to_thread(self._generate, prompt)

    @staticmethod
    def _extract_output_text(response: object) -> str | None:
        output_text = getattr(response, "output_text", None)
        if output_text:
            return output_text

        parts: list[str] = []
        for item in getattr(response, "output", None) or []:
            for block in getattr(item, "content", None) or []:
                if getattr(block, "type", None) in {"output_text", "text"}:
                    text = getattr(block, "text", None)
                    if text:
                        parts.append(text)
        return "".join(parts) or None
