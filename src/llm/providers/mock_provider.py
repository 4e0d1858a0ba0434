from __future__ import annotations
from typing import Optional

from llm.schemas import GenerationParameters
from llm.providers.base import LLMProvider


class MockProvider(LLMProvider):
    async def generate(
        self,
        prompt: str,
        *,
        model: str,
        parameters: Optional[GenerationParameters] = None,
    ) -> str:
        """
        Returns canned answers shaped like the real model output, based on the prompt content.
        """
        # Category request
        if prompt.startswith("Categorize this task"):
            title = prompt.rsplit(":", 1)[-1].lower()
            if "mom" in title or "dinner" in title:
                return "Personal"
            if "run" in title or "gym" in title or "dentist" in title:
                return "Health"
            if "buy" in title or "groceries" in title:
                return "Shopping"
            if "invoice" in title or "pay" in title:
                return "Finance"
            return "Work"

        # Task request
        if "Analyze this text" in prompt:
            text = prompt.split("Text:", 1)[-1].strip()
            if not text:
                return "No task found"
            first_line = text.splitlines()[0][:80]
            return (
                f"{first_line}\n"
                "Priority: MEDIUM\n"
                "Time: 9am to 10am\n"
                "Deadline: tomorrow"
            )

        # Default fallback
        return ""
