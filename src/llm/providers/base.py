from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Optional

from llm.schemas import GenerationParameters


class ProviderError(Exception):
    """Non-2xx answer from an inference endpoint."""

    def __init__(self, status_code: int, detail: str = ""):
        super().__init__(f"API request failed with status {status_code}: {detail}")
        self.status_code = status_code
        self.detail = detail

    @property
    def is_rate_limited(self) -> bool:
        return self.status_code == 429

    @property
    def is_server_error(self) -> bool:
        return 500 <= self.status_code < 600


class LLMProvider(ABC):
    @abstractmethod
    async def generate(
        self,
        prompt: str,
        *,
        model: str,
        parameters: Optional[GenerationParameters] = None,
    ) -> str:
        """
        Must return the generated TEXT ("" when the endpoint produced nothing).
        Raises ProviderError for non-2xx responses.
        """
        raise NotImplementedError
