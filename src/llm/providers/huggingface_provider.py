from __future__ import annotations
import logging
import os
from typing import Optional

import httpx

from llm.schemas import GenerationParameters, InferenceRequest, extract_generated_text
from .base import LLMProvider, ProviderError

logger = logging.getLogger(__name__)


class HuggingFaceProvider(LLMProvider):
    def __init__(
        self,
        api_token: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout_s: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_token = (api_token if api_token is not None else os.getenv("HF_API_TOKEN", "")).strip()
        self.base_url = (
            base_url or os.getenv("HF_API_BASE_URL", "https://api-inference.huggingface.co/models")
        ).strip().rstrip("/")
        self.timeout_s = timeout_s
        # tests inject httpx.MockTransport here
        self._transport = transport

        if not self.api_token:
            logger.warning("HF_API_TOKEN is not set; requests will be anonymous")

    async def generate(
        self,
        prompt: str,
        *,
        model: str,
        parameters: Optional[GenerationParameters] = None,
    ) -> str:
        url = f"{self.base_url}/{model}"
        headers = {"Content-Type": "application/json"}
        if self.api_token:
            headers["Authorization"] = f"Bearer {self.api_token}"
        body = InferenceRequest(inputs=prompt, parameters=parameters)

        async with httpx.AsyncClient(timeout=self.timeout_s, transport=self._transport) as client:
            r = await client.post(url, headers=headers, json=body.model_dump(exclude_none=True))

        if r.status_code < 200 or r.status_code >= 300:
            raise ProviderError(r.status_code, r.text[:200])

        return extract_generated_text(r.json())
