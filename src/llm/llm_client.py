import asyncio
import logging
import os
from typing import Awaitable, Callable, Optional

from api.metrics import INFERENCE_FAILURES_TOTAL, INFERENCE_RETRIES_TOTAL
from llm.providers.base import LLMProvider, ProviderError
from llm.schemas import GenerationParameters

logger = logging.getLogger(__name__)

MAX_API_RETRIES = int(os.getenv("LLM_MAX_RETRIES", "3"))
RETRY_DELAY = float(os.getenv("LLM_RETRY_DELAY_S", "1.0"))
PRIMARY_MODEL = os.getenv("LLM_PRIMARY_MODEL", "google/flan-t5-base")
BACKUP_MODEL = os.getenv("LLM_BACKUP_MODEL", "google/flan-t5-large")


class InferenceError(Exception):
    """Both the primary and the backup model are exhausted."""


def get_provider(name: Optional[str] = None) -> LLMProvider:
    name = (name or os.getenv("LLM_PROVIDER", "huggingface")).strip().lower()
    if name == "mock":
        from llm.providers.mock_provider import MockProvider

        return MockProvider()
    if name == "huggingface":
        from llm.providers.huggingface_provider import HuggingFaceProvider

        return HuggingFaceProvider()
    raise ValueError(f"Unknown LLM_PROVIDER: {name}")


class LLMClient:
    """Text-generation client with backoff on the current model and a single
    fall-over from the primary to the backup model.

    - 429 and unexpected errors: wait RETRY_DELAY * 2**attempt and retry the same model
      (at most `max_retries` retries).
    - 5xx, empty text or exhausted retries: move on to the backup model, attempt counter reset.
    - Nothing left: InferenceError carrying the last cause.
    """

    def __init__(
        self,
        provider: Optional[LLMProvider] = None,
        primary_model: str = PRIMARY_MODEL,
        backup_model: Optional[str] = BACKUP_MODEL,
        max_retries: int = MAX_API_RETRIES,
        retry_delay: float = RETRY_DELAY,
        parameters: Optional[GenerationParameters] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.provider = provider or get_provider()
        self.primary_model = primary_model
        self.backup_model = backup_model
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.parameters = parameters or GenerationParameters()
        self._sleep = sleep

    def _models(self) -> list[str]:
        models = [self.primary_model]
        if self.backup_model and self.backup_model != self.primary_model:
            models.append(self.backup_model)
        return models

    async def _backoff(self, model: str, attempt: int) -> None:
        delay = self.retry_delay * (2 ** attempt)
        logger.info(f"Retrying {model} in {delay:.2f}s (attempt {attempt + 1}/{self.max_retries})")
        try:
            INFERENCE_RETRIES_TOTAL.labels(model=model).inc()
        except Exception:
            pass
        await self._sleep(delay)

    async def infer(self, prompt: str) -> str:
        logger.debug(f"Calling inference with prompt: {prompt[:100]}...")
        last_error: Optional[BaseException] = None

        for model in self._models():
            for attempt in range(self.max_retries + 1):
                try:
                    text = await self.provider.generate(
                        prompt, model=model, parameters=self.parameters
                    )
                except ProviderError as e:
                    last_error = e
                    if e.is_server_error:
                        logger.warning(f"{model} returned {e.status_code}, switching model")
                        break
                    if attempt >= self.max_retries:
                        logger.warning(f"{model} exhausted {self.max_retries} retries: {e}")
                        break
                    if e.is_rate_limited:
                        logger.warning(f"{model} rate limited (429)")
                    else:
                        logger.warning(f"{model} request failed: {e}")
                    await self._backoff(model, attempt)
                    continue
                except Exception as e:
                    last_error = e
                    if attempt >= self.max_retries:
                        logger.warning(f"{model} exhausted {self.max_retries} retries: {e}")
                        break
                    logger.warning(f"Error calling {model}: {e}")
                    await self._backoff(model, attempt)
                    continue

                if not text or not text.strip():
                    last_error = InferenceError(f"{model} returned empty response")
                    logger.warning(f"{model} returned empty response, switching model")
                    break

                logger.debug(f"Response from {model}: {text[:100]}...")
                return text

        try:
            INFERENCE_FAILURES_TOTAL.inc()
        except Exception:
            pass
        cause = str(last_error) if last_error is not None else "no model configured"
        raise InferenceError(f"Failed to process with NLP model: {cause}") from last_error
