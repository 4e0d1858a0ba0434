from __future__ import annotations
from typing import Any, Optional
from pydantic import BaseModel, Field


class GenerationParameters(BaseModel):
    max_length: int = Field(default=512, gt=0)
    temperature: float = Field(default=0.7, ge=0.0)
    top_p: float = Field(default=0.95, gt=0.0, le=1.0)
    do_sample: bool = True


class InferenceRequest(BaseModel):
    inputs: str
    parameters: Optional[GenerationParameters] = None


def extract_generated_text(payload: Any) -> str:
    """Pull `generated_text` out of either `[{...}]` or `{...}` response shapes.

    Returns "" when the payload carries no text.
    """
    if isinstance(payload, list):
        payload = payload[0] if payload else {}
    if not isinstance(payload, dict):
        return ""
    text = payload.get("generated_text")
    return text if isinstance(text, str) else ""
