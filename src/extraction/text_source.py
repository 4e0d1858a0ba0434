from __future__ import annotations

import base64
import binascii
import logging
from typing import Any, Union

from planner_ai.models import SourceItem

logger = logging.getLogger(__name__)

NO_SUBJECT = "(No Subject)"
BODY_MIME_TYPES = ("text/plain", "text/html")


def decode_body(data: str) -> str:
    """Gmail bodies are URL-safe base64, usually without padding."""
    if not data:
        return ""
    padded = data + "=" * (-len(data) % 4)
    try:
        return base64.urlsafe_b64decode(padded).decode("utf-8", errors="replace")
    except (binascii.Error, ValueError) as e:
        logger.warning(f"Could not decode message body: {e}")
        return ""


def _message_body(payload: dict) -> str:
    parts = payload.get("parts")
    if parts:
        for part in parts:
            if part.get("mimeType") in BODY_MIME_TYPES:
                return decode_body((part.get("body") or {}).get("data", ""))
        return ""
    return decode_body((payload.get("body") or {}).get("data", ""))


def from_text(text: str) -> SourceItem:
    return SourceItem(content=text or "")


def from_gmail_message(message: dict) -> SourceItem:
    payload = message.get("payload") or {}
    headers = payload.get("headers") or []
    subject = next(
        (h.get("value") for h in headers if h.get("name") == "Subject" and h.get("value")),
        NO_SUBJECT,
    )
    body = _message_body(payload)
    return SourceItem(
        kind="email",
        subject=subject,
        content=f"{subject}\n\n{body}",
        email_id=message.get("id"),
    )


def to_source_item(item: Union[SourceItem, str, dict, Any]) -> SourceItem:
    if isinstance(item, SourceItem):
        return item
    if isinstance(item, str):
        return from_text(item)
    if isinstance(item, dict):
        return from_gmail_message(item)
    raise TypeError(f"Unsupported extraction input: {type(item).__name__}")
