import base64

import pytest

from extraction.text_source import decode_body, from_gmail_message, from_text, to_source_item
from planner_ai.models import SourceItem


def _b64(text):
    return base64.urlsafe_b64encode(text.encode()).decode().rstrip("=")


def _message(subject="Invoice due", body="Please pay by Friday", msg_id="m-42", parts=True):
    headers = [{"name": "From", "value": "billing@example.com"}]
    if subject is not None:
        headers.append({"name": "Subject", "value": subject})
    payload = {"headers": headers}
    if parts:
        payload["parts"] = [
            {"mimeType": "application/pdf", "body": {"attachmentId": "a1"}},
            {"mimeType": "text/plain", "body": {"data": _b64(body)}},
        ]
    else:
        payload["body"] = {"data": _b64(body)}
    return {"id": msg_id, "payload": payload}


def test_decode_body_handles_missing_padding():
    assert decode_body(_b64("hello?")) == "hello?"
    assert decode_body("") == ""


def test_multipart_message():
    item = from_gmail_message(_message())

    assert item.is_email
    assert item.email_id == "m-42"
    assert item.subject == "Invoice due"
    assert item.content == "Invoice due\n\nPlease pay by Friday"


def test_single_part_message_without_subject():
    item = from_gmail_message(_message(subject=None, parts=False))

    assert item.subject == "(No Subject)"
    assert item.content.startswith("(No Subject)\n\n")
    assert item.content.endswith("Please pay by Friday")


def test_text_items_are_not_email():
    item = from_text("buy milk")
    assert not item.is_email
    assert item.email_id is None


def test_to_source_item_dispatch():
    existing = SourceItem(content="x")
    assert to_source_item(existing) is existing
    assert to_source_item("buy milk").content == "buy milk"
    assert to_source_item(_message()).is_email
    with pytest.raises(TypeError):
        to_source_item(42)
