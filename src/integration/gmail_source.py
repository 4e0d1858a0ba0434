import logging
from typing import Optional

from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

logger = logging.getLogger(__name__)


class GmailMessageSource:
    """Lists recent messages (full payload) from the signed-in Gmail account."""

    def __init__(self, credentials=None, query: Optional[str] = None):
        self.credentials = credentials
        self.query = query
        self._service = None

    def _get_service(self):
        if self._service is None:
            self._service = build("gmail", "v1", credentials=self.credentials, cache_discovery=False)
        return self._service

    def list_recent(self, max_results: int = 50) -> list[dict]:
        if self.credentials is None:
            logger.warning("Gmail authentication required for email extraction")
            return []

        service = self._get_service()
        try:
            listing = (
                service.users()
                .messages()
                .list(userId="me", maxResults=max_results, q=self.query)
                .execute()
            )
            messages = []
            for ref in listing.get("messages", [])[:max_results]:
                messages.append(
                    service.users().messages().get(userId="me", id=ref["id"], format="full").execute()
                )
        except HttpError as e:
            logger.error(f"Gmail API error: {e}")
            return []

        logger.info(f"Fetched {len(messages)} recent emails")
        return messages
