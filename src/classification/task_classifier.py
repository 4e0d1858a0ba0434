import difflib
import logging
import re
from typing import Optional

from llm.llm_client import InferenceError, LLMClient
from planner_ai.models import Category

logger = logging.getLogger(__name__)

CATEGORY_NAMES = [c.value for c in Category]
CATEGORY_PROMPT = (
    "Categorize this task into one of these categories: "
    + ", ".join(CATEGORY_NAMES)
    + ": {title}"
)
_WORD_RE = re.compile(r"[A-Za-z]+")


def normalize_category(raw: Optional[str]) -> Category:
    """Map free-form model output onto the closed category set."""
    text = (raw or "").strip()
    if not text:
        return Category.OTHER

    lookup = {name.lower(): Category(name) for name in CATEGORY_NAMES}
    if text.lower() in lookup:
        return lookup[text.lower()]

    words = [w.lower() for w in _WORD_RE.findall(text)]
    for w in words:
        if w in lookup:
            return lookup[w]

    # typos like "Shoping" / "Educaton"
    for w in words:
        close = difflib.get_close_matches(w, list(lookup), n=1, cutoff=0.8)
        if close:
            return lookup[close[0]]

    return Category.OTHER


class TaskClassifier:

    def __init__(self, llm_client: Optional[LLMClient] = None):
        self.llm = llm_client or LLMClient()

    async def classify(self, title: str) -> Category:
        try:
            raw = await self.llm.infer(CATEGORY_PROMPT.format(title=title))
        except InferenceError as e:
            logger.warning(f"Failed to categorize task, using default category: {e}")
            return Category.OTHER

        category = normalize_category(raw)
        if category is Category.OTHER and raw.strip().lower() != "other":
            logger.info(f"Unrecognized category '{raw.strip()[:40]}', using Other")
        return category
