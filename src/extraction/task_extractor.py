import logging
from datetime import datetime
from typing import Callable, Optional

from classification.task_classifier import TaskClassifier
from extraction.field_parser import NoTaskFound, parse_task_response
from extraction.heuristic import extract_heuristic
from extraction.task_builder import build_task
from llm.llm_client import InferenceError, LLMClient
from planner_ai.models import SourceItem, Task, TaskSource

logger = logging.getLogger(__name__)

TASK_PROMPT = """Analyze this text and extract:
1. The main task or to-do item
2. Priority level (CRITICAL/HIGH/MEDIUM/LOW) based on urgency words and context
3. Time constraints (specific start and end times)
4. Hard deadline if mentioned

If there's no task, respond with 'No task found'.

Text: {text}"""


class TaskExtractor:
    """Turns one SourceItem into zero or one Task.

    Inference first; the heuristic extractor takes over when the model is unreachable.
    """

    def __init__(
        self,
        llm_client: Optional[LLMClient] = None,
        classifier: Optional[TaskClassifier] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.llm = llm_client or LLMClient()
        self.classifier = classifier or TaskClassifier(llm_client=self.llm)
        self.clock = clock

    async def extract(self, item: SourceItem) -> list[Task]:
        source = TaskSource.EMAIL if item.is_email else TaskSource.TEXT_INPUT
        now = self.clock()

        try:
            response = await self.llm.infer(TASK_PROMPT.format(text=item.content))
        except InferenceError as e:
            logger.error(f"API call failed, using fallback extraction: {e}")
            fallback = TaskSource.EMAIL_FALLBACK if item.is_email else TaskSource.TEXT_INPUT_FALLBACK
            task = extract_heuristic(item.content, now=now, source=fallback)
            if item.is_email:
                task = task.model_copy(update={"email_id": item.email_id})
            return [task]

        fields = parse_task_response(response, now=now)
        if isinstance(fields, NoTaskFound):
            logger.info("No task found in the text")
            return []

        # category only after the task call has completed
        category = await self.classifier.classify(fields.title)

        task = build_task(
            fields,
            content=item.content,
            category=category,
            source=source,
            email_id=item.email_id,
            now=now,
        )
        return [task]
