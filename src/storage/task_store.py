from __future__ import annotations

import json
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional

from pydantic import ValidationError

from planner_ai.models import Task

logger = logging.getLogger(__name__)

TASKS_PATH = os.getenv("TASKS_PATH", "data/tasks.json")


class PersistenceError(Exception):
    """The task file could not be read or written."""


class TaskStore:
    """Whole-collection JSON store: every write replaces the file, last writer wins."""

    def __init__(self, path: str = TASKS_PATH):
        self.path = Path(path)

    def load_tasks(self) -> List[Task]:
        if not self.path.exists():
            return []

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise PersistenceError(f"Error loading tasks from {self.path}: {e}") from e

        if not isinstance(data, list):
            raise PersistenceError(f"Expected a list of tasks in {self.path}")

        tasks = []
        for record in data:
            try:
                tasks.append(Task.model_validate(record))
            except ValidationError as e:
                # one bad record should not hide the rest
                logger.warning(f"Skipping invalid task record {record!r:.80}: {e.error_count()} errors")
        return tasks

    def save_tasks(self, tasks: Iterable[Task]) -> bool:
        records = [t.to_record() for t in tasks]
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_suffix(self.path.suffix + ".tmp")
            tmp.write_text(json.dumps(records, ensure_ascii=False, indent=2), encoding="utf-8")
            tmp.replace(self.path)
        except OSError as e:
            logger.error(f"Error saving tasks to {self.path}: {e}")
            return False
        logger.debug(f"Saved {len(records)} tasks to {self.path}")
        return True

    # --- convenience operations on top of load/save ------------------------

    def _commit(self, tasks: List[Task]) -> None:
        if not self.save_tasks(tasks):
            raise PersistenceError(f"Failed to save tasks to {self.path}")

    def get(self, task_id: str) -> Optional[Task]:
        return next((t for t in self.load_tasks() if t.id == task_id), None)

    def save_multiple(self, new_tasks: Iterable[Task]) -> List[Task]:
        new_tasks = list(new_tasks)
        if not new_tasks:
            return []
        self._commit(self.load_tasks() + new_tasks)
        return new_tasks

    def update(self, task_id: str, **changes) -> Task:
        tasks = self.load_tasks()
        for i, task in enumerate(tasks):
            if task.id == task_id:
                changes.pop("id", None)
                merged = {**task.model_dump(), **changes, "updated_at": datetime.now()}
                tasks[i] = Task.model_validate(merged)
                self._commit(tasks)
                return tasks[i]
        raise KeyError(f"Task with ID {task_id} not found")

    def delete(self, task_id: str) -> bool:
        tasks = self.load_tasks()
        remaining = [t for t in tasks if t.id != task_id]
        if len(remaining) == len(tasks):
            raise KeyError(f"Task with ID {task_id} not found")
        self._commit(remaining)
        return True

    def clear(self) -> bool:
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            logger.error(f"Error clearing tasks: {e}")
            return False
        return True
