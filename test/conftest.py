from datetime import datetime

import pytest

from llm.llm_client import LLMClient
from llm.providers.base import ProviderError

NOW = datetime(2026, 3, 10, 14, 0)


class FakeProvider:
    """Replays a script of answers; an Exception entry is raised instead of returned."""

    def __init__(self, script):
        self._script = list(script)
        self.calls = []

    async def generate(self, prompt, *, model, parameters=None):
        self.calls.append((prompt, model))
        if not self._script:
            raise AssertionError("FakeProvider script exhausted")
        step = self._script.pop(0)
        if isinstance(step, BaseException):
            raise step
        return step


class RoutingProvider:
    """Answers task prompts and category prompts separately."""

    def __init__(self, task_response, category_response="Work"):
        self.task_response = task_response
        self.category_response = category_response
        self.prompts = []

    async def generate(self, prompt, *, model, parameters=None):
        self.prompts.append(prompt)
        answer = self.category_response if prompt.startswith("Categorize") else self.task_response
        if isinstance(answer, BaseException):
            raise answer
        return answer


class FakeHandle:
    def __init__(self, delay_s, callback):
        self.delay_s = delay_s
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeTimer:
    def __init__(self):
        self.handles = []

    def arm(self, delay_s, callback):
        handle = FakeHandle(delay_s, callback)
        self.handles.append(handle)
        return handle

    @property
    def pending(self):
        return [h for h in self.handles if not h.cancelled]

    def fire(self, handle):
        assert not handle.cancelled, "cancelled timers never fire"
        handle.cancelled = True
        handle.callback()


class RecordingSink:
    def __init__(self):
        self.notifications = []

    def __call__(self, title, message, category):
        self.notifications.append((title, message, category))


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def fake_provider_factory():
    def _make(*script):
        return FakeProvider(script)
    return _make


@pytest.fixture
def routing_provider_factory():
    def _make(task_response, category_response="Work"):
        return RoutingProvider(task_response, category_response)
    return _make


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def llm_factory(sleeps):
    async def _sleep(delay):
        sleeps.append(delay)

    def _make(provider, **kwargs):
        kwargs.setdefault("retry_delay", 1.0)
        return LLMClient(
            provider=provider,
            primary_model="primary",
            backup_model="backup",
            sleep=_sleep,
            **kwargs,
        )
    return _make


@pytest.fixture
def fake_timer():
    return FakeTimer()


@pytest.fixture
def sink():
    return RecordingSink()


def rate_limited():
    return ProviderError(429, "Too Many Requests")


def server_error():
    return ProviderError(503, "Service Unavailable")
