import asyncio

from classification.task_classifier import TaskClassifier, normalize_category
from conftest import server_error
from planner_ai.models import Category


def test_normalize_category():
    assert normalize_category("Health") is Category.HEALTH
    assert normalize_category("  finance \n") is Category.FINANCE
    assert normalize_category("Category: Shopping.") is Category.SHOPPING
    assert normalize_category("Educaton") is Category.EDUCATION
    assert normalize_category("Gardening") is Category.OTHER
    assert normalize_category("") is Category.OTHER
    assert normalize_category(None) is Category.OTHER


def test_classify_uses_category_prompt(routing_provider_factory, llm_factory):
    provider = routing_provider_factory("unused", category_response="Personal")
    classifier = TaskClassifier(llm_client=llm_factory(provider))

    assert asyncio.run(classifier.classify("Call mom")) is Category.PERSONAL
    assert provider.prompts[0].startswith("Categorize this task into one of these categories")
    assert provider.prompts[0].endswith(": Call mom")


def test_failed_inference_defaults_to_other(fake_provider_factory, llm_factory):
    provider = fake_provider_factory(server_error(), server_error())
    classifier = TaskClassifier(llm_client=llm_factory(provider))

    assert asyncio.run(classifier.classify("Anything")) is Category.OTHER
