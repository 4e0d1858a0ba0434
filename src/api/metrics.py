from prometheus_client import Counter, Gauge, REGISTRY


# we check if they are already registered to avoid errors during hot reloads or test runs
def get_or_create_metric(name, documentation, metric_type, **kwargs):
    try:
        # Try to create it
        return metric_type(name, documentation, **kwargs)
    except ValueError:
        # If it already exists, retrieve it from the registry.
        # Counters are registered under their "_total"-less name.
        collectors = REGISTRY._names_to_collectors
        return collectors.get(name) or collectors[name.removesuffix("_total")]


TASKS_EXTRACTED_TOTAL = get_or_create_metric(
    "planner_tasks_extracted_total",
    "Total tasks extracted from emails and text",
    Counter,
    labelnames=["source"],
)

EXTRACTION_ERRORS_TOTAL = get_or_create_metric(
    "planner_extraction_errors_total",
    "Batch items skipped because extraction raised",
    Counter,
)

INFERENCE_RETRIES_TOTAL = get_or_create_metric(
    "planner_inference_retries_total",
    "Delayed inference retries",
    Counter,
    labelnames=["model"],
)

INFERENCE_FAILURES_TOTAL = get_or_create_metric(
    "planner_inference_failures_total",
    "Inference calls that exhausted both models",
    Counter,
)

REMINDERS_SCHEDULED_TOTAL = get_or_create_metric(
    "planner_reminders_scheduled_total", "Reminder timers armed", Counter
)

REMINDERS_FIRED_TOTAL = get_or_create_metric(
    "planner_reminders_fired_total", "Reminder timers fired", Counter
)

ACTIVE_REMINDERS = get_or_create_metric(
    "planner_active_reminders", "Currently armed reminder timers", Gauge
)
