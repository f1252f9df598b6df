"""Prometheus metric definitions for EventHub.

Single source of truth for all custom metrics. Import from here in API and Celery code.
"""

from prometheus_client import Counter

# --- Celery task metrics ---

celery_task_total = Counter(
    "eventhub_celery_task_total",
    "Total Celery tasks executed",
    ["task_name", "status"],
)

# --- Business metrics ---

proposals_submitted_total = Counter(
    "eventhub_proposals_submitted_total",
    "Total proposals submitted by vendors",
)

proposal_decisions_total = Counter(
    "eventhub_proposal_decisions_total",
    "Total organizer decisions on proposals",
    ["decision"],
)

assignment_conflicts_total = Counter(
    "eventhub_assignment_conflicts_total",
    "Approvals refused because the requirement was no longer open",
)

notifications_total = Counter(
    "eventhub_notifications_total",
    "Vendor notifications by outcome",
    ["status"],
)
