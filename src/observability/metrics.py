"""Prometheus metric definitions for healthcheck reminder runs.

All metrics are module-level singletons registered with the default
prometheus_client registry.  A run is a short-lived batch job, so the CLI
writes the registry to a node-exporter textfile instead of serving it.
"""

import logging

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Histogram, write_to_textfile

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Record store metrics
# ---------------------------------------------------------------------------

RECORDS_LOADED_TOTAL = Counter(
    "healthcheck_reminder_records_loaded_total",
    "Healthcheck files processed, by outcome (parsed, rejected, empty)",
    labelnames=["status"],
)

# ---------------------------------------------------------------------------
# Reconciliation metrics
# ---------------------------------------------------------------------------

ISSUES_EVALUATED_TOTAL = Counter(
    "healthcheck_reminder_issues_evaluated_total",
    "Candidate issues evaluated for staleness",
)

OVERDUE_ISSUES_TOTAL = Counter(
    "healthcheck_reminder_overdue_issues_total",
    "Issues found overdue for a healthcheck",
)

NOTIFICATIONS_TOTAL = Counter(
    "healthcheck_reminder_notifications_total",
    "Reminder comments, by outcome (success, error, dry_run, suppressed)",
    labelnames=["status"],
)

SUPPRESSIONS_LIFTED_TOTAL = Counter(
    "healthcheck_reminder_suppressions_lifted_total",
    "Expired suppression labels removed, by outcome (success, error, dry_run)",
    labelnames=["status"],
)

RUN_DURATION_BUCKETS = (1.0, 5.0, 15.0, 30.0, 60.0, 120.0, 300.0, 600.0)

RUN_DURATION = Histogram(
    "healthcheck_reminder_run_duration_seconds",
    "Wall-clock duration of a reconciliation run in seconds",
    buckets=RUN_DURATION_BUCKETS,
)


def write_metrics_textfile(path: str, registry: CollectorRegistry = REGISTRY) -> bool:
    """Write the registry to a textfile collector file. Never raises.

    Returns:
        True if the file was written, False otherwise.
    """
    try:
        write_to_textfile(path, registry)
    except OSError:
        logger.exception("Failed to write metrics textfile %s", path)
        return False
    logger.info("Wrote metrics to %s", path)
    return True
