"""One reconciliation pass: match issues to healthchecks, then remind or un-suppress.

Every per-issue step is independent; a failure on one issue is logged and
recorded in the summary, and the pass moves on to the next issue.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Sequence
from datetime import UTC, datetime
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field

from src.config import Settings
from src.healthcheck.models import HealthcheckRecord, ReconciledIssue, UpdateResult
from src.healthcheck.notifier import lift_suppression, notify
from src.healthcheck.records import load_records
from src.healthcheck.staleness import compute_overdue
from src.healthcheck.suppression import resolve_suppression
from src.healthcheck.tracker import IssueTracker
from src.observability.metrics import (
    ISSUES_EVALUATED_TOTAL,
    NOTIFICATIONS_TOTAL,
    OVERDUE_ISSUES_TOTAL,
    RUN_DURATION,
    SUPPRESSIONS_LIFTED_TOTAL,
)

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[None]]
Action = Literal["notified", "suppressed", "lifted", "error"]


class IssueOutcome(BaseModel):
    """What happened to one overdue issue during the pass."""

    number: int
    title: str
    action: Action
    ok: bool
    message: str


class ReconciliationSummary(BaseModel):
    """Counts and per-issue outcomes for one run."""

    started_at: datetime
    dry_run: bool
    candidates: int = 0
    records: int = 0
    overdue: int = 0
    notified: int = 0
    suppressed: int = 0
    lifted: int = 0
    failures: int = 0
    outcomes: list[IssueOutcome] = Field(default_factory=list)

    def record(self, issue: ReconciledIssue, action: Action, result: UpdateResult) -> None:
        self.outcomes.append(
            IssueOutcome(number=issue.number, title=issue.title, action=action, ok=result.ok, message=result.message)
        )
        if not result.ok:
            self.failures += 1
        elif action == "notified":
            self.notified += 1
        elif action == "suppressed":
            self.suppressed += 1
        elif action == "lifted":
            self.lifted += 1

    def describe(self) -> str:
        mode = " (dry run)" if self.dry_run else ""
        return (
            f"Reconciled {self.candidates} candidate issue(s) against {self.records} healthcheck(s){mode}: "
            f"{self.overdue} overdue, {self.notified} notified, {self.suppressed} suppressed, "
            f"{self.lifted} suppression(s) lifted, {self.failures} failure(s)"
        )


class MutationPacer:
    """Sleeps between successive mutating calls to stay under secondary rate limits.

    The first mutation of a run goes out immediately. Dry runs never sleep.
    """

    def __init__(self, pause_seconds: float, dry_run: bool, sleep: SleepFn = asyncio.sleep) -> None:
        self.pause_seconds = pause_seconds
        self.dry_run = dry_run
        self._sleep = sleep
        self._mutations = 0

    async def before_mutation(self) -> None:
        if self.dry_run:
            return
        if self._mutations > 0 and self.pause_seconds > 0:
            logger.debug("Pausing %.1fs before next mutation (rate limit pacing)", self.pause_seconds)
            await self._sleep(self.pause_seconds)
        self._mutations += 1


def _metric_status(result: UpdateResult, dry_run: bool) -> str:
    if not result.ok:
        return "error"
    return "dry_run" if dry_run else "success"


async def process_overdue_issues(
    tracker: IssueTracker,
    overdue: Sequence[ReconciledIssue],
    summary: ReconciliationSummary,
    suppression_label: str,
    now: datetime,
    dry_run: bool = False,
    rate_pause_seconds: float = 1.0,
    sleep: SleepFn = asyncio.sleep,
) -> ReconciliationSummary:
    """Notify each overdue issue, honoring and expiring suppression labels."""
    pacer = MutationPacer(rate_pause_seconds, dry_run, sleep)

    for issue in overdue:
        if issue.is_suppressed:
            try:
                decision = await resolve_suppression(issue, suppression_label, tracker.get_label_applied_date, now)
            except Exception as e:
                message = f"Failed to read label history for issue #{issue.number}: {e}"
                logger.exception("%s", message)
                summary.record(issue, "error", UpdateResult(ok=False, message=message))
                continue

            if decision.is_suppressed:
                issue = issue.model_copy(update={"suppressed_since": decision.applied_on})
                message = (
                    f"Issue #{issue.number} is suppressed by '{suppression_label}' "
                    f"(labeled {decision.days_suppressed} day(s) ago); no reminder sent"
                )
                logger.info("%s", message)
                NOTIFICATIONS_TOTAL.labels(status="suppressed").inc()
                summary.record(issue, "suppressed", UpdateResult(ok=True, message=message))
                continue

            if decision.expired:
                await pacer.before_mutation()
                lifted = await lift_suppression(tracker, issue, suppression_label, dry_run)
                SUPPRESSIONS_LIFTED_TOTAL.labels(status=_metric_status(lifted, dry_run)).inc()
                summary.record(issue, "lifted", lifted)

            issue = issue.model_copy(update={"is_suppressed": False, "suppressed_since": None})

        await pacer.before_mutation()
        result = await notify(tracker, issue, suppression_label, dry_run)
        NOTIFICATIONS_TOTAL.labels(status=_metric_status(result, dry_run)).inc()
        summary.record(issue, "notified", result)

    return summary


async def run_reconciliation(
    settings: Settings,
    tracker: IssueTracker,
    records_dir: str | Path,
    now: datetime | None = None,
    load_records_fn: Callable[[str | Path], list[HealthcheckRecord]] = load_records,
    sleep: SleepFn = asyncio.sleep,
) -> ReconciliationSummary:
    """Run one full pass. ``now`` is captured once and used for every comparison.

    Raises:
        Exception: Anything raised while listing issues or loading records aborts the run.
    """
    now = now or datetime.now(UTC)
    start = time.monotonic()
    summary = ReconciliationSummary(started_at=now, dry_run=settings.dry_run)

    try:
        logger.info(
            "Fetching candidate issues for org=%s, project=%s, status=%s, state=%s",
            settings.issues_project_org,
            settings.issues_project_number,
            settings.notifiable_issue_status,
            settings.notifiable_issue_state,
        )
        issues = await tracker.list_candidate_issues(
            settings.issues_project_org,
            settings.issues_project_number,
            settings.notifiable_issue_status,
            settings.notifiable_issue_state,
        )
        summary.candidates = len(issues)
        ISSUES_EVALUATED_TOTAL.inc(len(issues))

        records = load_records_fn(records_dir)
        summary.records = len(records)

        logger.info(
            "Finding issues whose most recent healthcheck is more than %d days old",
            settings.max_staleness_days,
        )
        overdue = compute_overdue(
            records,
            issues,
            settings.max_staleness_days,
            now,
            suppression_label=settings.suppression_label_name,
        )
        summary.overdue = len(overdue)
        OVERDUE_ISSUES_TOTAL.inc(len(overdue))
        logger.info("Found %d issue(s) needing healthchecks", len(overdue))

        await process_overdue_issues(
            tracker,
            overdue,
            summary,
            settings.suppression_label_name,
            now,
            dry_run=settings.dry_run,
            rate_pause_seconds=settings.rate_pause_seconds,
            sleep=sleep,
        )
    finally:
        RUN_DURATION.observe(time.monotonic() - start)

    logger.info("%s", summary.describe())
    return summary
