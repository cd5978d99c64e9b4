"""Match candidate issues to healthcheck records and find the overdue ones."""

import logging
import re
from collections.abc import Sequence
from datetime import datetime, timedelta

from src.healthcheck.models import CandidateIssue, HealthcheckRecord, ReconciledIssue

logger = logging.getLogger(__name__)

ONE_DAY = timedelta(days=1)

# "Acme Corp - 1234" and "acme - 1234 (renewal)" both key on the part before " - <digits>"
_TITLE_SUFFIX_RE = re.compile(r"\s*-\s*\d+.*$", re.DOTALL)


def derive_match_key(title: str) -> str:
    """Strip the trailing ``- <number>`` marker (and anything after it) from an issue title."""
    return _TITLE_SUFFIX_RE.sub("", title.strip(), count=1)


def normalize_key(key: str) -> str:
    return key.strip().lower()


def whole_days_between(earlier: datetime, later: datetime) -> int:
    """Floor of the elapsed time in days. Negative if ``earlier`` is in the future."""
    return (later - earlier) // ONE_DAY


def _require_aware(now: datetime) -> None:
    if now.tzinfo is None or now.utcoffset() is None:
        msg = "now must be a timezone-aware datetime"
        raise ValueError(msg)


def latest_record_for(key: str, records: Sequence[HealthcheckRecord]) -> HealthcheckRecord | None:
    """Most recent record whose key matches; the first one wins on identical dates."""
    wanted = normalize_key(key)
    latest: HealthcheckRecord | None = None
    for record in records:
        if not record.key or normalize_key(record.key) != wanted:
            continue
        if latest is None or record.recorded_on > latest.recorded_on:
            latest = record
    return latest


def reconcile_issue(
    issue: CandidateIssue,
    records: Sequence[HealthcheckRecord],
    now: datetime,
    suppression_label: str | None = None,
) -> ReconciledIssue:
    """Annotate one issue with its most recent healthcheck, without filtering."""
    _require_aware(now)
    match_key = derive_match_key(issue.title)
    latest = latest_record_for(match_key, records)

    last_record_date = latest.recorded_on if latest is not None else None
    days_since_record = whole_days_between(last_record_date, now) if last_record_date is not None else None

    return ReconciledIssue(
        **issue.model_dump(),
        match_key=match_key,
        last_record_date=last_record_date,
        days_since_record=days_since_record,
        is_suppressed=bool(suppression_label) and issue.has_label(suppression_label),
    )


def is_overdue(issue: ReconciledIssue, max_staleness_days: int) -> bool:
    if issue.last_record_date is None or issue.days_since_record is None:
        return True
    return issue.days_since_record > max_staleness_days


def compute_overdue(
    records: Sequence[HealthcheckRecord],
    issues: Sequence[CandidateIssue],
    max_staleness_days: int,
    now: datetime,
    suppression_label: str | None = None,
) -> list[ReconciledIssue]:
    """Find issues whose most recent healthcheck is missing or older than the threshold.

    Args:
        records: All loaded healthcheck records.
        issues: Candidate issues, in the order results should be returned.
        max_staleness_days: An issue is overdue when its last check is strictly older than this.
        now: The run's single reference time (timezone-aware).
        suppression_label: If given, issues carrying this label are flagged ``is_suppressed``.
            They stay in the result; deciding whether to notify is the caller's job.

    Returns:
        Overdue issues in input order.
    """
    _require_aware(now)
    overdue: list[ReconciledIssue] = []
    for issue in issues:
        reconciled = reconcile_issue(issue, records, now, suppression_label)
        if not is_overdue(reconciled, max_staleness_days):
            logger.debug(
                "Issue #%d '%s' is current (last check %s days ago)",
                issue.number,
                reconciled.match_key,
                reconciled.days_since_record,
            )
            continue
        if reconciled.last_record_date is None:
            logger.info("Issue #%d '%s' has no matching healthcheck", issue.number, reconciled.match_key)
        overdue.append(reconciled)
    return overdue
