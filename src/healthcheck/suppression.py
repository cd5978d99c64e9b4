"""Decide whether a suppression label is still pausing reminders for an issue."""

import logging
from collections.abc import Awaitable, Callable
from datetime import datetime

from pydantic import BaseModel

from src.healthcheck.models import ReconciledIssue
from src.healthcheck.staleness import whole_days_between

logger = logging.getLogger(__name__)

# Independent of max_staleness_days
SUPPRESSION_EXPIRY_DAYS = 30

LabelAppliedDateFn = Callable[[int, str], Awaitable[datetime | None]]


class SuppressionDecision(BaseModel):
    """Outcome of checking a suppression label against its age."""

    is_suppressed: bool
    expired: bool
    applied_on: datetime | None = None
    days_suppressed: int | None = None


def is_suppression_expired(applied_on: datetime, now: datetime) -> bool:
    return whole_days_between(applied_on, now) > SUPPRESSION_EXPIRY_DAYS


async def resolve_suppression(
    issue: ReconciledIssue,
    label_name: str,
    get_label_applied_date: LabelAppliedDateFn,
    now: datetime,
) -> SuppressionDecision:
    """Check how long an issue has carried the suppression label.

    An issue whose label history shows no "labeled" event is treated as not
    suppressed and no expiry is attempted. Once the label is older than
    ``SUPPRESSION_EXPIRY_DAYS`` the suppression has expired: the caller must
    remove the label and notify as usual in the same pass.
    """
    applied_on = await get_label_applied_date(issue.number, label_name)
    if applied_on is None:
        logger.info(
            "Issue #%d carries '%s' but no labeled event was found; treating as not suppressed",
            issue.number,
            label_name,
        )
        return SuppressionDecision(is_suppressed=False, expired=False)

    days_suppressed = whole_days_between(applied_on, now)
    if is_suppression_expired(applied_on, now):
        logger.info(
            "Suppression on issue #%d expired (labeled %d days ago on %s)",
            issue.number,
            days_suppressed,
            applied_on.date().isoformat(),
        )
        return SuppressionDecision(
            is_suppressed=False, expired=True, applied_on=applied_on, days_suppressed=days_suppressed
        )

    logger.info("Issue #%d suppressed for %d day(s) so far", issue.number, days_suppressed)
    return SuppressionDecision(
        is_suppressed=True, expired=False, applied_on=applied_on, days_suppressed=days_suppressed
    )
