"""Reminder comments and suppression-label removal for overdue issues.

``notify`` and ``lift_suppression`` never raise. They return an
``UpdateResult`` and log failures, so one bad issue cannot stop a run.
"""

import logging
from datetime import datetime

from src.healthcheck.models import ReconciledIssue, UpdateResult
from src.healthcheck.suppression import SUPPRESSION_EXPIRY_DAYS
from src.healthcheck.tracker import IssueTracker

logger = logging.getLogger(__name__)

DRY_RUN_PREFIX = "[DRY-RUN]"

# strftime("%B") follows the process locale; comments are always English
_MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)


def format_long_date(value: datetime) -> str:
    """Render a date as ``February 24, 2025``."""
    return f"{_MONTH_NAMES[value.month - 1]} {value.day}, {value.year}"


def compose_notification_comment(issue: ReconciledIssue, skip_label_name: str) -> str:
    """Build the reminder comment for an overdue issue.

    Raises:
        ValueError: If the issue has no title to put in the message.
    """
    title = issue.title.strip()
    if not title:
        msg = f"Cannot compose a reminder for issue #{issue.number}: the issue has no title"
        raise ValueError(msg)

    if issue.last_record_date is None:
        base_message = (
            f"No healthchecks were found for the issue titled '{title}'. "
            "This may reflect a mismatch between the issue title and the healthcheck's enterprise slug."
        )
    else:
        base_message = (
            f"The enterprise {title} is due for a healthcheck because its last check was "
            f"{issue.days_since_record} days ago on {format_long_date(issue.last_record_date)}."
        )

    suppression_hint = (
        f"If you'd like to suppress this message for {SUPPRESSION_EXPIRY_DAYS} days, "
        f"add the label `{skip_label_name}` to the issue {issue.url}"
    )

    message = f"{base_message} {suppression_hint}"
    if issue.assignees:
        mentions = " ".join(f"@{assignee}" for assignee in issue.assignees)
        message = f"Heads-up {mentions}! {message}"
    return message


async def notify(
    tracker: IssueTracker,
    issue: ReconciledIssue,
    skip_label_name: str,
    dry_run: bool = False,
) -> UpdateResult:
    """Post the reminder comment on an issue (or describe it, in dry-run mode)."""
    try:
        comment = compose_notification_comment(issue, skip_label_name)
        if dry_run:
            message = f"{DRY_RUN_PREFIX} Would have commented on issue #{issue.number} '{issue.title}': {comment}"
            logger.info("%s", message)
            return UpdateResult(ok=True, message=message)

        await tracker.post_comment(issue.number, comment)
        message = f"Commented on issue #{issue.number}: {comment}"
        logger.info("%s", message)
        return UpdateResult(ok=True, message=message)
    except Exception as e:
        message = f"Failed to add comment to issue #{issue.number}: {e}"
        logger.exception("%s", message)
        return UpdateResult(ok=False, message=message)


async def lift_suppression(
    tracker: IssueTracker,
    issue: ReconciledIssue,
    label_name: str,
    dry_run: bool = False,
) -> UpdateResult:
    """Remove an expired suppression label from an issue."""
    if dry_run:
        message = f"{DRY_RUN_PREFIX} Would have removed label '{label_name}' from issue #{issue.number}"
        logger.info("%s", message)
        return UpdateResult(ok=True, message=message)

    try:
        await tracker.remove_label(issue.number, label_name)
    except Exception as e:
        message = f"Error removing label '{label_name}' from issue #{issue.number}: {e}"
        logger.exception("%s", message)
        return UpdateResult(ok=False, message=message)

    message = f"Removing label '{label_name}' from issue #{issue.number}"
    logger.info("%s", message)
    return UpdateResult(ok=True, message=message)
