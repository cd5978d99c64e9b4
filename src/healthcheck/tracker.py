"""The narrow issue-tracker interface the reconciliation core depends on."""

from datetime import datetime
from typing import Protocol

from src.healthcheck.models import CandidateIssue


class IssueTracker(Protocol):
    async def list_candidate_issues(
        self,
        org: str,
        project_number: int,
        issue_status: str,
        issue_state: str,
    ) -> list[CandidateIssue]: ...

    async def get_label_applied_date(self, issue_number: int, label_name: str) -> datetime | None: ...

    async def post_comment(self, issue_number: int, body: str) -> None: ...

    async def remove_label(self, issue_number: int, label_name: str) -> None: ...
