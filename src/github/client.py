"""GitHub API client for project-board issues, label history, comments, and labels."""

import logging
from datetime import datetime
from typing import Any, TypedDict
from urllib.parse import quote

import httpx

from src.healthcheck.models import CandidateIssue

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30
PROJECT_PAGE_SIZE = 100
TIMELINE_PAGE_SIZE = 100
STATUS_FIELD_NAME = "Status"

PROJECT_ITEMS_QUERY = """
query ($org: String!, $projectNumber: Int!, $after: String) {
  organization(login: $org) {
    projectV2(number: $projectNumber) {
      items(first: 100, after: $after) {
        pageInfo {
          hasNextPage
          endCursor
        }
        nodes {
          id
          content {
            ... on Issue {
              title
              number
              url
              state
              assignees(first: 10) {
                nodes { login }
              }
              labels(first: 20) {
                nodes { name }
              }
            }
          }
          fieldValues(first: 20) {
            nodes {
              ... on ProjectV2ItemFieldSingleSelectValue {
                field {
                  ... on ProjectV2FieldCommon {
                    name
                  }
                }
                name
              }
            }
          }
        }
      }
    }
  }
}
"""


class GitHubGraphQLError(RuntimeError):
    """The GraphQL endpoint answered 200 but reported errors in the payload."""

    def __init__(self, errors: list[dict[str, Any]]) -> None:
        self.errors = errors
        messages = "; ".join(str(e.get("message", e)) for e in errors)
        super().__init__(f"GitHub GraphQL error: {messages}")


# --- Response types ---


class TimelineLabel(TypedDict, total=False):
    name: str


class TimelineEvent(TypedDict, total=False):
    event: str
    created_at: str
    label: TimelineLabel


def graphql_url_for(api_url: str) -> str:
    """GraphQL endpoint for a REST base URL (github.com or GitHub Enterprise Server)."""
    if api_url.endswith("/api/v3"):
        return api_url.removesuffix("/v3") + "/graphql"
    return f"{api_url}/graphql"


def _names(connection: dict[str, Any] | None, field: str) -> list[str]:
    """Flatten a GraphQL ``{nodes: [{field: ...}]}`` connection to plain strings."""
    if not connection:
        return []
    return [str(node[field]) for node in connection.get("nodes") or [] if node and node.get(field)]


def _board_status(item: dict[str, Any]) -> str | None:
    for value in (item.get("fieldValues") or {}).get("nodes") or []:
        if value and (value.get("field") or {}).get("name") == STATUS_FIELD_NAME:
            return value.get("name")
    return None


def parse_project_items(
    items: list[dict[str, Any]],
    issue_status: str,
    issue_state: str,
) -> list[CandidateIssue]:
    """Keep assigned issues in the wanted state whose board Status matches.

    Pull requests and draft items come back with an empty ``content`` (the query
    only selects fields on Issue) and are dropped.
    """
    issues: list[CandidateIssue] = []
    for item in items:
        content = item.get("content") or {}
        if "number" not in content or content.get("state") != issue_state:
            continue
        assignees = _names(content.get("assignees"), "login")
        if not assignees:
            continue
        status = _board_status(item)
        if status != issue_status:
            continue
        issues.append(
            CandidateIssue(
                id=str(item.get("id", "")),
                number=int(content["number"]),
                title=str(content.get("title", "")).strip(),
                url=str(content.get("url", "")),
                state=content.get("state"),
                assignees=assignees,
                labels=_names(content.get("labels"), "name"),
                board_status=status,
            )
        )
    return issues


def latest_label_event(events: list[TimelineEvent], label_name: str) -> datetime | None:
    """Most recent time ``label_name`` was applied, according to timeline events."""
    latest: datetime | None = None
    for event in events:
        if event.get("event") != "labeled" or event.get("label", {}).get("name") != label_name:
            continue
        created_at = event.get("created_at")
        if not created_at:
            continue
        applied = datetime.fromisoformat(created_at.replace("Z", "+00:00"))
        if latest is None or applied >= latest:
            latest = applied
    return latest


class GitHubClient:
    """Thin async wrapper over the GitHub GraphQL and REST APIs.

    ``token`` authorizes REST calls against ``owner/repo``; ``graphql_token``
    (defaulting to ``token``) authorizes the project board query, which may
    live under a different grant.
    """

    def __init__(
        self,
        token: str,
        owner: str,
        repo: str,
        api_url: str = "https://api.github.com",
        graphql_token: str | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self.owner = owner
        self.repo = repo
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self._token = token
        self._graphql_token = graphql_token or token

    # --- HTTP helpers ---

    def _headers(self, token: str) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }

    def _issue_path(self, issue_number: int) -> str:
        return f"{self.api_url}/repos/{self.owner}/{self.repo}/issues/{issue_number}"

    async def _graphql(self, query: str, variables: dict[str, Any]) -> dict[str, Any]:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                graphql_url_for(self.api_url),
                headers=self._headers(self._graphql_token),
                json={"query": query, "variables": variables},
            )
            _ = response.raise_for_status()
            body: dict[str, Any] = response.json()  # pyright: ignore[reportAny]
        if body.get("errors"):
            raise GitHubGraphQLError(body["errors"])
        return body.get("data") or {}

    # --- Queries ---

    async def list_candidate_issues(
        self,
        org: str,
        project_number: int,
        issue_status: str = "Active",
        issue_state: str = "OPEN",
    ) -> list[CandidateIssue]:
        """Fetch every issue on a Projects (v2) board that is eligible for reminders."""
        if not org:
            msg = "Organization (org) is required"
            raise ValueError(msg)

        issues: list[CandidateIssue] = []
        after: str | None = None
        page = 0
        while True:
            page += 1
            data = await self._graphql(
                PROJECT_ITEMS_QUERY,
                {"org": org, "projectNumber": int(project_number), "after": after},
            )
            items_conn = ((data.get("organization") or {}).get("projectV2") or {}).get("items") or {}
            nodes: list[dict[str, Any]] = [n for n in items_conn.get("nodes") or [] if n]
            issues.extend(parse_project_items(nodes, issue_status, issue_state))
            logger.debug("Project %s/%s page %d: %d item(s)", org, project_number, page, len(nodes))

            page_info = items_conn.get("pageInfo") or {}
            if not page_info.get("hasNextPage"):
                break
            after = page_info.get("endCursor")

        logger.info(
            "Fetched %d candidate issue(s) from %s project %s (status=%s, state=%s)",
            len(issues),
            org,
            project_number,
            issue_status,
            issue_state,
        )
        return issues

    async def get_label_applied_date(self, issue_number: int, label_name: str) -> datetime | None:
        """Scan an issue's timeline for the most recent time ``label_name`` was added."""
        events: list[TimelineEvent] = []
        page = 1
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            while True:
                response = await client.get(
                    f"{self._issue_path(issue_number)}/timeline",
                    headers=self._headers(self._token),
                    params={"per_page": str(TIMELINE_PAGE_SIZE), "page": str(page)},
                )
                _ = response.raise_for_status()
                batch: list[TimelineEvent] = response.json()  # pyright: ignore[reportAny]
                events.extend(batch)
                if len(batch) < TIMELINE_PAGE_SIZE:
                    break
                page += 1
        return latest_label_event(events, label_name)

    # --- Mutations ---

    async def post_comment(self, issue_number: int, body: str) -> None:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                f"{self._issue_path(issue_number)}/comments",
                headers=self._headers(self._token),
                json={"body": body},
            )
            _ = response.raise_for_status()

    async def remove_label(self, issue_number: int, label_name: str) -> None:
        """Remove a label from an issue. A label that is already gone is not an error."""
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.delete(
                f"{self._issue_path(issue_number)}/labels/{quote(label_name, safe='')}",
                headers=self._headers(self._token),
            )
        if response.status_code == httpx.codes.NOT_FOUND:
            logger.info("Label '%s' already absent from issue #%d", label_name, issue_number)
            return
        _ = response.raise_for_status()
