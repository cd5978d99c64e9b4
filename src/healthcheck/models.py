"""Pydantic models for healthcheck records, candidate issues, and update results."""

from datetime import UTC, date, datetime, time
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def as_utc_datetime(value: date | datetime) -> datetime:
    """Normalize a YAML date or datetime to a timezone-aware UTC datetime.

    Plain dates become midnight UTC; naive datetimes are assumed to be UTC.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)
    return datetime.combine(value, time.min, tzinfo=UTC)


class HealthcheckRecord(BaseModel):
    """A dated healthcheck entry parsed from a Markdown file's frontmatter."""

    model_config = ConfigDict(frozen=True)

    key: str = Field(min_length=1)
    recorded_on: datetime
    source_path: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("key")
    @classmethod
    def _lowercase_key(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("recorded_on", mode="before")
    @classmethod
    def _coerce_recorded_on(cls, value: object) -> datetime:
        # YAML loads bare dates (2025-02-24) as datetime.date
        if isinstance(value, date):
            return as_utc_datetime(value)
        if value is None:
            raise ValueError("date is missing")
        # Integers would otherwise be read as Unix timestamps
        if not isinstance(value, str):
            msg = f"expected an ISO 8601 date, got {type(value).__name__} {value!r}"
            raise ValueError(msg)
        try:
            return as_utc_datetime(datetime.fromisoformat(value.strip()))
        except ValueError as exc:
            msg = f"expected an ISO 8601 date, got {value!r}"
            raise ValueError(msg) from exc

    @field_validator("recorded_on")
    @classmethod
    def _ensure_utc(cls, value: datetime) -> datetime:
        return as_utc_datetime(value)


class CandidateIssue(BaseModel):
    """An open issue on the project board eligible for staleness evaluation."""

    id: str
    number: int
    title: str
    url: str = ""
    assignees: list[str] = Field(default_factory=list)
    labels: list[str] = Field(default_factory=list)
    board_status: str | None = None
    state: str | None = None

    def has_label(self, name: str) -> bool:
        return name in self.labels


class ReconciledIssue(CandidateIssue):
    """A candidate issue annotated with its most recent healthcheck and suppression state."""

    match_key: str
    last_record_date: datetime | None = None
    days_since_record: int | None = None
    is_suppressed: bool = False
    suppressed_since: datetime | None = None


class UpdateResult(BaseModel):
    """Outcome of a side-effecting issue update. Never carries an exception."""

    ok: bool
    message: str
