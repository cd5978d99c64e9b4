from functools import lru_cache
from typing import ClassVar

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables / .env file."""

    # Token used for REST mutations (comments, labels) on the issues repo
    github_token: str
    # Token used to clone the healthcheck data repo and read the project board
    hc_data_token: str
    hc_data_repo: str  # "owner/repo"

    # Sub-directory inside the checkout to scan for healthcheck files
    dir_path: str = ""
    checkout_dir: str = "./hc-data-checkout"

    # GitHub Projects (v2) board holding the candidate issues
    issues_project_org: str
    issues_project_number: int
    issues_project_repo: str  # repo name only; owner is issues_project_org
    notifiable_issue_status: str = "Active"
    notifiable_issue_state: str = "OPEN"

    max_staleness_days: int = Field(default=60, ge=0)
    suppression_label_name: str = "pause-healthcheck-reminders"
    dry_run: bool = False
    rate_pause_seconds: float = Field(default=1.0, ge=0)

    # GitHub Enterprise Server installs point this at https://<host>/api/v3
    github_api_url: str = "https://api.github.com"

    # Prometheus textfile collector output (optional — empty = not written)
    metrics_textfile: str = ""

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @field_validator("issues_project_repo")
    @classmethod
    def _repo_name_only(cls, value: str) -> str:
        if "/" in value:
            msg = "ISSUES_PROJECT_REPO must be a repository name without the owner"
            raise ValueError(msg)
        return value

    @field_validator("github_api_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Lazily load and cache settings. Fails at first call, not at import time."""
    return Settings()  # type: ignore[call-arg]  # pyright: ignore[reportCallIssue] — fields loaded from env
