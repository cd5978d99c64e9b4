"""Shared pytest configuration and fixtures."""

from collections.abc import Callable, Generator
from typing import Any
from unittest.mock import patch

import pytest

from src.config import Settings, get_settings


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--run-e2e",
        action="store_true",
        default=False,
        help="Run e2e tests that hit real services (requires .env with valid credentials)",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    if config.getoption("--run-e2e"):
        return
    skip_e2e = pytest.mark.skip(reason="Need --run-e2e flag to run")
    for item in items:
        if "e2e" in item.keywords:
            item.add_marker(skip_e2e)


@pytest.fixture(autouse=True)
def _no_dotenv(request: pytest.FixtureRequest) -> Generator[None]:
    """Block .env loading so tests never pick up a developer's real tokens.

    Sets Settings.model_config['env_file'] = None before each test (except e2e).
    """
    if "e2e" in request.keywords:
        yield
        return

    get_settings.cache_clear()
    original = Settings.model_config.get("env_file")
    Settings.model_config["env_file"] = None

    try:
        yield
    finally:
        Settings.model_config["env_file"] = original
        get_settings.cache_clear()


SETTINGS_KWARGS: dict[str, Any] = {
    "github_token": "ghp_test_fake",
    "hc_data_token": "ghp_data_fake",
    "hc_data_repo": "acme-support/healthcheck-data",
    "dir_path": "premium/health-checks",
    "checkout_dir": "./hc-data-checkout",
    "issues_project_org": "acme-support",
    "issues_project_number": 7,
    "issues_project_repo": "super-support",
    "notifiable_issue_status": "Active",
    "notifiable_issue_state": "OPEN",
    "max_staleness_days": 60,
    "suppression_label_name": "pause-healthcheck-reminders",
    "dry_run": False,
    "rate_pause_seconds": 1.0,
    "github_api_url": "https://api.github.test",
    "metrics_textfile": "",
}


def make_settings(**overrides: Any) -> Settings:
    """Build a real Settings object from test values, bypassing the environment."""
    return Settings(**{**SETTINGS_KWARGS, **overrides})


@pytest.fixture
def mock_settings() -> Generator[Settings]:
    """Provide fake settings so tests don't need a .env file.

    Patches get_settings at every import site so cached references are overridden.
    """
    fake_settings = make_settings()
    with (
        patch("src.config.get_settings", return_value=fake_settings),
        patch("src.cli.get_settings", return_value=fake_settings),
    ):
        yield fake_settings


@pytest.fixture
def settings_factory() -> Callable[..., Settings]:
    """Return a builder for Settings with per-test overrides."""
    return make_settings
