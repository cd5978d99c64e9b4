"""Command-line entry point for a single healthcheck reminder run.

Usage:
    uv run python -m src.cli                 # clone the data repo, then reconcile
    uv run python -m src.cli --dry-run       # report intended changes only
    uv run python -m src.cli --records-dir ./premium/health-checks  # use a local checkout

All other configuration comes from environment variables / .env (see src/config.py).
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from src.config import Settings, get_settings
from src.github.checkout import clone_repo
from src.github.client import GitHubClient
from src.observability.metrics import write_metrics_textfile
from src.reconcile import ReconciliationSummary, run_reconciliation

logger = logging.getLogger(__name__)


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Remind assignees about overdue enterprise healthchecks")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        default=None,
        help="Log intended comments and label changes without making them (overrides DRY_RUN)",
    )
    parser.add_argument(
        "--records-dir",
        type=Path,
        default=None,
        help="Read healthcheck files from this directory instead of cloning HC_DATA_REPO",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def _records_dir(settings: Settings, override: Path | None) -> Path:
    if override is not None:
        return override
    checkout = clone_repo(settings.hc_data_token, settings.hc_data_repo, settings.checkout_dir)
    return checkout / settings.dir_path if settings.dir_path else checkout


async def _run(settings: Settings, records_override: Path | None) -> ReconciliationSummary:
    tracker = GitHubClient(
        token=settings.github_token,
        owner=settings.issues_project_org,
        repo=settings.issues_project_repo,
        api_url=settings.github_api_url,
        graphql_token=settings.hc_data_token,
    )
    records_dir = _records_dir(settings, records_override)
    return await run_reconciliation(settings, tracker, records_dir)


def main(argv: list[str] | None = None) -> None:
    """Run one reconciliation pass and exit non-zero on any unhandled error."""
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
    )

    try:
        settings = get_settings()
        if args.dry_run is not None:
            settings = settings.model_copy(update={"dry_run": args.dry_run})
        try:
            summary = asyncio.run(_run(settings, args.records_dir))
        finally:
            if settings.metrics_textfile:
                _ = write_metrics_textfile(settings.metrics_textfile)
    except Exception as e:
        logger.exception("Reconciliation run aborted")
        print(f"Action failed with error: {e}", file=sys.stderr)
        sys.exit(1)

    print(summary.describe())


if __name__ == "__main__":
    main()
