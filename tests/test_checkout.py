"""Tests for cloning the healthcheck data repository."""

import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from src.github.checkout import clone_repo


class TestCloneRepo:
    def test_requires_token(self) -> None:
        with pytest.raises(ValueError, match="no token"):
            clone_repo("", "acme-support/healthcheck-data", "/tmp/target")

    def test_requires_owner_and_repo(self) -> None:
        with pytest.raises(ValueError, match="owner/repo"):
            clone_repo("mytoken", "healthcheck-data", "/tmp/target")

    def test_runs_git_clone(self) -> None:
        with patch("src.github.checkout.subprocess.run", return_value=MagicMock(returncode=0)) as run:
            target = clone_repo("mytoken", "acme-support/healthcheck-data", "/tmp/target")

        assert target == Path("/tmp/target")
        cmd = run.call_args.args[0]
        assert cmd == [
            "git",
            "clone",
            "--depth",
            "1",
            "https://mytoken@github.com/acme-support/healthcheck-data.git",
            "/tmp/target",
        ]
        assert run.call_args.kwargs["check"] is True

    def test_failure_redacts_token(self) -> None:
        error = subprocess.CalledProcessError(
            128,
            ["git", "clone", "https://mytoken@github.com/acme-support/x.git", "/tmp/target"],
            stderr="fatal: could not read from https://mytoken@github.com/acme-support/x.git",
        )
        with (
            patch("src.github.checkout.subprocess.run", side_effect=error),
            pytest.raises(subprocess.CalledProcessError) as exc_info,
        ):
            clone_repo("mytoken", "acme-support/x", "/tmp/target")

        assert "mytoken" not in str(exc_info.value)
        assert "mytoken" not in (exc_info.value.stderr or "")
        assert exc_info.value.returncode == 128
