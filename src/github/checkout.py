"""Acquire the healthcheck data repository with a shallow git clone."""

import logging
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)

CLONE_TIMEOUT_SECONDS = 300


def clone_repo(token: str, repo: str, target_dir: str | Path, host: str = "github.com") -> Path:
    """Clone ``owner/repo`` into ``target_dir`` using token auth.

    Raises:
        ValueError: If no token is given or the repo is not ``owner/repo``.
        subprocess.CalledProcessError: If git exits non-zero. The token is
            redacted from the recorded command.
    """
    if not token:
        msg = "Cannot clone; no token is set"
        raise ValueError(msg)
    if repo.count("/") != 1:
        msg = f"Repository must be in the form owner/repo, got '{repo}'"
        raise ValueError(msg)

    target = Path(target_dir)
    repo_url = f"https://{token}@{host}/{repo}.git"
    logger.info("Cloning repository %s into %s...", repo, target)
    try:
        subprocess.run(
            ["git", "clone", "--depth", "1", repo_url, str(target)],
            check=True,
            capture_output=True,
            text=True,
            timeout=CLONE_TIMEOUT_SECONDS,
        )
    except subprocess.CalledProcessError as exc:
        stderr = (exc.stderr or "").replace(token, "***")
        redacted = [arg.replace(token, "***") for arg in exc.cmd]
        logger.error("git clone of %s failed: %s", repo, stderr.strip())
        raise subprocess.CalledProcessError(exc.returncode, redacted, exc.output, stderr) from None
    return target
