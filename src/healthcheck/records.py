"""Load healthcheck records from Markdown files with YAML frontmatter.

Each healthcheck file carries a frontmatter block such as::

    ---
    enterprise_slug: acme
    date: 2025-02-24
    engineer: octocat
    ---

``enterprise_slug`` becomes the record key and ``date`` its recorded date.
Everything else is kept as opaque metadata.
"""

import logging
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from src.healthcheck.models import HealthcheckRecord
from src.observability.metrics import RECORDS_LOADED_TOTAL

logger = logging.getLogger(__name__)

KEY_FIELD = "enterprise_slug"
DATE_FIELD = "date"

_FRONTMATTER_RE = re.compile(r"^---\r?\n(.*?)\r?\n---", re.DOTALL)


class RecordParseError(ValueError):
    """A healthcheck file has frontmatter that cannot be turned into a record."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")


def discover_markdown_files(directory: Path) -> list[Path]:
    """Recursively find ``.md`` files under a directory, in a stable order."""
    if not directory.is_dir():
        msg = f"Healthcheck directory not found: {directory}"
        raise FileNotFoundError(msg)
    return sorted(p for p in directory.rglob("*.md") if p.is_file())


def _extract_frontmatter(text: str) -> str | None:
    # Trailing whitespace after the closing "---" would otherwise defeat the match
    cleaned = "\n".join(line.rstrip() for line in text.splitlines())
    match = _FRONTMATTER_RE.match(cleaned)
    return match.group(1) if match else None


def parse_healthcheck_file(path: Path) -> HealthcheckRecord | None:
    """Parse one healthcheck file.

    Returns:
        The record, or None if the file has no frontmatter or no enterprise slug.

    Raises:
        RecordParseError: If the frontmatter is malformed or the date is missing/invalid.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise RecordParseError(path, f"not valid UTF-8: {exc}") from exc

    frontmatter_text = _extract_frontmatter(text)
    if frontmatter_text is None:
        return None

    try:
        raw: Any = yaml.safe_load(frontmatter_text)
    except (yaml.YAMLError, ValueError) as exc:
        # PyYAML raises a bare ValueError for impossible timestamps such as 2025-02-30
        raise RecordParseError(path, f"invalid YAML frontmatter: {exc}") from exc

    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise RecordParseError(path, "frontmatter is not a mapping")

    key = raw.get(KEY_FIELD)
    if key is None or (isinstance(key, str) and not key.strip()):
        return None

    metadata = {k: v for k, v in raw.items() if k not in (KEY_FIELD, DATE_FIELD)}
    try:
        return HealthcheckRecord(
            key=str(key),
            recorded_on=raw.get(DATE_FIELD),
            source_path=str(path),
            metadata=metadata,
        )
    except ValidationError as exc:
        errors = "; ".join(f"{'.'.join(str(p) for p in e['loc'])}: {e['msg']}" for e in exc.errors())
        raise RecordParseError(path, errors) from exc


def load_records(directory: str | Path) -> list[HealthcheckRecord]:
    """Load every healthcheck record found under a directory.

    Files without a record are skipped; files with bad frontmatter are
    rejected individually and never abort the load.
    """
    records: list[HealthcheckRecord] = []
    for path in discover_markdown_files(Path(directory)):
        try:
            record = parse_healthcheck_file(path)
        except RecordParseError as exc:
            logger.warning("Rejected healthcheck file %s: %s", exc.path, exc.reason)
            RECORDS_LOADED_TOTAL.labels(status="rejected").inc()
            continue

        if record is None:
            logger.info("Found no healthcheck in %s", path)
            RECORDS_LOADED_TOTAL.labels(status="empty").inc()
            continue

        logger.debug("Parsed healthcheck for '%s' from %s", record.key, path)
        RECORDS_LOADED_TOTAL.labels(status="parsed").inc()
        records.append(record)

    logger.info("Loaded %d healthcheck record(s) from %s", len(records), directory)
    return records
