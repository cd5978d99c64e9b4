"""Unit tests for issue/healthcheck matching — pure function tests, no I/O."""

from datetime import UTC, date, datetime, timedelta

import pytest

from src.healthcheck.models import CandidateIssue, HealthcheckRecord
from src.healthcheck.staleness import (
    compute_overdue,
    derive_match_key,
    latest_record_for,
    whole_days_between,
)

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=UTC)


def _record(key: str, days_ago: int, **metadata: object) -> HealthcheckRecord:
    return HealthcheckRecord(key=key, recorded_on=NOW - timedelta(days=days_ago), metadata=dict(metadata))


def _issue(title: str, number: int = 1, labels: list[str] | None = None) -> CandidateIssue:
    return CandidateIssue(
        id=f"PVTI_{number}",
        number=number,
        title=title,
        url=f"https://github.com/acme-support/super-support/issues/{number}",
        assignees=["alice"],
        labels=labels or [],
    )


class TestDeriveMatchKey:
    @pytest.mark.parametrize(
        "title,expected",
        [
            ("acme - 123", "acme"),
            ("Acme Corp - 123", "Acme Corp"),
            ("acme-123", "acme"),
            ("acme - 123 (renewal due)", "acme"),
            ("acme", "acme"),
            ("  acme - 42  ", "acme"),
            ("multi-word-slug - 99", "multi-word-slug"),
        ],
    )
    def test_strips_number_suffix(self, title: str, expected: str) -> None:
        assert derive_match_key(title) == expected

    def test_hyphen_without_digits_is_kept(self) -> None:
        assert derive_match_key("acme - east") == "acme - east"


class TestWholeDaysBetween:
    def test_floors_partial_days(self) -> None:
        assert whole_days_between(NOW - timedelta(days=2, hours=23), NOW) == 2

    def test_same_instant(self) -> None:
        assert whole_days_between(NOW, NOW) == 0


class TestLatestRecordFor:
    def test_picks_most_recent(self) -> None:
        records = [_record("acme", 90), _record("acme", 10), _record("acme", 45)]
        latest = latest_record_for("acme", records)
        assert latest is not None
        assert latest.recorded_on == NOW - timedelta(days=10)

    def test_first_wins_on_tie(self) -> None:
        records = [_record("acme", 10, engineer="first"), _record("acme", 10, engineer="second")]
        latest = latest_record_for("acme", records)
        assert latest is not None
        assert latest.metadata["engineer"] == "first"

    def test_no_match(self) -> None:
        assert latest_record_for("acme", [_record("globex", 1)]) is None

    def test_case_insensitive(self) -> None:
        assert latest_record_for("Acme", [_record("acme", 1)]) is not None


class TestComputeOverdue:
    def test_no_records_is_overdue(self) -> None:
        result = compute_overdue([], [_issue("Acme - 123")], 60, NOW)
        assert len(result) == 1
        assert result[0].last_record_date is None
        assert result[0].days_since_record is None
        assert result[0].match_key == "Acme"

    def test_boundary_is_strict(self) -> None:
        records = [_record("acme", 61), _record("globex", 60)]
        issues = [_issue("acme - 1", 1), _issue("globex - 2", 2)]
        result = compute_overdue(records, issues, 60, NOW)
        assert [r.number for r in result] == [1]
        assert result[0].days_since_record == 61

    def test_stale_record_scenario(self) -> None:
        result = compute_overdue([_record("beta", 40)], [_issue("Beta - 456")], 30, NOW)
        assert len(result) == 1
        assert result[0].days_since_record is not None
        assert result[0].days_since_record > 30

    def test_fresh_record_scenario(self) -> None:
        assert compute_overdue([_record("gamma", 10)], [_issue("Gamma - 789")], 30, NOW) == []

    def test_recent_record_outweighs_old_ones(self) -> None:
        records = [_record("acme", 400), _record("acme", 5)]
        assert compute_overdue(records, [_issue("acme - 1")], 60, NOW) == []

    def test_preserves_input_order(self) -> None:
        issues = [_issue("zeta - 3", 3), _issue("alpha - 1", 1), _issue("mid - 2", 2)]
        result = compute_overdue([], issues, 60, NOW)
        assert [r.number for r in result] == [3, 1, 2]

    def test_idempotent(self) -> None:
        records = [_record("acme", 70), _record("globex", 3)]
        issues = [_issue("acme - 1", 1), _issue("globex - 2", 2), _issue("initech - 3", 3)]
        first = compute_overdue(records, issues, 60, NOW)
        second = compute_overdue(records, issues, 60, NOW)
        assert first == second

    def test_suppressed_issues_are_kept_and_flagged(self) -> None:
        issues = [_issue("acme - 1", 1, labels=["pause-healthcheck-reminders"]), _issue("globex - 2", 2)]
        result = compute_overdue([], issues, 60, NOW, suppression_label="pause-healthcheck-reminders")
        assert [(r.number, r.is_suppressed) for r in result] == [(1, True), (2, False)]

    def test_yaml_date_record(self) -> None:
        record = HealthcheckRecord(key="acme", recorded_on=date(2025, 3, 1))
        result = compute_overdue([record], [_issue("acme - 1")], 60, NOW)
        assert len(result) == 1
        assert result[0].days_since_record == 92

    def test_naive_now_rejected(self) -> None:
        with pytest.raises(ValueError, match="timezone-aware"):
            compute_overdue([], [_issue("acme - 1")], 60, datetime(2025, 6, 1))
