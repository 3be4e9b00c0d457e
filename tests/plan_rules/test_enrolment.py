from datetime import date

import pandas as pd

from auto_enrolment.config.plan_rules import AutoEnrolmentConfig
from auto_enrolment.plan_rules.enrolment import RESULT_COLUMNS, resolve_auto_enrolment_date, resolve_bulk, run


def test_waiting_period_then_next_staging_date(quarterly):
    result = resolve_auto_enrolment_date(date(2025, 3, 15), quarterly, as_of=date(2025, 6, 30))
    assert result.waiting_period_end == date(2025, 9, 15)
    assert result.auto_enrolment_date == date(2025, 10, 1)
    assert result.days_until_enrolment == 93
    assert result.ready_to_enrol is False


def test_ready_when_waiting_period_has_ended(quarterly):
    result = resolve_auto_enrolment_date(date(2024, 12, 30), quarterly, as_of=date(2025, 6, 30))
    assert result.waiting_period_end == date(2025, 6, 30)
    assert result.ready_to_enrol is True
    assert result.auto_enrolment_date == date(2025, 7, 1)


def test_waiting_period_ending_on_staging_date_moves_on(quarterly):
    result = resolve_auto_enrolment_date(date(2024, 10, 1), quarterly, as_of=date(2025, 1, 1))
    assert result.waiting_period_end == date(2025, 4, 1)
    assert result.auto_enrolment_date == date(2025, 7, 1)


def test_month_end_start_date(quarterly):
    result = resolve_auto_enrolment_date(date(2024, 8, 31), quarterly, as_of=date(2025, 6, 30))
    assert result.waiting_period_end == date(2025, 2, 28)
    assert result.auto_enrolment_date == date(2025, 4, 1)
    assert result.days_until_enrolment < 0


def test_custom_waiting_period(quarterly):
    cfg = AutoEnrolmentConfig(waiting_period_months=3)
    result = resolve_auto_enrolment_date(date(2025, 3, 15), quarterly, date(2025, 6, 30), cfg=cfg)
    assert result.waiting_period_end == date(2025, 6, 15)
    assert result.auto_enrolment_date == date(2025, 7, 1)


def test_resolve_bulk_keeps_ids_and_order():
    results = resolve_bulk(
        [("B", date(2025, 3, 15)), ("A", date(2024, 12, 30))],
        None,
        as_of=date(2025, 6, 30),
    )
    assert [r.employee_id for r in results] == ["B", "A"]
    assert [r.auto_enrolment_date for r in results] == [date(2025, 10, 1), date(2025, 7, 1)]


def test_run_on_snapshot_skips_missing_start_dates(quarterly):
    snapshot = pd.DataFrame(
        {
            "employee_id": ["A", "B", "C"],
            "employment_start_date": [pd.Timestamp("2025-03-15"), pd.NaT, "2024-12-30"],
        }
    )
    out = run(snapshot, quarterly, date(2025, 6, 30))
    expected = pd.DataFrame(
        {
            "employee_id": ["A", "C"],
            "waiting_period_end": [date(2025, 9, 15), date(2025, 6, 30)],
            "auto_enrolment_date": [date(2025, 10, 1), date(2025, 7, 1)],
            "days_until_enrolment": [93, 1],
            "ready_to_enrol": [False, True],
        }
    )
    pd.testing.assert_frame_equal(out, expected)
    assert list(out.columns) == RESULT_COLUMNS


def test_run_without_start_column_returns_empty(quarterly):
    out = run(pd.DataFrame({"employee_id": ["A"]}), quarterly, date(2025, 6, 30))
    assert out.empty
    assert list(out.columns) == RESULT_COLUMNS
