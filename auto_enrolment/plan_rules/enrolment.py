# auto_enrolment/plan_rules/enrolment.py
"""
Auto-enrolment date resolution.

An employee becomes enrolment-eligible once a fixed waiting period after
employment start has elapsed; enrolment then happens on the next staging
date strictly after the end of that period.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, List, Optional, Tuple

import pandas as pd

from auto_enrolment.config.plan_rules import AutoEnrolmentConfig, StagingConfig
from auto_enrolment.plan_rules.staging import next_staging_date, resolve_staging_config
from auto_enrolment.utils.columns import (
    AUTO_ENROLMENT_DATE,
    DAYS_UNTIL_ENROLMENT,
    EMP_ID,
    EMP_START_DATE,
    READY_TO_ENROL,
    WAITING_PERIOD_END,
)
from auto_enrolment.utils.date_utils import add_months, days_between, to_date

logger = logging.getLogger(__name__)

RESULT_COLUMNS = [
    EMP_ID,
    WAITING_PERIOD_END,
    AUTO_ENROLMENT_DATE,
    DAYS_UNTIL_ENROLMENT,
    READY_TO_ENROL,
]


@dataclass(frozen=True)
class AutoEnrolmentDate:
    waiting_period_end: date
    auto_enrolment_date: date
    days_until_enrolment: int
    ready_to_enrol: bool
    employee_id: Optional[str] = field(default=None)


def resolve_auto_enrolment_date(
    employment_start_date: date,
    config: Optional[StagingConfig],
    as_of: date,
    employee_id: Optional[str] = None,
    cfg: Optional[AutoEnrolmentConfig] = None,
) -> AutoEnrolmentDate:
    """
    Resolve when an employee must be auto-enrolled.

    Args:
        employment_start_date: First day of employment.
        config: Staging configuration (None selects the default schedule).
        as_of: Calculation date; ``days_until_enrolment`` is negative once the
            enrolment date has passed.
        employee_id: Copied onto the result.
        cfg: Waiting-period settings (defaults to 6 months).
    """
    cfg = cfg or AutoEnrolmentConfig()
    waiting_period_end = add_months(employment_start_date, cfg.waiting_period_months)
    staging = next_staging_date(config, waiting_period_end)
    return AutoEnrolmentDate(
        employee_id=employee_id,
        waiting_period_end=waiting_period_end,
        auto_enrolment_date=staging.date,
        days_until_enrolment=days_between(as_of, staging.date),
        ready_to_enrol=waiting_period_end <= as_of,
    )


def resolve_bulk(
    employees: Iterable[Tuple[str, date]],
    config: Optional[StagingConfig],
    as_of: date,
    cfg: Optional[AutoEnrolmentConfig] = None,
) -> List[AutoEnrolmentDate]:
    """Resolve enrolment dates for ``(employee_id, start_date)`` pairs with one shared configuration."""
    staging_cfg = resolve_staging_config(config)
    cfg = cfg or AutoEnrolmentConfig()
    return [
        resolve_auto_enrolment_date(start, staging_cfg, as_of, employee_id=emp_id, cfg=cfg)
        for emp_id, start in employees
    ]


def run(
    snapshot: pd.DataFrame,
    config: Optional[StagingConfig],
    as_of: date,
    cfg: Optional[AutoEnrolmentConfig] = None,
) -> pd.DataFrame:
    """
    Resolve auto-enrolment dates for every employee in the snapshot.
    Rows without a usable employment start date are skipped.
    Returns a DataFrame with RESULT_COLUMNS, in snapshot order.
    """
    if EMP_START_DATE not in snapshot.columns:
        logger.warning(f"Snapshot has no '{EMP_START_DATE}' column; no enrolment dates resolved")
        return pd.DataFrame(columns=RESULT_COLUMNS)

    pairs = []
    for idx, row in snapshot.iterrows():
        emp_id = row.get(EMP_ID, idx)
        start = to_date(row.get(EMP_START_DATE))
        if start is None:
            logger.debug(f"Skipping {emp_id}: missing employment start date")
            continue
        pairs.append((emp_id, start))

    results = resolve_bulk(pairs, config, as_of, cfg)
    logger.info(
        f"Resolved {len(results)} auto-enrolment dates as of {as_of} "
        f"({len(snapshot) - len(results)} skipped)"
    )
    if not results:
        return pd.DataFrame(columns=RESULT_COLUMNS)
    return pd.DataFrame(
        [
            {
                EMP_ID: r.employee_id,
                WAITING_PERIOD_END: r.waiting_period_end,
                AUTO_ENROLMENT_DATE: r.auto_enrolment_date,
                DAYS_UNTIL_ENROLMENT: r.days_until_enrolment,
                READY_TO_ENROL: r.ready_to_enrol,
            }
            for r in results
        ],
        columns=RESULT_COLUMNS,
    )
