# auto_enrolment/plan_rules/earnings.py
"""
Earnings assessment for employees whose pay varies between periods.

``project_annual_earnings`` turns a monthly earnings history into an annual
figure with a confidence level: outliers are dropped, a trend or seasonal
pattern is detected and the projection method chosen accordingly. The
projected figure can be passed to ``eligibility.evaluate`` as ``annual_pay``.
"""

import logging
from dataclasses import dataclass, field
from typing import Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from auto_enrolment.config.plan_rules import EarningsBand, VariableEarningsConfig
from auto_enrolment.plan_rules.eligibility import annualise_pay
from auto_enrolment.utils.columns import (
    EARNINGS_CONFIDENCE,
    EARNINGS_MONTH,
    EARNINGS_TREND,
    EMP_GROSS_PAY,
    EMP_ID,
    MONTHS_OF_DATA,
    PROJECTED_ANNUAL_PAY,
    PROJECTION_METHOD,
)
from auto_enrolment.utils.decimal_helpers import WHOLE_UNITS, to_money
from auto_enrolment.utils.status_enums import EarningsConfidence, EarningsTrend, ProjectionMethod

logger = logging.getLogger(__name__)

TREND_MULTIPLIERS = {
    EarningsTrend.INCREASING: 1.05,
    EarningsTrend.DECREASING: 0.95,
    EarningsTrend.STABLE: 1.0,
}


@dataclass(frozen=True)
class EarningsProjection:
    projected_annual: float
    confidence: EarningsConfidence
    months_of_data: int
    method: ProjectionMethod
    variance: float = 0.0
    min_monthly: float = 0.0
    max_monthly: float = 0.0
    avg_monthly: float = 0.0
    trend: EarningsTrend = EarningsTrend.STABLE
    seasonality_detected: bool = False
    warnings: Tuple[str, ...] = field(default_factory=tuple)


def calculate_average_earnings(pay_periods: Sequence[float], pay_frequency: Optional[str]) -> float:
    """
    Annualised pay from the average of several pay periods.

    Raises:
        ValueError: If no pay periods are given.
    """
    if len(pay_periods) == 0:
        raise ValueError("Must provide at least one pay period")
    return annualise_pay(float(np.mean(pay_periods)), pay_frequency)


def meets_threshold_over_six_months(
    gross_pay: float, pay_frequency: Optional[str], earnings: Optional[EarningsBand] = None
) -> bool:
    """True when half a year of pay at this rate reaches half the lower threshold."""
    earnings = earnings or EarningsBand()
    six_month_pay = annualise_pay(gross_pay, pay_frequency) / 2
    return six_month_pay >= earnings.lower_threshold / 2


def confidence_level(months: int, cfg: Optional[VariableEarningsConfig] = None) -> EarningsConfidence:
    cfg = cfg or VariableEarningsConfig()
    if months < cfg.minimum_months:
        return EarningsConfidence.INSUFFICIENT
    if months >= cfg.high_confidence_months:
        return EarningsConfidence.HIGH
    if months >= cfg.medium_confidence_months:
        return EarningsConfidence.MEDIUM
    return EarningsConfidence.LOW


def remove_outliers(history: pd.Series, z_score: float) -> pd.Series:
    """Drop months more than ``z_score`` population standard deviations from the mean."""
    if len(history) < 4:
        return history
    std = history.std(ddof=0)
    if std == 0:
        return history
    z = (history - history.mean()).abs() / std
    return history[z <= z_score]


def detect_trend(values: np.ndarray, threshold: float = 0.1) -> EarningsTrend:
    """Compare the mean of the first third of the history with the last third."""
    if len(values) < 3:
        return EarningsTrend.STABLE
    third = len(values) // 3
    first = values[:third].mean()
    last = values[-third:].mean()
    if first <= 0:
        return EarningsTrend.STABLE
    change = (last - first) / first
    if change > threshold:
        return EarningsTrend.INCREASING
    if change < -threshold:
        return EarningsTrend.DECREASING
    return EarningsTrend.STABLE


def _whole(amount: float) -> float:
    return float(to_money(amount, WHOLE_UNITS))


def project_annual_earnings(
    history: pd.Series,
    cfg: Optional[VariableEarningsConfig] = None,
    annual_salary: Optional[float] = None,
) -> EarningsProjection:
    """
    Project annual pay from monthly gross earnings.

    Args:
        history: Gross pay per month, indexed by a sortable month label
            (e.g. ``"2025-01"``). Missing months are ignored.
        cfg: Thresholds for confidence, seasonality and outliers.
        annual_salary: Employer-declared salary; when positive it is used
            as-is with high confidence.

    Twelve or more months give the actual total of the latest twelve;
    seasonal pay gives twelve times the average; otherwise twelve times the
    average adjusted by the detected trend. Projections are whole units.
    """
    cfg = cfg or VariableEarningsConfig()
    history = history.dropna().astype(float).sort_index()

    if annual_salary is not None and annual_salary > 0:
        avg = annual_salary / 12
        return EarningsProjection(
            projected_annual=float(annual_salary),
            confidence=EarningsConfidence.HIGH,
            months_of_data=len(history),
            method=ProjectionMethod.ACTUAL,
            min_monthly=avg,
            max_monthly=avg,
            avg_monthly=avg,
            warnings=("Using employer-provided annual salary",),
        )

    if len(history) < cfg.minimum_months:
        return EarningsProjection(
            projected_annual=0.0,
            confidence=EarningsConfidence.INSUFFICIENT,
            months_of_data=len(history),
            method=ProjectionMethod.EXTRAPOLATED,
            avg_monthly=float(history.mean()) if len(history) else 0.0,
            warnings=(
                f"Insufficient data: need at least {cfg.minimum_months} months, have {len(history)}",
            ),
        )

    warnings = []
    cleaned = remove_outliers(history, cfg.outlier_z_score)
    if len(cleaned) < len(history):
        warnings.append(f"Removed {len(history) - len(cleaned)} outlier data points")

    values = cleaned.to_numpy()
    avg = float(values.mean())
    std = float(values.std())
    variance = std / avg if avg > 0 else 0.0
    seasonal = variance > cfg.seasonality_threshold
    if seasonal:
        warnings.append(f"High variance detected ({variance * 100:.1f}%) - possible seasonal pattern")

    trend = detect_trend(values, cfg.trend_threshold)
    months = len(values)
    confidence = confidence_level(months, cfg)
    if confidence is EarningsConfidence.MEDIUM:
        warnings.append(
            f"Only {months} months of data available - projection may not reflect annual patterns"
        )
    elif confidence is EarningsConfidence.LOW:
        warnings.append(f"Limited data ({months} months) - projection has low confidence")

    if months >= 12:
        projected, method = _whole(values[-12:].sum()), ProjectionMethod.ACTUAL
    elif seasonal:
        projected, method = _whole(avg * 12), ProjectionMethod.AVERAGE_BASED
    else:
        projected, method = _whole(avg * 12 * TREND_MULTIPLIERS[trend]), ProjectionMethod.EXTRAPOLATED

    return EarningsProjection(
        projected_annual=projected,
        confidence=confidence,
        months_of_data=months,
        method=method,
        variance=variance,
        min_monthly=float(values.min()),
        max_monthly=float(values.max()),
        avg_monthly=avg,
        trend=trend,
        seasonality_detected=seasonal,
        warnings=tuple(warnings),
    )


def run(
    history: pd.DataFrame,
    cfg: Optional[VariableEarningsConfig] = None,
    annual_salaries: Optional[Mapping[str, float]] = None,
) -> pd.DataFrame:
    """
    Project annual earnings for every employee in a long-format history.

    ``history`` has one row per employee and month (``employee_id``,
    ``month``, ``gross_pay``). Returns one row per employee in order of
    first appearance.
    """
    annual_salaries = annual_salaries or {}
    columns = [EMP_ID, PROJECTED_ANNUAL_PAY, EARNINGS_CONFIDENCE, PROJECTION_METHOD, EARNINGS_TREND, MONTHS_OF_DATA]
    rows = []
    for employee_id, group in history.groupby(EMP_ID, sort=False):
        series = pd.to_numeric(group.set_index(EARNINGS_MONTH)[EMP_GROSS_PAY], errors="coerce")
        projection = project_annual_earnings(series, cfg, annual_salaries.get(employee_id))
        rows.append(
            {
                EMP_ID: employee_id,
                PROJECTED_ANNUAL_PAY: projection.projected_annual,
                EARNINGS_CONFIDENCE: projection.confidence.value,
                PROJECTION_METHOD: projection.method.value,
                EARNINGS_TREND: projection.trend.value,
                MONTHS_OF_DATA: projection.months_of_data,
            }
        )
    df = pd.DataFrame(rows, columns=columns)
    insufficient = int((df[EARNINGS_CONFIDENCE] == EarningsConfidence.INSUFFICIENT.value).sum())
    logger.info(f"Projected earnings for {len(df)} employees ({insufficient} with insufficient data)")
    return df
