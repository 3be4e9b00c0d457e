# auto_enrolment/plan_rules/staging.py

"""
Staging date calculation.

A staging date is a day on which an employer may process new
auto-enrolments. Candidates are the configured days of month in every anchor
month of the configured frequency; a day beyond the month's length is
clamped to the month's last day.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Iterable, List, Mapping, Optional, Union

from pydantic import ValidationError

from auto_enrolment.config.plan_rules import (
    DEFAULT_STAGING_CONFIG,
    StagingConfig,
    collect_staging_config_errors,
)
from auto_enrolment.exceptions import ConfigurationError
from auto_enrolment.utils.date_utils import clamp_day, days_between
from auto_enrolment.utils.status_enums import STAGING_ANCHOR_MONTHS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NextStagingDate:
    """The next staging date after a reference date, plus the one after it."""

    date: date
    days_until: int
    following: date


def resolve_staging_config(config: Optional[StagingConfig]) -> StagingConfig:
    """Return ``config``, or the default quarterly/day-1 configuration when None."""
    if config is None:
        logger.debug("No staging configuration supplied; using default quarterly schedule")
        return DEFAULT_STAGING_CONFIG
    return config


def staging_dates_for_year(year: int, config: Optional[StagingConfig] = None) -> List[date]:
    """Every staging date falling within calendar ``year``, in ascending order."""
    cfg = resolve_staging_config(config)
    months = STAGING_ANCHOR_MONTHS[cfg.frequency]
    return sorted({clamp_day(year, month, day) for month in months for day in cfg.days_of_month})


def _first_after(cfg: StagingConfig, reference: date) -> date:
    # Every frequency has a January anchor, so the next year always has a candidate
    for year in (reference.year, reference.year + 1):
        for candidate in staging_dates_for_year(year, cfg):
            if candidate > reference:
                return candidate
    raise AssertionError(f"No staging date found after {reference}")


def next_staging_date(config: Optional[StagingConfig], reference_date: date) -> NextStagingDate:
    """
    Find the smallest staging date strictly after ``reference_date``.

    Args:
        config: Staging configuration; None selects the default schedule.
        reference_date: Date to search from (never returned itself).

    Returns:
        NextStagingDate with ``days_until`` counted from ``reference_date`` and
        ``following`` set to the staging date after ``date``.
    """
    cfg = resolve_staging_config(config)
    next_date = _first_after(cfg, reference_date)
    following = _first_after(cfg, next_date)
    return NextStagingDate(
        date=next_date,
        days_until=days_between(reference_date, next_date),
        following=following,
    )


def validate_staging_config(config: Union[StagingConfig, Mapping[str, Any]]) -> List[str]:
    """
    Check a staging configuration and return a list of error strings.

    An empty list means the configuration can be used for calculations.
    """
    if isinstance(config, StagingConfig):
        raw = {
            "frequency": config.frequency,
            "days_of_month": list(config.days_of_month),
            "effective_from": config.effective_from,
            "effective_to": config.effective_to,
        }
    else:
        raw = config
    return collect_staging_config_errors(raw)


def build_staging_config(raw: Mapping[str, Any]) -> StagingConfig:
    """
    Validate raw staging settings and build a StagingConfig.

    Raises:
        ConfigurationError: carrying every validation message in ``errors``.
    """
    errors = validate_staging_config(raw)
    if errors:
        logger.error(f"Invalid staging configuration: {errors}")
        raise ConfigurationError("Invalid staging configuration", errors)
    try:
        return StagingConfig.model_validate(dict(raw))
    except ValidationError as e:
        raise ConfigurationError("Invalid staging configuration", [str(e)]) from e


def select_staging_config(
    configs: Iterable[StagingConfig], on: date
) -> Optional[StagingConfig]:
    """Pick the configuration effective on ``on``; the latest ``effective_from`` wins."""
    effective = [cfg for cfg in configs if cfg.is_effective_on(on)]
    if not effective:
        return None
    return max(effective, key=lambda cfg: cfg.effective_from)
