"""
Config package: plan-rule models and YAML loaders.
"""

from auto_enrolment.config.plan_rules import (
    DEFAULT_STAGING_CONFIG,
    AutoEnrolmentConfig,
    ContributionConfig,
    ContributionStep,
    EarningsBand,
    EligibilityConfig,
    OptOutConfig,
    PlanRules,
    StagingConfig,
    ValidationConfig,
    VariableEarningsConfig,
)
from auto_enrolment.config.loaders import ConfigLoadError, load_plan_rules

__all__ = [
    "DEFAULT_STAGING_CONFIG",
    "AutoEnrolmentConfig",
    "ContributionConfig",
    "ContributionStep",
    "EarningsBand",
    "EligibilityConfig",
    "OptOutConfig",
    "PlanRules",
    "StagingConfig",
    "ValidationConfig",
    "VariableEarningsConfig",
    "ConfigLoadError",
    "load_plan_rules",
]
