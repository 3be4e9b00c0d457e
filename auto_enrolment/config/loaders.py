import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from cerberus import Validator
from pydantic import ValidationError

from auto_enrolment.config.plan_rules import PlanRules

# Configure logger for this module
logger = logging.getLogger(__name__)


class ConfigLoadError(Exception):
    """Custom exception for errors during config loading."""

    pass


_NUMBER = {"type": "number", "required": False}
_INTEGER = {"type": "integer", "required": False}

PLAN_RULES_SCHEMA: Dict[str, Any] = {
    "staging": {
        "type": "dict",
        "required": False,
        "nullable": True,
        "schema": {
            "frequency": {"type": "string", "required": True},
            "days_of_month": {"type": "list", "required": False, "schema": {"type": "integer"}},
            "dates": {"type": "list", "required": False, "schema": {"type": "integer"}},
            "effective_from": {"type": ["date", "string"], "required": False},
            "effective_to": {"type": ["date", "string"], "required": False, "nullable": True},
            "employer_id": {"type": "string", "required": False, "nullable": True},
        },
    },
    "eligibility": {
        "type": "dict",
        "required": False,
        "schema": {
            "min_age": _INTEGER,
            "max_age": _INTEGER,
            "opt_out_cooldown_years": _INTEGER,
            "active_statuses": {"type": "list", "required": False, "schema": {"type": "string"}},
            "eligible_insurance_classes": {"type": "list", "required": False, "schema": {"type": "string"}},
            "controlling_shareholding_threshold": _NUMBER,
        },
    },
    "earnings": {
        "type": "dict",
        "required": False,
        "schema": {"lower_threshold": _NUMBER, "upper_threshold": _NUMBER},
    },
    "auto_enrolment": {
        "type": "dict",
        "required": False,
        "schema": {"waiting_period_months": _INTEGER},
    },
    "contributions": {
        "type": "dict",
        "required": False,
        "schema": {
            "default_phase_year": _INTEGER,
            "schedule": {
                "type": "list",
                "required": False,
                "schema": {
                    "type": "dict",
                    "schema": {
                        "year": {"type": "integer", "required": True},
                        "employee_rate": {"type": "number", "required": True},
                        "employer_rate": {"type": "number", "required": True},
                        "state_rate": {"type": "number", "required": True},
                    },
                },
            },
        },
    },
    "opt_out": {
        "type": "dict",
        "required": False,
        "schema": {"window_months": _INTEGER, "re_enrolment_years": _INTEGER},
    },
    "validation": {"type": "dict", "required": False},
    "variable_earnings": {
        "type": "dict",
        "required": False,
        "schema": {
            "minimum_months": _INTEGER,
            "medium_confidence_months": _INTEGER,
            "high_confidence_months": _INTEGER,
            "seasonality_threshold": _NUMBER,
            "outlier_z_score": _NUMBER,
            "trend_threshold": _NUMBER,
        },
    },
}


def load_yaml_config(config_path: Union[str, Path]) -> Optional[Dict[str, Any]]:
    """
    Loads configuration data from a YAML file.

    Args:
        config_path: Path pointing to the YAML configuration file.

    Returns:
        A dictionary containing the loaded configuration.

    Raises:
        ConfigLoadError: If the file cannot be found or parsed.
    """
    if not isinstance(config_path, Path):
        config_path = Path(config_path)

    logger.info(f"Attempting to load configuration from: {config_path}")

    if not config_path.is_file():
        logger.error(f"Configuration file not found at path: {config_path}")
        raise ConfigLoadError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            config_data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        logger.exception(f"Error parsing YAML configuration file {config_path}: {e}")
        raise ConfigLoadError(f"Error parsing YAML file {config_path}") from e
    except OSError as e:
        logger.exception(f"Could not read configuration file {config_path}: {e}")
        raise ConfigLoadError(f"Could not read configuration file {config_path}") from e

    if config_data is None:
        config_data = {}
    if not isinstance(config_data, dict):
        logger.error(f"Configuration file {config_path} did not parse into a dictionary.")
        raise ConfigLoadError(
            f"Invalid configuration format in {config_path}: Expected a dictionary."
        )

    logger.info(f"Successfully loaded configuration from {config_path}")
    return config_data


def plan_rules_from_dict(config_data: Dict[str, Any]) -> PlanRules:
    """
    Validates a raw plan-rules mapping (schema first, then model rules).
    A top-level ``plan_rules`` key is unwrapped if present.
    """
    if "plan_rules" in config_data and isinstance(config_data["plan_rules"], dict):
        config_data = config_data["plan_rules"]

    # 1. Schema validation
    v = Validator(PLAN_RULES_SCHEMA)
    if not v.validate(config_data):
        raise ConfigLoadError(f"Config validation failed: {v.errors}")

    # 2. Model validation (ranges, ordering, staging-day checks)
    try:
        plan_rules = PlanRules.model_validate(config_data)
    except ValidationError as e:
        raise ConfigLoadError(f"Invalid plan rules: {e}") from e

    logger.debug(f"Plan rules loaded: {plan_rules}")
    return plan_rules


def load_plan_rules(config_path: Union[str, Path]) -> PlanRules:
    """Loads YAML, validates its schema and returns a frozen ``PlanRules``."""
    config_data = load_yaml_config(config_path)
    return plan_rules_from_dict(config_data)


# Expose for import
__all__ = [
    "load_yaml_config",
    "plan_rules_from_dict",
    "load_plan_rules",
    "ConfigLoadError",
    "PLAN_RULES_SCHEMA",
]
