"""
Auto-enrolment eligibility and enrolment lifecycle engine.
"""

from auto_enrolment.config import PlanRules, StagingConfig, load_plan_rules
from auto_enrolment.engine import AutoEnrolmentEngine, EmployeeResult, results_frame
from auto_enrolment.schema import PayrollRecord, records_from_frame

__version__ = "0.1.0"

__all__ = [
    "AutoEnrolmentEngine",
    "EmployeeResult",
    "PayrollRecord",
    "PlanRules",
    "StagingConfig",
    "load_plan_rules",
    "records_from_frame",
    "results_frame",
]
