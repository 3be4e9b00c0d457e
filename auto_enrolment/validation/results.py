from dataclasses import dataclass
from typing import Any, Dict, Optional

from auto_enrolment.utils.status_enums import Severity


@dataclass(frozen=True)
class RuleResult:
    """One finding produced by a validation rule."""

    code: str
    message: str
    severity: Severity
    field: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "severity": self.severity.value,
            "field": self.field,
        }
