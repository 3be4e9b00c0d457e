"""
Typed payroll records consumed by the engine.

Raw payroll exports are messy, so every field that can be missing or
malformed is optional here: the validation rules report problems as
findings instead of the model refusing the row.
"""

import logging
from datetime import date
from typing import Any, Dict, List, Optional, Tuple, Union

import numpy as np
import pandas as pd
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from auto_enrolment.utils.columns import BOOL_COLUMNS, DATE_COLUMNS, EMP_ID, NUMERIC_COLUMNS
from auto_enrolment.utils.date_utils import to_date

logger = logging.getLogger(__name__)

_TRUE_STRINGS = {"true", "t", "yes", "y", "1"}
_FALSE_STRINGS = {"false", "f", "no", "n", "0", ""}


class PayrollRecord(BaseModel):
    """One employee row from a payroll export."""

    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True, str_strip_whitespace=False)

    employee_id: Optional[str] = None
    employer_id: Optional[str] = None
    tax_identifier: Optional[str] = None
    date_of_birth: Optional[date] = None
    age: Optional[int] = None
    employment_start_date: Optional[date] = None
    employment_status: str = "active"
    contract_type: Optional[str] = None
    gross_pay: float = 0.0
    pay_frequency: str = "monthly"
    pay_period_end: Optional[Union[date, str]] = None
    insurance_class: Optional[str] = None
    existing_scheme: bool = False
    has_opted_out: bool = False
    prior_opt_out_date: Optional[date] = None
    currency: str = "EUR"
    employment_type: Optional[str] = None
    employment_classification: Optional[str] = None
    director_type: Optional[str] = None
    shareholding: Optional[float] = None
    family_shareholding: Optional[float] = None
    related_to_shareholders: bool = False
    de_facto_control: bool = False
    # Census cells that were present but could not be parsed
    invalid_fields: Tuple[str, ...] = ()

    @field_validator("date_of_birth", "employment_start_date", "prior_opt_out_date", mode="before")
    @classmethod
    def coerce_dates(cls, value: Any) -> Optional[date]:
        if value is None or (isinstance(value, str) and not value.strip()):
            return None
        parsed = to_date(value)
        if parsed is None:
            raise ValueError(f"Unparseable date: {value!r}")
        return parsed

    @field_validator("pay_frequency", mode="before")
    @classmethod
    def normalise_frequency(cls, value: Any) -> Any:
        return value.strip().lower() if isinstance(value, str) else value


# Free-text fields inspected by the security checks, in rule order
TEXT_FIELDS = (
    "employee_id",
    "tax_identifier",
    "insurance_class",
    "employment_status",
    "contract_type",
    "currency",
    "employment_type",
    "employment_classification",
    "director_type",
)


def _clean_value(value: Any) -> Any:
    """Map pandas/numpy missing markers and scalars to plain Python values."""
    if value is None:
        return None
    if isinstance(value, pd.Timestamp):
        return None if pd.isna(value) else value.date()
    if isinstance(value, float) and np.isnan(value):
        return None
    if value is pd.NA or value is pd.NaT:
        return None
    if isinstance(value, np.generic):
        return value.item()
    return value


def _to_bool(value: Any) -> Optional[bool]:
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    text = str(value).strip().lower()
    if text in _TRUE_STRINGS:
        return True
    if text in _FALSE_STRINGS:
        return False
    return None


def _unparsed(raw: pd.Series, parsed: pd.Series) -> pd.Series:
    """Cells that held a non-blank value which failed to parse."""
    present = raw.notna() & raw.astype(str).str.strip().ne("")
    return parsed.isna() & present


def _build_record(data: Dict[str, Any], invalid: List[str]) -> PayrollRecord:
    """
    Construct one record, dropping any field the model rejects.

    Dropped fields are listed in ``invalid_fields`` so the validation rules
    report them as findings and the rest of the census still converts.
    """
    data = dict(data)
    invalid = list(invalid)
    while True:
        try:
            return PayrollRecord(**data, invalid_fields=tuple(dict.fromkeys(invalid)))
        except ValidationError as e:
            rejected = sorted({str(err["loc"][0]) for err in e.errors() if err["loc"]} & set(data))
            if not rejected:
                raise
            logger.warning(f"Row {data.get(EMP_ID)!r}: dropping unparseable field(s) {rejected}")
            for name in rejected:
                data.pop(name)
                invalid.append(name)


def records_from_frame(df: pd.DataFrame) -> List[PayrollRecord]:
    """
    Convert a census DataFrame into PayrollRecords.

    Date and numeric columns are parsed with ``errors='coerce'``; cells that
    fail are logged, treated as missing and named in the record's
    ``invalid_fields`` so the validation rules flag them. A malformed row
    never aborts the conversion. Columns the model does not know are ignored.
    """
    if df.index.name == EMP_ID and EMP_ID not in df.columns:
        df = df.reset_index()
    frame = df.reset_index(drop=True)

    unparsed: Dict[str, pd.Series] = {}
    for col in DATE_COLUMNS:
        if col in frame.columns:
            parsed = pd.to_datetime(frame[col], errors="coerce")
            unparsed[col] = _unparsed(frame[col], parsed)
            bad = int(unparsed[col].sum())
            if bad:
                logger.warning(f"Column '{col}': {bad} value(s) could not be parsed as dates")
            frame[col] = parsed

    for col in NUMERIC_COLUMNS:
        if col in frame.columns:
            parsed = pd.to_numeric(frame[col], errors="coerce")
            unparsed[col] = _unparsed(frame[col], parsed)
            bad = int(unparsed[col].sum())
            if bad:
                logger.warning(f"Column '{col}': {bad} value(s) could not be parsed as numbers")
            frame[col] = parsed

    known = set(PayrollRecord.model_fields) - {"invalid_fields"}
    unknown = [c for c in frame.columns if c not in known]
    if unknown:
        logger.debug(f"Ignoring unknown census columns: {unknown}")

    records: List[PayrollRecord] = []
    for position, row in enumerate(frame.to_dict(orient="records")):
        invalid = [col for col, mask in unparsed.items() if mask.iloc[position]]
        data: Dict[str, Any] = {}
        for key, value in row.items():
            if key not in known:
                continue
            value = _clean_value(value)
            if key in BOOL_COLUMNS:
                flag = _to_bool(value)
                if flag is None and value is not None:
                    invalid.append(key)
                value = flag
            if value is not None:
                data[key] = value
        records.append(_build_record(data, invalid))

    flagged = sum(1 for record in records if record.invalid_fields)
    if flagged:
        logger.warning(f"{flagged} census row(s) carried values that could not be parsed")
    logger.info(f"Converted {len(records)} census rows to payroll records")
    return records
