# auto_enrolment/utils/columns.py

# Census / payroll columns (standardized)
EMP_ID = "employee_id"
EMP_TAX_ID = "tax_identifier"
EMP_BIRTH_DATE = "date_of_birth"
EMP_AGE = "age"
EMP_START_DATE = "employment_start_date"
EMP_STATUS = "employment_status"
EMP_CONTRACT = "contract_type"
EMP_GROSS_PAY = "gross_pay"
EMP_PAY_FREQUENCY = "pay_frequency"
EMP_PAY_PERIOD_END = "pay_period_end"
EMP_INSURANCE_CLASS = "insurance_class"
EMP_EXISTING_SCHEME = "existing_scheme"
EMP_OPTED_OUT = "has_opted_out"
EMP_PRIOR_OPT_OUT = "prior_opt_out_date"
EMP_CURRENCY = "currency"
EMPLOYER_ID = "employer_id"

# Director, shareholding and insurance-class classification inputs
EMP_EMPLOYMENT_TYPE = "employment_type"
EMP_CLASSIFICATION = "employment_classification"
EMP_DIRECTOR_TYPE = "director_type"
EMP_SHAREHOLDING = "shareholding"
EMP_FAMILY_SHAREHOLDING = "family_shareholding"
EMP_RELATED_TO_SHAREHOLDERS = "related_to_shareholders"
EMP_DE_FACTO_CONTROL = "de_facto_control"

# Date columns parsed when reading a census frame
DATE_COLUMNS = [EMP_BIRTH_DATE, EMP_START_DATE, EMP_PRIOR_OPT_OUT]
NUMERIC_COLUMNS = [EMP_AGE, EMP_GROSS_PAY, EMP_SHAREHOLDING, EMP_FAMILY_SHAREHOLDING]
BOOL_COLUMNS = [EMP_EXISTING_SCHEME, EMP_OPTED_OUT, EMP_RELATED_TO_SHAREHOLDERS, EMP_DE_FACTO_CONTROL]

# Auto-enrolment date columns
WAITING_PERIOD_END = "waiting_period_end"
AUTO_ENROLMENT_DATE = "auto_enrolment_date"
DAYS_UNTIL_ENROLMENT = "days_until_enrolment"
READY_TO_ENROL = "ready_to_enrol"

# Eligibility columns
IS_ELIGIBLE = "is_eligible"
ELIGIBILITY_REASON = "eligibility_reason"
OPT_OUT_WINDOW_OPEN = "opt_out_window_open"
ANNUALISED_PAY = "annualised_pay"

# Contribution columns
PHASE_YEAR = "phase_year"
PENSIONABLE_PAY = "pensionable_pay"
EMP_CONTR = "employee_contribution"
EMPLOYER_CONTR = "employer_contribution"
STATE_CONTR = "state_contribution"
TOTAL_CONTR = "total_contribution"

# Enrolment status / validation columns
ENROLMENT_STATUS = "enrolment_status"
RISK_SCORE = "risk_score"
RISK_BAND = "risk_band"
ISSUE_COUNT = "issue_count"
ISSUE_CODES = "issue_codes"

# Event log columns
EVENT_SEQUENCE = "sequence"
EVENT_TYPE = "event_type"
EVENT_DATE = "event_date"
RECORDED_AT = "recorded_at"

# Re-enrolment projection columns
RE_ENROLMENT_CYCLE = "cycle"
OPT_OUT_DATE = "opt_out_date"
RE_ENROLMENT_TARGET = "target_date"
RE_ENROLMENT_DATE = "re_enrolment_date"
OPT_OUT_WINDOW_END = "opt_out_window_end"

# Variable earnings columns
EARNINGS_MONTH = "month"
PROJECTED_ANNUAL_PAY = "projected_annual_pay"
EARNINGS_CONFIDENCE = "earnings_confidence"
PROJECTION_METHOD = "projection_method"
EARNINGS_TREND = "earnings_trend"
MONTHS_OF_DATA = "months_of_data"
