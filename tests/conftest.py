from datetime import date

import pytest

from auto_enrolment.config.plan_rules import StagingConfig
from auto_enrolment.schema.records import PayrollRecord
from auto_enrolment.state.event_log import InMemoryEventStore

AS_OF = date(2025, 6, 30)


@pytest.fixture
def as_of():
    return AS_OF


@pytest.fixture
def make_record():
    """Factory for a clean, eligible monthly-paid record; keyword overrides win."""

    def _make(**overrides):
        data = dict(
            employee_id="E001",
            employer_id="ER01",
            tax_identifier="1234567T",
            age=35,
            employment_start_date=date(2024, 1, 15),
            employment_status="active",
            contract_type="permanent",
            gross_pay=3000.0,
            pay_frequency="monthly",
            pay_period_end="2025-06-30",
            insurance_class="A1",
            currency="EUR",
        )
        data.update(overrides)
        return PayrollRecord(**data)

    return _make


@pytest.fixture
def quarterly():
    return StagingConfig(frequency="quarterly", days_of_month=[1])


@pytest.fixture
def store():
    return InMemoryEventStore()
