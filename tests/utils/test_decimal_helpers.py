from decimal import Decimal

from auto_enrolment.utils.decimal_helpers import WHOLE_UNITS, to_money


def test_half_up_to_cents():
    assert to_money(2.675) == Decimal("2.68")
    assert to_money(Decimal("1.005")) == Decimal("1.01")


def test_whole_units():
    assert to_money(27090.5, WHOLE_UNITS) == Decimal("27091")
    assert to_money(12.49, WHOLE_UNITS) == Decimal("12")
