# utils/decimal_helpers.py

from decimal import Decimal, ROUND_HALF_UP
from typing import Union

# Standard quantization unit for money
TWO_PLACES = Decimal("0.01")
WHOLE_UNITS = Decimal("1")


def to_money(d: Union[Decimal, float, int], places: Decimal = TWO_PLACES) -> Decimal:
    """Quantize to ``places`` (two decimals by default) with ROUND_HALF_UP rounding.

    Floats go through ``repr`` so 2.675 rounds to 2.68 rather than the
    binary-expansion result.
    """
    if not isinstance(d, Decimal):
        d = Decimal(repr(float(d)))
    return d.quantize(places, rounding=ROUND_HALF_UP)
