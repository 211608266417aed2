# tests/test_money_utils.py
from decimal import Decimal

import pytest

from utils import parse_money, round_money


def test_parse_money_accepts_numbers_and_numeric_strings():
    assert parse_money(150) == Decimal("150")
    assert parse_money("99.95") == Decimal("99.95")
    assert parse_money(" 12.5 ") == Decimal("12.5")
    assert parse_money(Decimal("7.10")) == Decimal("7.10")


def test_parse_money_float_keeps_decimal_digits():
    # 0.1 must not turn into 0.1000000000000000055511151231257827...
    assert parse_money(0.1) == Decimal("0.1")


@pytest.mark.parametrize("bad", ["abc", "", "NaN", "Infinity", None, True, [], {}])
def test_parse_money_rejects_non_numeric(bad):
    with pytest.raises(ValueError) as exc:
        parse_money(bad)
    assert "Invalid amount" in str(exc.value)


def test_round_money_half_up():
    assert round_money(Decimal("0.015")) == Decimal("0.02")
    assert round_money(Decimal("10000000.124")) == Decimal("10000000.12")
    assert round_money(Decimal("-50.505")) == Decimal("-50.51")
