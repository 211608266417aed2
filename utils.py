"""Utility functions for money, dates, and transaction filtering."""
import datetime as dt
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Iterable, Optional

from models import Transaction, TransactionType

CENTS = Decimal("0.01")


def round_money(dec: Decimal) -> Decimal:
    """Round a Decimal to 2 decimal places with HALF_UP (normal money rounding)."""
    return dec.quantize(CENTS, rounding=ROUND_HALF_UP)


def parse_money(value: Any) -> Decimal:
    """Parse a monetary amount into a finite Decimal or raise a ValueError.

    Floats go through str() so 0.1 stays 0.1 and does not pick up binary noise.
    """
    if isinstance(value, bool) or value is None:
        raise ValueError("Invalid amount. Expected a number.")

    if isinstance(value, Decimal):
        dec = value
    elif isinstance(value, (int, float)):
        dec = Decimal(str(value))
    elif isinstance(value, str):
        try:
            dec = Decimal(value.strip())
        except InvalidOperation:
            raise ValueError("Invalid amount. Expected a number.")
    else:
        raise ValueError("Invalid amount. Expected a number.")

    if not dec.is_finite():
        raise ValueError("Invalid amount. Expected a number.")
    return dec


def normalize_iso_date(value: Any) -> dt.date:
    """Normalize a value to a date or raise a ValueError."""
    if isinstance(value, dt.datetime):
        return value.date()

    if isinstance(value, dt.date):
        return value

    if isinstance(value, str):
        try:
            return dt.date.fromisoformat(value)
        except ValueError:
            raise ValueError("Invalid date format. Expected YYYY-MM-DD.")

    raise ValueError("Invalid date format. Expected YYYY-MM-DD.")


def filter_transactions(
    transactions: Iterable[Transaction],
    date_from: Optional[dt.date] = None,
    date_to: Optional[dt.date] = None,
    query: Optional[str] = None,
    tx_type: Optional[TransactionType] = None,
) -> list[Transaction]:
    """Filter transactions by inclusive date range, text query, and type.

    The query matches merchant or description, case-insensitively.
    """
    q = (query or "").strip().lower()
    results: list[Transaction] = []

    for t in transactions:

        if tx_type and t.type != tx_type:
            continue

        if date_from and t.transaction_date < date_from:
            continue
        if date_to and t.transaction_date > date_to:
            continue

        if q:
            merchant = (t.merchant or "").lower()
            description = (t.description or "").lower()
            if q not in merchant and q not in description:
                continue

        results.append(t)

    return results
