"""Dashboard statistics derived from rows that were already fetched.

Every function here is pure: callers pass in the rows and the reference
date (or datetime), nothing touches the database or the clock. Money stays
Decimal; percentages are returned as floats for display.

Divisions by zero (no income, zero-principal loan, zero limit...) are
defined to give 0 instead of raising.
"""
import datetime as dt
import math
from decimal import Decimal
from typing import Any, Iterable, Optional

from models import (
    Account,
    BillingCycle,
    Budget,
    Goal,
    Investment,
    Loan,
    Subscription,
    Transaction,
    TransactionType,
)
from utils import round_money

ZERO = Decimal("0")
HUNDRED = Decimal("100")

# Multipliers that turn one billing period's charge into a monthly figure.
MONTHLY_FACTORS: dict[BillingCycle, Decimal] = {
    BillingCycle.daily: Decimal("30"),
    BillingCycle.weekly: Decimal("52") / Decimal("12"),
    BillingCycle.monthly: Decimal("1"),
    BillingCycle.quarterly: Decimal("1") / Decimal("3"),
    BillingCycle.yearly: Decimal("1") / Decimal("12"),
}


def _ratio(part: Decimal, whole: Decimal) -> float:
    """part / whole as a percentage, 0 when whole is not positive."""
    if whole <= 0:
        return 0.0
    return float(Decimal(part) / Decimal(whole) * HUNDRED)


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def _dec(value: Optional[Any]) -> Decimal:
    return ZERO if value is None else Decimal(value)


# ---------- balances and cash flow ----------

def total_balance(accounts: Iterable[Account]) -> Decimal:
    """Nominal sum of balances over active accounts (no currency conversion)."""
    return sum((_dec(a.balance) for a in accounts if a.is_active), ZERO)


def month_start(today: dt.date) -> dt.date:
    return today.replace(day=1)


def in_current_month(day: dt.date, today: dt.date) -> bool:
    """True for dates in [first of today's month, today]."""
    return month_start(today) <= day <= today


def compute_summary(transactions: Iterable[Transaction]) -> dict[str, Decimal]:
    """Income total, expense total, and their difference.

    Transfers move money between places and count as neither.
    """
    income_total = ZERO
    expense_total = ZERO

    for t in transactions:
        if t.type == TransactionType.income:
            income_total += _dec(t.amount)
        elif t.type == TransactionType.expense:
            expense_total += _dec(t.amount)

    return {
        "income_total": round_money(income_total),
        "expense_total": round_money(expense_total),
        "net": round_money(income_total - expense_total),
    }


def monthly_income_expense(
    transactions: Iterable[Transaction],
    today: dt.date,
) -> tuple[Decimal, Decimal]:
    """Income and expense totals for the current calendar month up to today."""
    summary = compute_summary(
        t for t in transactions if in_current_month(t.transaction_date, today)
    )
    return summary["income_total"], summary["expense_total"]


def savings_rate(income: Decimal, expense: Decimal) -> float:
    """Share of income that was not spent, in percent.

    Months where spending exceeds income report 0, not a negative rate.
    """
    if income <= 0:
        return 0.0
    return max(0.0, float((income - expense) / income * HUNDRED))


def dashboard_stats(
    accounts: Iterable[Account],
    transactions: Iterable[Transaction],
    today: dt.date,
) -> dict[str, Any]:
    """Headline numbers for the dashboard.

    `overspending` flags a month where expenses exceed income, even when the
    savings rate is simply clamped to 0.
    """
    income, expense = monthly_income_expense(transactions, today)
    return {
        "total_balance": round_money(total_balance(accounts)),
        "monthly_income": income,
        "monthly_expense": expense,
        "net_cash_flow": income - expense,
        "savings_rate": savings_rate(income, expense),
        "overspending": expense > income,
    }


# ---------- budgets ----------

def _counts_against(budget: Budget, t: Transaction) -> bool:
    if t.type != TransactionType.expense:
        return False
    if budget.category_id is not None:
        return t.category_id == budget.category_id
    if budget.account_id is not None:
        return t.account_id == budget.account_id
    return True


def budget_spent(
    budget: Budget,
    transactions: Iterable[Transaction],
    today: dt.date,
) -> Decimal:
    """Sum of this month's expenses that fall under the budget's scope."""
    return sum(
        (
            _dec(t.amount)
            for t in transactions
            if in_current_month(t.transaction_date, today) and _counts_against(budget, t)
        ),
        ZERO,
    )


def budget_status(
    budget: Budget,
    transactions: Iterable[Transaction],
    today: dt.date,
) -> dict[str, Any]:
    limit = _dec(budget.amount)
    spent = budget_spent(budget, transactions, today)
    percentage = _ratio(spent, limit)
    return {
        "budget_id": budget.id,
        "name": budget.name,
        "category_id": budget.category_id,
        "account_id": budget.account_id,
        "limit": round_money(limit),
        "spent": round_money(spent),
        "remaining": round_money(limit - spent),
        "percentage": percentage,
        "alert_at_percentage": budget.alert_at_percentage,
        "alert": percentage >= budget.alert_at_percentage,
    }


def budget_statuses(
    budgets: Iterable[Budget],
    transactions: Iterable[Transaction],
    today: dt.date,
) -> list[dict[str, Any]]:
    """Spend-vs-limit for every active budget. Inactive budgets are skipped."""
    transactions = list(transactions)
    return [budget_status(b, transactions, today) for b in budgets if b.is_active]


def budget_alerts(
    budgets: Iterable[Budget],
    transactions: Iterable[Transaction],
    today: dt.date,
) -> list[dict[str, Any]]:
    return [s for s in budget_statuses(budgets, transactions, today) if s["alert"]]


# ---------- loans ----------

def loan_payoff_percentage(principal: Decimal, remaining: Decimal) -> float:
    """Share of the principal already repaid, clamped to [0, 100]."""
    return _clamp(_ratio(_dec(principal) - _dec(remaining), _dec(principal)))


def months_remaining(end_date: Optional[dt.date], today: dt.date) -> Optional[int]:
    """Calendar-month distance from today to end_date, never below 0.

    Day of month is ignored: Jan 31 -> Feb 1 counts as one month.
    """
    if end_date is None:
        return None
    months = (end_date.year - today.year) * 12 + (end_date.month - today.month)
    return max(0, months)


def loan_progress(loan: Loan, today: dt.date) -> dict[str, Any]:
    principal = _dec(loan.principal_amount)
    remaining = _dec(loan.remaining_amount)
    return {
        "loan_id": loan.id,
        "name": loan.name,
        "principal_amount": round_money(principal),
        "remaining_amount": round_money(remaining),
        "paid_off": round_money(principal - remaining),
        "payoff_percentage": loan_payoff_percentage(principal, remaining),
        "months_remaining": months_remaining(loan.end_date, today),
    }


def loan_summary(loans: Iterable[Loan], today: dt.date) -> dict[str, Any]:
    loans = list(loans)
    total_principal = sum((_dec(l.principal_amount) for l in loans), ZERO)
    total_debt = sum((_dec(l.remaining_amount) for l in loans), ZERO)
    return {
        "total_debt": round_money(total_debt),
        "total_principal": round_money(total_principal),
        "total_paid_off": round_money(total_principal - total_debt),
        "loan_count": len(loans),
        "loans": [loan_progress(l, today) for l in loans],
    }


# ---------- subscriptions ----------

def due_in_days(next_billing_date: dt.date, now: dt.datetime) -> int:
    """Whole days until the billing date (midnight), rounded up.

    Negative when the bill is overdue; callers decide how to show that.
    """
    due_at = dt.datetime.combine(next_billing_date, dt.time.min, tzinfo=now.tzinfo)
    return math.ceil((due_at - now).total_seconds() / 86400)


def monthly_cost(amount: Decimal, billing_cycle: BillingCycle) -> Decimal:
    return round_money(_dec(amount) * MONTHLY_FACTORS[BillingCycle(billing_cycle)])


def subscription_overview(
    subscriptions: Iterable[Subscription],
    now: dt.datetime,
) -> dict[str, Any]:
    """Due dates, reminders, and monthly cost for active subscriptions."""
    items = []
    total = ZERO
    for sub in subscriptions:
        if not sub.is_active:
            continue
        days = due_in_days(sub.next_billing_date, now)
        cost = monthly_cost(sub.amount, sub.billing_cycle)
        total += cost
        items.append(
            {
                "subscription_id": sub.id,
                "name": sub.name,
                "amount": round_money(_dec(sub.amount)),
                "billing_cycle": sub.billing_cycle,
                "next_billing_date": sub.next_billing_date,
                "due_in_days": days,
                "due_soon": 0 <= days <= sub.remind_days_before,
                "monthly_cost": cost,
            }
        )
    items.sort(key=lambda item: item["due_in_days"])
    return {"total_monthly_cost": round_money(total), "subscriptions": items}


# ---------- goals and investments ----------

def goal_progress(goal: Goal) -> float:
    """Progress toward the target in percent. Does not mark the goal complete."""
    return _clamp(_ratio(_dec(goal.current_amount), _dec(goal.target_amount)))


def investment_performance(investment: Investment) -> dict[str, Any]:
    quantity = _dec(investment.quantity)
    invested = quantity * _dec(investment.purchase_price)
    current = quantity * _dec(investment.current_price)
    return {
        "investment_id": investment.id,
        "name": investment.name,
        "type": investment.type,
        "invested_value": round_money(invested),
        "current_value": round_money(current),
        "gain": round_money(current - invested),
        "gain_percentage": _ratio(current - invested, invested),
    }


def portfolio_summary(investments: Iterable[Investment]) -> dict[str, Any]:
    holdings = [investment_performance(i) for i in investments]
    invested = sum((h["invested_value"] for h in holdings), ZERO)
    current = sum((h["current_value"] for h in holdings), ZERO)
    return {
        "total_invested": invested,
        "total_current_value": current,
        "total_gain": current - invested,
        "total_gain_percentage": _ratio(current - invested, invested),
        "holdings": holdings,
    }
