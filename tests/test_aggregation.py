import datetime as dt
import random
from decimal import Decimal

import pytest

import aggregation
from models import (
    Account,
    AccountType,
    BillingCycle,
    Budget,
    Goal,
    Investment,
    InvestmentType,
    Loan,
    Subscription,
    Transaction,
    TransactionType,
)

TODAY = dt.date(2026, 3, 15)


def dec(x):
    return Decimal(str(x))


def make_tx(amount, type_, day=TODAY, category_id=None, account_id=1):
    return Transaction(
        id=None,
        user_id=1,
        account_id=account_id,
        category_id=category_id,
        amount=dec(amount),
        type=TransactionType(type_),
        transaction_date=day,
    )


def make_account(balance, is_active=True, currency="INR"):
    return Account(
        user_id=1,
        name="A",
        type=AccountType.bank,
        balance=dec(balance),
        is_active=is_active,
        currency=currency,
    )


def make_budget(limit, alert_at=80, category_id=None, account_id=None, is_active=True, id_=1):
    return Budget(
        id=id_,
        user_id=1,
        name="Budget",
        amount=dec(limit),
        alert_at_percentage=alert_at,
        category_id=category_id,
        account_id=account_id,
        is_active=is_active,
    )


# ---------- total balance ----------

def test_total_balance_sums_active_accounts_only():
    accounts = [make_account(1000), make_account("250.50"), make_account(999, is_active=False)]
    assert aggregation.total_balance(accounts) == dec("1250.50")


def test_total_balance_ignores_currency():
    accounts = [make_account(100, currency="INR"), make_account(10, currency="USD")]
    assert aggregation.total_balance(accounts) == dec(110)


def test_total_balance_independent_of_order():
    accounts = [make_account(b) for b in ("10.10", "-5.05", "300", "0.01", "42")]
    expected = sum((a.balance for a in accounts), Decimal("0"))
    for _ in range(5):
        random.shuffle(accounts)
        assert aggregation.total_balance(accounts) == expected


def test_total_balance_empty_is_zero():
    assert aggregation.total_balance([]) == Decimal("0")


# ---------- monthly income / expense and savings rate ----------

def test_monthly_window_is_month_start_through_today():
    txs = [
        make_tx(100, "income", day=dt.date(2026, 3, 1)),
        make_tx(50, "income", day=TODAY),
        make_tx(70, "income", day=dt.date(2026, 2, 28)),  # last month
        make_tx(90, "income", day=dt.date(2026, 3, 20)),  # after today
        make_tx(30, "expense", day=dt.date(2026, 3, 10)),
        make_tx(999, "transfer", day=dt.date(2026, 3, 10)),
    ]
    income, expense = aggregation.monthly_income_expense(txs, TODAY)
    assert income == dec(150)
    assert expense == dec(30)


def test_scenario_two_incomes_one_expense():
    txs = [make_tx(5000, "income"), make_tx(3000, "income"), make_tx(2000, "expense")]
    income, expense = aggregation.monthly_income_expense(txs, TODAY)
    assert income == dec(8000)
    assert expense == dec(2000)
    assert aggregation.savings_rate(income, expense) == 75.0


def test_savings_rate_zero_income_is_zero():
    assert aggregation.savings_rate(dec(0), dec(0)) == 0.0
    assert aggregation.savings_rate(dec(0), dec(500)) == 0.0


def test_savings_rate_clamped_when_overspending():
    assert aggregation.savings_rate(dec(1000), dec(1500)) == 0.0
    assert aggregation.savings_rate(dec(1000), dec(1000)) == 0.0


def test_savings_rate_in_range_and_zero_only_when_expected():
    rng = random.Random(7)
    for _ in range(200):
        income = dec(rng.randint(0, 10_000))
        expense = dec(rng.randint(0, 12_000))
        rate = aggregation.savings_rate(income, expense)
        assert 0.0 <= rate <= 100.0
        assert (rate == 0.0) == (income == 0 or expense >= income)


def test_savings_rate_tiny_positive_margin_is_not_zero():
    assert aggregation.savings_rate(dec("100000"), dec("99999.99")) > 0.0


def test_compute_summary_ignores_transfers():
    txs = [make_tx("100.10", "income"), make_tx("20.02", "expense"), make_tx(500, "transfer")]
    summary = aggregation.compute_summary(txs)
    assert summary == {
        "income_total": dec("100.10"),
        "expense_total": dec("20.02"),
        "net": dec("80.08"),
    }


def test_dashboard_stats():
    stats = aggregation.dashboard_stats(
        [make_account(1000), make_account(500, is_active=False)],
        [make_tx(4000, "income"), make_tx(1000, "expense")],
        TODAY,
    )
    assert stats["total_balance"] == dec("1000.00")
    assert stats["monthly_income"] == dec(4000)
    assert stats["monthly_expense"] == dec(1000)
    assert stats["savings_rate"] == 75.0
    assert stats["net_cash_flow"] == dec(3000)
    assert stats["overspending"] is False


def test_dashboard_stats_flags_overspending():
    stats = aggregation.dashboard_stats(
        [make_account(0)],
        [make_tx(1000, "income"), make_tx(1600, "expense"), make_tx(900, "transfer")],
        TODAY,
    )
    assert stats["net_cash_flow"] == dec(-600)
    assert stats["overspending"] is True
    assert stats["savings_rate"] == 0.0

    # nothing earned yet, nothing spent: not overspending
    empty = aggregation.dashboard_stats([], [], TODAY)
    assert empty["net_cash_flow"] == dec(0)
    assert empty["overspending"] is False


# ---------- budgets ----------

def test_scenario_budget_alert_fires_at_85_percent():
    budget = make_budget(1000, alert_at=80, category_id=7)
    txs = [make_tx(500, "expense", category_id=7), make_tx(350, "expense", category_id=7)]
    status = aggregation.budget_status(budget, txs, TODAY)
    assert status["spent"] == dec(850)
    assert status["percentage"] == 85.0
    assert status["remaining"] == dec(150)
    assert status["alert"] is True


def test_budget_alert_uses_per_budget_threshold():
    txs = [make_tx(850, "expense")]
    assert aggregation.budget_status(make_budget(1000, alert_at=90), txs, TODAY)["alert"] is False
    assert aggregation.budget_status(make_budget(1000, alert_at=85), txs, TODAY)["alert"] is True


def test_budget_category_scope_only_counts_matching_expenses():
    budget = make_budget(1000, category_id=7)
    txs = [
        make_tx(100, "expense", category_id=7),
        make_tx(400, "expense", category_id=8),
        make_tx(400, "expense", category_id=None),
        make_tx(1000, "income", category_id=7),
        make_tx(100, "expense", category_id=7, day=dt.date(2026, 2, 1)),
    ]
    assert aggregation.budget_spent(budget, txs, TODAY) == dec(100)


def test_budget_account_scope_and_unscoped():
    txs = [make_tx(100, "expense", account_id=1), make_tx(300, "expense", account_id=2)]
    assert aggregation.budget_spent(make_budget(1000, account_id=2), txs, TODAY) == dec(300)
    assert aggregation.budget_spent(make_budget(1000), txs, TODAY) == dec(400)


def test_inactive_budget_never_alerts():
    budgets = [make_budget(100, id_=1, is_active=False), make_budget(100, id_=2)]
    txs = [make_tx(500, "expense")]
    alerts = aggregation.budget_alerts(budgets, txs, TODAY)
    assert [a["budget_id"] for a in alerts] == [2]
    assert len(aggregation.budget_statuses(budgets, txs, TODAY)) == 1


def test_budget_zero_limit_has_zero_percentage():
    status = aggregation.budget_status(make_budget(0), [make_tx(10, "expense")], TODAY)
    assert status["percentage"] == 0.0
    assert status["alert"] is False


def test_budget_alert_iff_percentage_reaches_threshold():
    for spent in range(0, 1200, 50):
        status = aggregation.budget_status(make_budget(1000, alert_at=80), [make_tx(spent, "expense")], TODAY)
        assert status["alert"] == (status["percentage"] >= 80)


# ---------- loans ----------

def test_scenario_loan_payoff_and_months_remaining():
    assert aggregation.loan_payoff_percentage(dec(100000), dec(40000)) == 60.0
    assert aggregation.months_remaining(dt.date(2026, 9, 15), TODAY) == 6


def test_loan_payoff_monotonic_and_full_at_zero():
    principal = dec(50000)
    previous = -1.0
    for remaining in range(50000, -1, -2500):
        pct = aggregation.loan_payoff_percentage(principal, dec(remaining))
        assert pct >= previous
        previous = pct
    assert aggregation.loan_payoff_percentage(principal, dec(0)) == 100.0


def test_loan_payoff_clamped_and_zero_principal_guarded():
    assert aggregation.loan_payoff_percentage(dec(1000), dec(1500)) == 0.0
    assert aggregation.loan_payoff_percentage(dec(1000), dec(-10)) == 100.0
    assert aggregation.loan_payoff_percentage(dec(0), dec(0)) == 0.0


def test_months_remaining_past_and_missing():
    assert aggregation.months_remaining(dt.date(2025, 1, 1), TODAY) == 0
    assert aggregation.months_remaining(None, TODAY) is None
    assert aggregation.months_remaining(dt.date(2027, 1, 1), TODAY) == 10


def test_loan_summary_totals():
    loans = [
        Loan(id=1, user_id=1, name="Car", principal_amount=dec(100000),
             remaining_amount=dec(40000), start_date=dt.date(2024, 1, 1),
             end_date=dt.date(2026, 9, 1)),
        Loan(id=2, user_id=1, name="Phone", principal_amount=dec(20000),
             remaining_amount=dec(20000), start_date=dt.date(2026, 1, 1)),
    ]
    summary = aggregation.loan_summary(loans, TODAY)
    assert summary["total_debt"] == dec(60000)
    assert summary["total_principal"] == dec(120000)
    assert summary["total_paid_off"] == dec(60000)
    assert summary["loan_count"] == 2
    assert summary["loans"][0]["payoff_percentage"] == 60.0
    assert summary["loans"][1]["months_remaining"] is None


# ---------- subscriptions ----------

def test_due_in_days_rounds_up():
    now = dt.datetime(2026, 3, 15, 10, 0)
    assert aggregation.due_in_days(dt.date(2026, 3, 16), now) == 1
    assert aggregation.due_in_days(dt.date(2026, 3, 20), now) == 5
    assert aggregation.due_in_days(dt.date(2026, 3, 15), now) == 0


def test_due_in_days_negative_when_overdue():
    now = dt.datetime(2026, 3, 15, 10, 0)
    assert aggregation.due_in_days(dt.date(2026, 3, 12), now) == -3


def test_due_in_days_exact_midnight():
    assert aggregation.due_in_days(dt.date(2026, 3, 17), dt.datetime(2026, 3, 15)) == 2


@pytest.mark.parametrize(
    "cycle, amount, expected",
    [
        (BillingCycle.daily, "10", "300.00"),
        (BillingCycle.weekly, "120", "520.00"),
        (BillingCycle.monthly, "499", "499.00"),
        (BillingCycle.quarterly, "900", "300.00"),
        (BillingCycle.yearly, "1200", "100.00"),
    ],
)
def test_monthly_cost_per_cycle(cycle, amount, expected):
    assert aggregation.monthly_cost(dec(amount), cycle) == dec(expected)


def test_every_billing_cycle_has_a_monthly_factor():
    assert set(aggregation.MONTHLY_FACTORS) == set(BillingCycle)


def test_subscription_overview_reminders_and_totals():
    now = dt.datetime(2026, 3, 15, 9, 0)
    subs = [
        Subscription(id=1, user_id=1, name="Netflix", amount=dec(649),
                     billing_cycle=BillingCycle.monthly,
                     next_billing_date=dt.date(2026, 3, 17), remind_days_before=3),
        Subscription(id=2, user_id=1, name="Domain", amount=dec(1200),
                     billing_cycle=BillingCycle.yearly,
                     next_billing_date=dt.date(2026, 6, 1), remind_days_before=3),
        Subscription(id=3, user_id=1, name="Old", amount=dec(99),
                     billing_cycle=BillingCycle.monthly, is_active=False,
                     next_billing_date=dt.date(2026, 3, 16)),
    ]
    overview = aggregation.subscription_overview(subs, now)
    assert [s["name"] for s in overview["subscriptions"]] == ["Netflix", "Domain"]
    assert overview["subscriptions"][0]["due_soon"] is True
    assert overview["subscriptions"][1]["due_soon"] is False
    assert overview["total_monthly_cost"] == dec("749.00")


# ---------- goals and investments ----------

def test_goal_progress_clamped_and_guarded():
    goal = Goal(user_id=1, name="Trip", target_amount=dec(1000), current_amount=dec(250))
    assert aggregation.goal_progress(goal) == 25.0

    goal.current_amount = dec(5000)
    assert aggregation.goal_progress(goal) == 100.0
    assert goal.is_completed is False

    goal.target_amount = dec(0)
    assert aggregation.goal_progress(goal) == 0.0


def test_investment_performance_and_portfolio():
    holdings = [
        Investment(id=1, user_id=1, name="NIFTY ETF", type=InvestmentType.mutual_funds,
                   quantity=dec(10), purchase_price=dec(200), current_price=dec(250)),
        Investment(id=2, user_id=1, name="Coin", type=InvestmentType.crypto,
                   quantity=dec("0.5"), purchase_price=dec(1000), current_price=dec(600)),
        Investment(id=3, user_id=1, name="Land", type=InvestmentType.real_estate),
    ]
    first = aggregation.investment_performance(holdings[0])
    assert first["invested_value"] == dec(2000)
    assert first["current_value"] == dec(2500)
    assert first["gain"] == dec(500)
    assert first["gain_percentage"] == 25.0

    second = aggregation.investment_performance(holdings[1])
    assert second["gain"] == dec(-200)
    assert second["gain_percentage"] == -40.0

    empty = aggregation.investment_performance(holdings[2])
    assert empty["invested_value"] == dec(0)
    assert empty["gain_percentage"] == 0.0

    summary = aggregation.portfolio_summary(holdings)
    assert summary["total_invested"] == dec(2500)
    assert summary["total_current_value"] == dec(2800)
    assert summary["total_gain"] == dec(300)
    assert summary["total_gain_percentage"] == 12.0
