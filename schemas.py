"""Pydantic/SQLModel schemas for API payloads and validation.

Amounts and dates are parsed here, at the boundary, so nothing downstream
ever sees a non-numeric amount or a malformed date.
"""
from typing import List, Optional
from decimal import Decimal
import datetime as dt
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlmodel import SQLModel, Field
from pydantic import BaseModel, constr, field_validator

from config import DEFAULT_CURRENCY
from models import (
    AccountType,
    BillingCycle,
    BudgetPeriod,
    CategoryType,
    InvestmentType,
    TransactionSource,
    TransactionType,
)
from utils import normalize_iso_date, parse_money

NAME_MAX_LEN = 80
TEXT_MAX_LEN = 300

MONEY_FIELDS = (
    "amount",
    "balance",
    "target_amount",
    "current_amount",
    "principal_amount",
    "remaining_amount",
    "interest_rate",
    "emi_amount",
    "quantity",
    "purchase_price",
    "current_price",
    "parsed_amount",
)
DATE_FIELDS = (
    "transaction_date",
    "start_date",
    "end_date",
    "target_date",
    "next_billing_date",
    "purchase_date",
    "parsed_date",
)
TEXT_FIELDS = ("name", "merchant", "description", "notes", "provider", "lender")


class BoundaryMixin:
    """Shared validators: strict money parsing, ISO dates, trimmed text."""

    @field_validator(*MONEY_FIELDS, mode="before", check_fields=False)
    @classmethod
    def parse_amounts(cls, v):
        if v is None:
            return None
        return parse_money(v)

    @field_validator(*DATE_FIELDS, mode="before", check_fields=False)
    @classmethod
    def normalize_dates(cls, v):
        if v is None:
            return None
        return normalize_iso_date(v)

    @field_validator(*TEXT_FIELDS, mode="before", check_fields=False)
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("currency", mode="before", check_fields=False)
    @classmethod
    def check_currency(cls, v):
        if v is None:
            return None
        code = str(v).strip().upper()
        if len(code) != 3 or not code.isalpha():
            raise ValueError("Invalid currency. Expected a three-letter code.")
        return code


# Profile

class ProfileRead(SQLModel):
    id: int
    email: Optional[str] = None
    phone: Optional[str] = None
    full_name: Optional[str] = None
    timezone: str
    currency: str
    plan_type: str


class ProfileUpdate(BoundaryMixin, SQLModel):
    email: Optional[str] = None
    phone: Optional[str] = None
    full_name: Optional[str] = Field(default=None, max_length=NAME_MAX_LEN)
    timezone: Optional[str] = None
    currency: Optional[str] = None

    @field_validator("timezone")
    @classmethod
    def check_timezone(cls, v):
        if v is None:
            return None
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError("Unknown timezone. Expected an IANA name such as Asia/Kolkata.")
        return v


# Accounts

class AccountCreate(BoundaryMixin, SQLModel):
    """Payload for creating an account. `balance` is the opening balance."""
    name: str = Field(min_length=1, max_length=NAME_MAX_LEN)
    type: AccountType
    provider: Optional[str] = None
    account_number: Optional[str] = None
    balance: Decimal = Decimal("0")
    currency: str = DEFAULT_CURRENCY
    color: Optional[str] = None
    icon: Optional[str] = None


class AccountUpdate(BoundaryMixin, SQLModel):
    """Partial update. The balance is not editable: it follows transactions."""
    name: Optional[str] = Field(default=None, min_length=1, max_length=NAME_MAX_LEN)
    type: Optional[AccountType] = None
    provider: Optional[str] = None
    account_number: Optional[str] = None
    currency: Optional[str] = None
    color: Optional[str] = None
    icon: Optional[str] = None
    is_active: Optional[bool] = None


# Categories

class CategoryCreate(BoundaryMixin, SQLModel):
    name: constr(strip_whitespace=True, min_length=1, max_length=NAME_MAX_LEN)
    type: CategoryType
    icon: Optional[str] = None
    color: Optional[str] = None
    parent_id: Optional[int] = None
    keywords: List[str] = []


class CategoryUpdate(BoundaryMixin, SQLModel):
    name: Optional[constr(strip_whitespace=True, min_length=1, max_length=NAME_MAX_LEN)] = None
    icon: Optional[str] = None
    color: Optional[str] = None
    parent_id: Optional[int] = None
    keywords: Optional[List[str]] = None


# Transactions

class TransactionCreate(BoundaryMixin, SQLModel):
    """Payload for recording a transaction against one of the user's accounts."""
    account_id: int
    category_id: Optional[int] = None
    receipt_id: Optional[int] = None
    amount: Decimal = Field(gt=0)
    type: TransactionType
    merchant: Optional[str] = Field(default=None, max_length=NAME_MAX_LEN)
    description: Optional[str] = Field(default=None, max_length=TEXT_MAX_LEN)
    # None means today in the user's timezone, filled in by the endpoint
    transaction_date: Optional[dt.date] = None
    tags: List[str] = []
    source: TransactionSource = TransactionSource.manual
    is_recurring: bool = False


class TransactionUpdate(BoundaryMixin, SQLModel):
    """Partial update. Does not touch account balances."""
    category_id: Optional[int] = None
    amount: Optional[Decimal] = Field(default=None, gt=0)
    type: Optional[TransactionType] = None
    merchant: Optional[str] = Field(default=None, max_length=NAME_MAX_LEN)
    description: Optional[str] = Field(default=None, max_length=TEXT_MAX_LEN)
    transaction_date: Optional[dt.date] = None
    tags: Optional[List[str]] = None
    is_recurring: Optional[bool] = None


class TransactionView(BaseModel):
    """Flattened transaction row with display names for its links."""
    id: int
    account_id: int
    category_id: Optional[int] = None
    amount: Decimal
    type: TransactionType
    merchant: Optional[str] = None
    description: Optional[str] = None
    transaction_date: dt.date
    source: TransactionSource
    category_name: str
    category_icon: Optional[str] = None
    account_name: str


# Budgets

class BudgetCreate(BoundaryMixin, SQLModel):
    name: str = Field(min_length=1, max_length=NAME_MAX_LEN)
    amount: Decimal = Field(gt=0)
    category_id: Optional[int] = None
    account_id: Optional[int] = None
    period: BudgetPeriod = BudgetPeriod.monthly
    # None means today in the user's timezone
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None
    alert_at_percentage: int = Field(default=80, ge=0, le=100)
    auto_adjust: bool = False

    @field_validator("end_date")
    @classmethod
    def check_end_date(cls, v, info):
        start = info.data.get("start_date")
        if v is not None and start is not None and v < start:
            raise ValueError("end_date must not be before start_date")
        return v


class BudgetUpdate(BoundaryMixin, SQLModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=NAME_MAX_LEN)
    amount: Optional[Decimal] = Field(default=None, gt=0)
    category_id: Optional[int] = None
    account_id: Optional[int] = None
    period: Optional[BudgetPeriod] = None
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None
    alert_at_percentage: Optional[int] = Field(default=None, ge=0, le=100)
    auto_adjust: Optional[bool] = None
    is_active: Optional[bool] = None


class BudgetStatusRead(BaseModel):
    budget_id: int
    name: str
    category_id: Optional[int] = None
    account_id: Optional[int] = None
    limit: Decimal
    spent: Decimal
    remaining: Decimal
    percentage: float
    alert_at_percentage: int
    alert: bool


# Goals

class GoalCreate(BoundaryMixin, SQLModel):
    name: str = Field(min_length=1, max_length=NAME_MAX_LEN)
    description: Optional[str] = Field(default=None, max_length=TEXT_MAX_LEN)
    target_amount: Decimal = Field(gt=0)
    current_amount: Decimal = Field(default=Decimal("0"), ge=0)
    target_date: Optional[dt.date] = None
    icon: Optional[str] = None
    color: Optional[str] = None
    priority: int = 0


class GoalUpdate(BoundaryMixin, SQLModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=NAME_MAX_LEN)
    description: Optional[str] = Field(default=None, max_length=TEXT_MAX_LEN)
    target_amount: Optional[Decimal] = Field(default=None, gt=0)
    current_amount: Optional[Decimal] = Field(default=None, ge=0)
    target_date: Optional[dt.date] = None
    icon: Optional[str] = None
    color: Optional[str] = None
    priority: Optional[int] = None
    is_completed: Optional[bool] = None


class GoalProgressRead(BaseModel):
    goal_id: int
    name: str
    target_amount: Decimal
    current_amount: Decimal
    progress_percentage: float
    is_completed: bool


# Subscriptions

class SubscriptionCreate(BoundaryMixin, SQLModel):
    name: str = Field(min_length=1, max_length=NAME_MAX_LEN)
    amount: Decimal = Field(gt=0)
    billing_cycle: BillingCycle
    next_billing_date: dt.date
    account_id: Optional[int] = None
    category_id: Optional[int] = None
    merchant: Optional[str] = Field(default=None, max_length=NAME_MAX_LEN)
    description: Optional[str] = Field(default=None, max_length=TEXT_MAX_LEN)
    remind_days_before: int = Field(default=3, ge=0)


class SubscriptionUpdate(BoundaryMixin, SQLModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=NAME_MAX_LEN)
    amount: Optional[Decimal] = Field(default=None, gt=0)
    billing_cycle: Optional[BillingCycle] = None
    next_billing_date: Optional[dt.date] = None
    account_id: Optional[int] = None
    category_id: Optional[int] = None
    merchant: Optional[str] = Field(default=None, max_length=NAME_MAX_LEN)
    description: Optional[str] = Field(default=None, max_length=TEXT_MAX_LEN)
    remind_days_before: Optional[int] = Field(default=None, ge=0)
    is_active: Optional[bool] = None


class SubscriptionDueRead(BaseModel):
    subscription_id: int
    name: str
    amount: Decimal
    billing_cycle: BillingCycle
    next_billing_date: dt.date
    due_in_days: int
    due_soon: bool
    monthly_cost: Decimal


class SubscriptionOverviewRead(BaseModel):
    total_monthly_cost: Decimal
    subscriptions: List[SubscriptionDueRead]


# Loans

class LoanCreate(BoundaryMixin, SQLModel):
    name: str = Field(min_length=1, max_length=NAME_MAX_LEN)
    principal_amount: Decimal = Field(gt=0)
    remaining_amount: Decimal = Field(ge=0)
    interest_rate: Optional[Decimal] = Field(default=None, ge=0, lt=1000)
    emi_amount: Optional[Decimal] = Field(default=None, ge=0)
    emi_day: Optional[int] = Field(default=None, ge=1, le=31)
    start_date: dt.date
    end_date: Optional[dt.date] = None
    account_id: Optional[int] = None
    lender: Optional[str] = None
    loan_type: Optional[str] = None


class LoanUpdate(BoundaryMixin, SQLModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=NAME_MAX_LEN)
    principal_amount: Optional[Decimal] = Field(default=None, gt=0)
    remaining_amount: Optional[Decimal] = Field(default=None, ge=0)
    interest_rate: Optional[Decimal] = Field(default=None, ge=0, lt=1000)
    emi_amount: Optional[Decimal] = Field(default=None, ge=0)
    emi_day: Optional[int] = Field(default=None, ge=1, le=31)
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None
    account_id: Optional[int] = None
    lender: Optional[str] = None
    loan_type: Optional[str] = None


class LoanProgressRead(BaseModel):
    loan_id: int
    name: str
    principal_amount: Decimal
    remaining_amount: Decimal
    paid_off: Decimal
    payoff_percentage: float
    months_remaining: Optional[int] = None


class LoanSummaryRead(BaseModel):
    total_debt: Decimal
    total_principal: Decimal
    total_paid_off: Decimal
    loan_count: int
    loans: List[LoanProgressRead]


# Investments

class InvestmentCreate(BoundaryMixin, SQLModel):
    name: str = Field(min_length=1, max_length=NAME_MAX_LEN)
    type: InvestmentType
    quantity: Optional[Decimal] = Field(default=None, ge=0)
    purchase_price: Optional[Decimal] = Field(default=None, ge=0)
    current_price: Optional[Decimal] = Field(default=None, ge=0)
    purchase_date: Optional[dt.date] = None
    account_id: Optional[int] = None
    symbol: Optional[str] = None
    notes: Optional[str] = Field(default=None, max_length=TEXT_MAX_LEN)


class InvestmentUpdate(BoundaryMixin, SQLModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=NAME_MAX_LEN)
    type: Optional[InvestmentType] = None
    quantity: Optional[Decimal] = Field(default=None, ge=0)
    purchase_price: Optional[Decimal] = Field(default=None, ge=0)
    current_price: Optional[Decimal] = Field(default=None, ge=0)
    purchase_date: Optional[dt.date] = None
    account_id: Optional[int] = None
    symbol: Optional[str] = None
    notes: Optional[str] = Field(default=None, max_length=TEXT_MAX_LEN)


class InvestmentPerformanceRead(BaseModel):
    investment_id: int
    name: str
    type: InvestmentType
    invested_value: Decimal
    current_value: Decimal
    gain: Decimal
    gain_percentage: float


class PortfolioSummaryRead(BaseModel):
    total_invested: Decimal
    total_current_value: Decimal
    total_gain: Decimal
    total_gain_percentage: float
    holdings: List[InvestmentPerformanceRead]


# Receipts

class ReceiptCreate(BoundaryMixin, SQLModel):
    image_url: str = Field(min_length=1)
    parsed_amount: Optional[Decimal] = Field(default=None, ge=0)
    parsed_merchant: Optional[str] = None
    parsed_date: Optional[dt.date] = None


# Dashboard / stats

class DashboardStats(BaseModel):
    total_balance: Decimal
    monthly_income: Decimal
    monthly_expense: Decimal
    net_cash_flow: Decimal
    savings_rate: float
    overspending: bool


class DashboardRead(BaseModel):
    stats: DashboardStats
    recent_transactions: List[TransactionView]
    budget_alerts: List[BudgetStatusRead]


class SummaryRead(BaseModel):
    date_from: Optional[dt.date] = None
    date_to: Optional[dt.date] = None
    income_total: Decimal
    expense_total: Decimal
    net: Decimal


# User & Auth schemas

class UserRead(SQLModel):
    """Response model for a user."""
    id: int
    username: str


class UserCreate(SQLModel):
    """Payload for creating a user."""
    username: str
    password: str


class UserLogin(SQLModel):
    """Payload for logging in."""
    username: str
    password: str


class Token(BaseModel):
    """Token response model."""
    access_token: str
    token_type: str


class UsernameChange(BaseModel):
    """Payload to change username."""
    new_username: str


class PasswordChange(BaseModel):
    """Payload to change password."""
    current_password: str
    new_password: str
