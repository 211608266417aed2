from typing import List, Optional
from decimal import Decimal
from enum import Enum
import datetime as dt
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field
from sqlalchemy import Column, DateTime, JSON

from config import DEFAULT_CURRENCY, DEFAULT_TIMEZONE

# Money columns are NUMERIC(15, 2); quantities allow 6 decimal places.
MONEY = dict(max_digits=15, decimal_places=2)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# Timestamps are stored timezone-aware, always in UTC.
def timestamp_field():
    return Field(default_factory=utcnow, sa_type=DateTime(timezone=True))


# Closed enumerations. Member names match the API values (`import_` aside,
# since `import` is a keyword).

class AccountType(str, Enum):
    cash = "cash"
    bank = "bank"
    credit_card = "credit_card"
    upi = "upi"
    investment = "investment"
    loan = "loan"
    other = "other"


class CategoryType(str, Enum):
    income = "income"
    expense = "expense"


class TransactionType(str, Enum):
    income = "income"
    expense = "expense"
    transfer = "transfer"


class TransactionSource(str, Enum):
    manual = "manual"
    sms = "sms"
    ocr = "ocr"
    import_ = "import"
    api = "api"


class BudgetPeriod(str, Enum):
    daily = "daily"
    weekly = "weekly"
    monthly = "monthly"
    yearly = "yearly"
    custom = "custom"


class BillingCycle(str, Enum):
    daily = "daily"
    weekly = "weekly"
    monthly = "monthly"
    quarterly = "quarterly"
    yearly = "yearly"


class InvestmentType(str, Enum):
    stocks = "stocks"
    mutual_funds = "mutual_funds"
    crypto = "crypto"
    gold = "gold"
    real_estate = "real_estate"
    other = "other"


# These classes describe what is stored in the database.
# Each class = one table; every row except system categories belongs to one user.

class User(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(index=True, unique=True)
    hashed_password: str
    created_at: datetime = timestamp_field()


class Profile(SQLModel, table=True):
    """Per-user preferences. Shares its primary key with the user."""
    id: Optional[int] = Field(
        default=None, primary_key=True, foreign_key="user.id", ondelete="CASCADE"
    )
    email: Optional[str] = None
    phone: Optional[str] = None
    full_name: Optional[str] = None
    timezone: str = DEFAULT_TIMEZONE
    currency: str = Field(default=DEFAULT_CURRENCY, min_length=3, max_length=3)
    plan_type: str = "free"
    created_at: datetime = timestamp_field()
    updated_at: datetime = timestamp_field()


class Account(SQLModel, table=True):
    """A wallet: bank account, cash, card, UPI handle...

    `balance` is a stored running total. It only moves when a transaction
    is recorded against the account; it is never recomputed from history.
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True, ondelete="CASCADE")
    name: str
    type: AccountType
    provider: Optional[str] = None
    account_number: Optional[str] = None
    balance: Decimal = Field(default=Decimal("0"), **MONEY)
    currency: str = DEFAULT_CURRENCY
    color: str = "#10b981"
    icon: str = "💳"
    is_active: bool = Field(default=True, index=True)
    created_at: datetime = timestamp_field()
    updated_at: datetime = timestamp_field()


class Category(SQLModel, table=True):
    """Income or expense category.
    System categories have no owner and are visible to everyone.
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: Optional[int] = Field(
        default=None, foreign_key="user.id", index=True, ondelete="CASCADE"
    )
    name: str = Field(min_length=1, max_length=80)
    type: CategoryType
    icon: str = "📁"
    color: str = "#6366f1"
    parent_id: Optional[int] = Field(
        default=None, foreign_key="category.id", ondelete="SET NULL"
    )
    is_system: bool = False
    keywords: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    created_at: datetime = timestamp_field()
    updated_at: datetime = timestamp_field()


class Receipt(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True, ondelete="CASCADE")
    image_url: str
    parsed_amount: Optional[Decimal] = Field(default=None, **MONEY)
    parsed_merchant: Optional[str] = None
    parsed_date: Optional[dt.date] = None
    processed: bool = False
    created_at: datetime = timestamp_field()


class Transaction(SQLModel, table=True):
    """A single movement of money on one account.
    - 'amount' is never negative, 'type' carries the direction
    - 'category_id' is optional and is cleared when the category is deleted
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True, ondelete="CASCADE")
    account_id: int = Field(foreign_key="account.id", index=True, ondelete="CASCADE")
    category_id: Optional[int] = Field(
        default=None, foreign_key="category.id", index=True, ondelete="SET NULL"
    )
    receipt_id: Optional[int] = Field(
        default=None, foreign_key="receipt.id", ondelete="SET NULL"
    )
    amount: Decimal = Field(ge=0, **MONEY)
    type: TransactionType
    merchant: Optional[str] = None
    description: Optional[str] = None
    transaction_date: dt.date = Field(default_factory=dt.date.today, index=True)
    tags: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    source: TransactionSource = TransactionSource.manual
    is_recurring: bool = False
    created_at: datetime = timestamp_field()
    updated_at: datetime = timestamp_field()


class Budget(SQLModel, table=True):
    """Spending limit for a category or an account (or everything when neither is set)."""
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True, ondelete="CASCADE")
    category_id: Optional[int] = Field(
        default=None, foreign_key="category.id", ondelete="SET NULL"
    )
    account_id: Optional[int] = Field(
        default=None, foreign_key="account.id", ondelete="CASCADE"
    )
    name: str
    amount: Decimal = Field(ge=0, **MONEY)
    period: BudgetPeriod = BudgetPeriod.monthly
    start_date: dt.date = Field(default_factory=dt.date.today)
    end_date: Optional[dt.date] = None
    alert_at_percentage: int = 80
    auto_adjust: bool = False
    is_active: bool = Field(default=True, index=True)
    created_at: datetime = timestamp_field()
    updated_at: datetime = timestamp_field()


class Goal(SQLModel, table=True):
    """Savings goal. `is_completed` is set by the user, never derived."""
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True, ondelete="CASCADE")
    name: str
    description: Optional[str] = None
    target_amount: Decimal = Field(**MONEY)
    current_amount: Decimal = Field(default=Decimal("0"), **MONEY)
    target_date: Optional[dt.date] = None
    icon: str = "🎯"
    color: str = "#f59e0b"
    priority: int = 0
    is_completed: bool = False
    created_at: datetime = timestamp_field()
    updated_at: datetime = timestamp_field()


class Subscription(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True, ondelete="CASCADE")
    account_id: Optional[int] = Field(
        default=None, foreign_key="account.id", ondelete="CASCADE"
    )
    category_id: Optional[int] = Field(
        default=None, foreign_key="category.id", ondelete="SET NULL"
    )
    name: str
    amount: Decimal = Field(ge=0, **MONEY)
    billing_cycle: BillingCycle
    next_billing_date: dt.date
    merchant: Optional[str] = None
    description: Optional[str] = None
    is_active: bool = True
    remind_days_before: int = 3
    created_at: datetime = timestamp_field()
    updated_at: datetime = timestamp_field()


class Loan(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True, ondelete="CASCADE")
    account_id: Optional[int] = Field(
        default=None, foreign_key="account.id", ondelete="SET NULL"
    )
    name: str
    principal_amount: Decimal = Field(**MONEY)
    remaining_amount: Decimal = Field(**MONEY)
    interest_rate: Optional[Decimal] = Field(default=None, max_digits=5, decimal_places=2)
    emi_amount: Optional[Decimal] = Field(default=None, **MONEY)
    emi_day: Optional[int] = None
    start_date: dt.date
    end_date: Optional[dt.date] = None
    lender: Optional[str] = None
    loan_type: Optional[str] = None
    created_at: datetime = timestamp_field()
    updated_at: datetime = timestamp_field()


class Investment(SQLModel, table=True):
    """Holding with manually maintained prices (no price refresh)."""
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True, ondelete="CASCADE")
    account_id: Optional[int] = Field(
        default=None, foreign_key="account.id", ondelete="SET NULL"
    )
    name: str
    type: InvestmentType
    quantity: Optional[Decimal] = Field(default=None, max_digits=15, decimal_places=6)
    purchase_price: Optional[Decimal] = Field(default=None, **MONEY)
    current_price: Optional[Decimal] = Field(default=None, **MONEY)
    purchase_date: Optional[dt.date] = None
    symbol: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime = timestamp_field()
    updated_at: datetime = timestamp_field()
