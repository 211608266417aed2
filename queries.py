"""Per-user data access.

Every accessor takes the caller's user id explicitly and only ever touches
rows that user owns (plus read access to system categories).

List accessors never raise on database errors: the failure is logged and an
empty list comes back, so a view renders its empty state instead of crashing.
"""
import datetime as dt
from decimal import Decimal
from typing import Any, Callable, Iterable, Optional, Type, TypeVar

from sqlalchemy import or_, update
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, SQLModel, select

from logging_config import get_logger
from models import (
    Account,
    AccountType,
    Budget,
    Category,
    CategoryType,
    Goal,
    Investment,
    Loan,
    Receipt,
    Subscription,
    Transaction,
    TransactionType,
    utcnow,
)
from utils import filter_transactions

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=SQLModel)

UNCATEGORIZED = "Uncategorized"
UNKNOWN_ACCOUNT = "Unknown"


def _fetch(session: Session, label: str, user_id: int, run: Callable[[], Iterable[Any]]) -> list:
    try:
        return list(run())
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Error loading %s for user %s", label, user_id)
        return []


# ---------- generic owned-row helpers ----------

def get_owned(session: Session, model: Type[ModelT], row_id: int, user_id: int) -> Optional[ModelT]:
    """Fetch a row by id, or None when missing or owned by someone else."""
    row = session.get(model, row_id)
    if row is None or getattr(row, "user_id", None) != user_id:
        return None
    return row


def get_visible_category(session: Session, category_id: int, user_id: int) -> Optional[Category]:
    """A category the user may reference: their own or a system one."""
    category = session.get(Category, category_id)
    if category is None:
        return None
    if category.is_system or category.user_id == user_id:
        return category
    return None


def apply_updates(instance: ModelT, data: dict[str, Any]) -> ModelT:
    for field, value in data.items():
        setattr(instance, field, value)
    if hasattr(instance, "updated_at"):
        instance.updated_at = utcnow()
    return instance


# ---------- list accessors ----------

def list_accounts(
    session: Session,
    user_id: int,
    include_inactive: bool = False,
    account_type: Optional[AccountType] = None,
) -> list[Account]:
    stmt = select(Account).where(Account.user_id == user_id)
    if not include_inactive:
        stmt = stmt.where(Account.is_active == True)  # noqa: E712
    if account_type is not None:
        stmt = stmt.where(Account.type == account_type)
    stmt = stmt.order_by(Account.created_at.desc(), Account.id.desc())
    return _fetch(session, "accounts", user_id, lambda: session.exec(stmt).all())


def list_categories(
    session: Session,
    user_id: int,
    category_type: Optional[CategoryType] = None,
) -> list[Category]:
    """The user's own categories plus the shared system presets, by name."""
    stmt = select(Category).where(
        or_(Category.user_id == user_id, Category.is_system == True)  # noqa: E712
    )
    if category_type is not None:
        stmt = stmt.where(Category.type == category_type)
    stmt = stmt.order_by(Category.name)
    return _fetch(session, "categories", user_id, lambda: session.exec(stmt).all())


def list_transactions(
    session: Session,
    user_id: int,
    date_from: Optional[dt.date] = None,
    date_to: Optional[dt.date] = None,
    tx_type: Optional[TransactionType] = None,
    account_id: Optional[int] = None,
    category_id: Optional[int] = None,
    query: Optional[str] = None,
    limit: Optional[int] = None,
) -> list[Transaction]:
    """Newest first. Date bounds are inclusive."""
    stmt = select(Transaction).where(Transaction.user_id == user_id)
    if date_from is not None:
        stmt = stmt.where(Transaction.transaction_date >= date_from)
    if date_to is not None:
        stmt = stmt.where(Transaction.transaction_date <= date_to)
    if tx_type is not None:
        stmt = stmt.where(Transaction.type == tx_type)
    if account_id is not None:
        stmt = stmt.where(Transaction.account_id == account_id)
    if category_id is not None:
        stmt = stmt.where(Transaction.category_id == category_id)
    stmt = stmt.order_by(
        Transaction.transaction_date.desc(),
        Transaction.created_at.desc(),
        Transaction.id.desc(),
    )
    if limit is not None and not query:
        stmt = stmt.limit(limit)

    rows = _fetch(session, "transactions", user_id, lambda: session.exec(stmt).all())
    if query:
        rows = filter_transactions(rows, query=query)
        if limit is not None:
            rows = rows[:limit]
    return rows


def recent_transactions(session: Session, user_id: int, limit: int = 5) -> list[dict[str, Any]]:
    """Latest transactions flattened with their category and account names."""
    stmt = (
        select(Transaction, Category, Account)
        .join(Category, Transaction.category_id == Category.id, isouter=True)
        .join(Account, Transaction.account_id == Account.id, isouter=True)
        .where(Transaction.user_id == user_id)
        .order_by(
            Transaction.transaction_date.desc(),
            Transaction.created_at.desc(),
            Transaction.id.desc(),
        )
        .limit(limit)
    )
    rows = _fetch(session, "recent transactions", user_id, lambda: session.exec(stmt).all())
    return [to_transaction_view(t, category, account) for t, category, account in rows]


def to_transaction_view(
    t: Transaction,
    category: Optional[Category],
    account: Optional[Account],
) -> dict[str, Any]:
    return {
        "id": t.id,
        "account_id": t.account_id,
        "category_id": t.category_id,
        "amount": t.amount,
        "type": t.type,
        "merchant": t.merchant,
        "description": t.description,
        "transaction_date": t.transaction_date,
        "source": t.source,
        "category_name": category.name if category else UNCATEGORIZED,
        "category_icon": category.icon if category else None,
        "account_name": account.name if account else UNKNOWN_ACCOUNT,
    }


def list_budgets(session: Session, user_id: int, active_only: bool = False) -> list[Budget]:
    stmt = select(Budget).where(Budget.user_id == user_id)
    if active_only:
        stmt = stmt.where(Budget.is_active == True)  # noqa: E712
    stmt = stmt.order_by(Budget.name)
    return _fetch(session, "budgets", user_id, lambda: session.exec(stmt).all())


def list_goals(session: Session, user_id: int) -> list[Goal]:
    stmt = (
        select(Goal)
        .where(Goal.user_id == user_id)
        .order_by(Goal.priority.desc(), Goal.created_at)
    )
    return _fetch(session, "goals", user_id, lambda: session.exec(stmt).all())


def list_subscriptions(session: Session, user_id: int, active_only: bool = False) -> list[Subscription]:
    stmt = select(Subscription).where(Subscription.user_id == user_id)
    if active_only:
        stmt = stmt.where(Subscription.is_active == True)  # noqa: E712
    stmt = stmt.order_by(Subscription.next_billing_date)
    return _fetch(session, "subscriptions", user_id, lambda: session.exec(stmt).all())


def list_loans(session: Session, user_id: int) -> list[Loan]:
    """Loans by end date, open-ended ones first."""
    stmt = (
        select(Loan)
        .where(Loan.user_id == user_id)
        .order_by(Loan.end_date.asc().nulls_first(), Loan.id)
    )
    return _fetch(session, "loans", user_id, lambda: session.exec(stmt).all())


def list_investments(session: Session, user_id: int) -> list[Investment]:
    stmt = select(Investment).where(Investment.user_id == user_id).order_by(Investment.name)
    return _fetch(session, "investments", user_id, lambda: session.exec(stmt).all())


def list_receipts(session: Session, user_id: int) -> list[Receipt]:
    stmt = (
        select(Receipt)
        .where(Receipt.user_id == user_id)
        .order_by(Receipt.created_at.desc())
    )
    return _fetch(session, "receipts", user_id, lambda: session.exec(stmt).all())


# ---------- mutations ----------

def balance_delta(tx_type: TransactionType, amount: Decimal) -> Decimal:
    """Signed effect of a transaction on its account: income credits, the rest debits."""
    return amount if tx_type == TransactionType.income else -amount


def record_transaction(session: Session, user_id: int, data: dict[str, Any]) -> Transaction:
    """Insert a transaction and move its account balance in one database transaction.

    The balance change is an UPDATE ... SET balance = balance + :delta evaluated
    by the database, so two concurrent inserts on one account cannot lose an
    update. Raises SQLAlchemyError after rolling back if anything fails.
    """
    tx = Transaction(user_id=user_id, **data)
    delta = balance_delta(tx.type, tx.amount)
    try:
        session.add(tx)
        session.exec(
            update(Account)
            .where(Account.id == tx.account_id, Account.user_id == user_id)
            .values(balance=Account.balance + delta, updated_at=utcnow())
        )
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        raise

    session.refresh(tx)
    account = session.get(Account, tx.account_id)
    if account is not None:
        session.refresh(account)
        logger.debug(
            "Account %s balance moved by %s to %s", account.id, delta, account.balance
        )
    return tx


def delete_account(session: Session, account: Account) -> None:
    """Hard delete: the account's transactions, budgets and subscriptions go with it;
    loans and investments keep existing without an account link."""
    for model in (Transaction, Budget, Subscription):
        for row in session.exec(select(model).where(model.account_id == account.id)).all():
            session.delete(row)
    for model in (Loan, Investment):
        session.exec(
            update(model).where(model.account_id == account.id).values(account_id=None)
        )
    session.delete(account)
    session.commit()


def delete_category(session: Session, category: Category) -> None:
    """Delete a category; rows that referenced it become uncategorized."""
    for model in (Transaction, Budget, Subscription):
        session.exec(
            update(model)
            .where(model.category_id == category.id)
            .values(category_id=None)
        )
    session.exec(
        update(Category).where(Category.parent_id == category.id).values(parent_id=None)
    )
    session.delete(category)
    session.commit()


def delete_receipt(session: Session, receipt: Receipt) -> None:
    session.exec(
        update(Transaction)
        .where(Transaction.receipt_id == receipt.id)
        .values(receipt_id=None)
    )
    session.delete(receipt)
    session.commit()
