"""Main FastAPI application for the Finance Tracker."""
import time
import datetime as dt
from contextlib import asynccontextmanager
from typing import Any, Optional, Type
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fastapi import FastAPI, HTTPException, Depends, Query, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from prometheus_fastapi_instrumentator import Instrumentator
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlmodel import SQLModel, create_engine, Session, select

import aggregation
import queries
from config import (
    APP_NAME,
    APP_VERSION,
    DATABASE_URL,
    DB_CONNECT_DELAY,
    DB_CONNECT_RETRIES,
    DEFAULT_TIMEZONE,
    RECENT_TRANSACTIONS_LIMIT,
)
from logging_config import get_logger, setup_logging
from models import (
    Account,
    AccountType,
    Budget,
    Category,
    CategoryType,
    Goal,
    Investment,
    Loan,
    Profile,
    Receipt,
    Subscription,
    Transaction,
    TransactionType,
    User,
)
from schemas import (
    AccountCreate,
    AccountUpdate,
    BudgetCreate,
    BudgetStatusRead,
    BudgetUpdate,
    CategoryCreate,
    CategoryUpdate,
    DashboardRead,
    GoalCreate,
    GoalProgressRead,
    GoalUpdate,
    InvestmentCreate,
    InvestmentUpdate,
    LoanCreate,
    LoanSummaryRead,
    LoanUpdate,
    PasswordChange,
    PortfolioSummaryRead,
    ProfileRead,
    ProfileUpdate,
    ReceiptCreate,
    SubscriptionCreate,
    SubscriptionOverviewRead,
    SubscriptionUpdate,
    SummaryRead,
    Token,
    TransactionCreate,
    TransactionUpdate,
    TransactionView,
    UserCreate,
    UserLogin,
    UserRead,
    UsernameChange,
)
from seed import seed_system_categories
from auth import (
    verify_password,
    get_password_hash,
    create_access_token,
    decode_access_token,
)

setup_logging()
logger = get_logger(__name__)

if DATABASE_URL.startswith("sqlite"):
    connect_args = {"check_same_thread": False}
else:
    connect_args = {}

engine = create_engine(
    DATABASE_URL,
    connect_args=connect_args,
    echo=False,
)


def init_database() -> None:
    """
    Run once when the app starts:
    - Wait for the database to be ready
    - Create tables
    - Seed system categories
    """
    last_exc: Optional[Exception] = None

    for attempt in range(1, DB_CONNECT_RETRIES + 1):
        try:
            SQLModel.metadata.create_all(engine)
            with Session(engine) as session:
                seed_system_categories(session)
            logger.info("Database ready, tables created, categories seeded.")
            return
        except OperationalError as exc:
            last_exc = exc
            logger.warning(
                "DB not ready yet (attempt %d/%d); waiting %ss...",
                attempt, DB_CONNECT_RETRIES, DB_CONNECT_DELAY,
            )
            time.sleep(DB_CONNECT_DELAY)

    logger.error("Giving up connecting to the database.")
    if last_exc:
        raise last_exc
    raise RuntimeError("Database not reachable on startup.")


@asynccontextmanager
async def lifespan(_: FastAPI):
    init_database()
    yield


app = FastAPI(title="Finance Tracker", version=APP_VERSION, lifespan=lifespan)

# Prometheus metrics at /metrics
instrumentator = Instrumentator().instrument(app)
instrumentator.expose(app, include_in_schema=False)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


@app.get("/")
def root():
    return {"message": "Finance Tracker API is running. See /health for status."}


@app.get("/health")
def health():
    return {
        "status": "ok",
        "timestamp": dt.datetime.now(dt.timezone.utc).isoformat(),
        "app": APP_NAME,
        "version": APP_VERSION,
    }


def get_session():
    """Provide a database session per request."""
    with Session(engine) as session:
        yield session


def get_user_by_username(session: Session, username: str) -> User | None:
    """Fetch a user by username or return None."""
    stmt = select(User).where(User.username == username)
    return session.exec(stmt).first()


def save_and_refresh(session: Session, instance):
    """Persist and refresh an instance; a failed write becomes a 400."""
    try:
        session.add(instance)
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        logger.exception("Failed to save %s", type(instance).__name__)
        raise HTTPException(status_code=400, detail="Could not save changes") from exc
    session.refresh(instance)
    return instance


def get_owned_or_404(session: Session, model: Type, row_id: int, user: User, label: str):
    row = queries.get_owned(session, model, row_id, user.id)
    if row is None:
        raise HTTPException(status_code=404, detail=f"{label} not found")
    return row


def check_links(session: Session, user: User, data: dict[str, Any]) -> None:
    """Reject references to accounts/categories/receipts the user cannot see."""
    if data.get("account_id") is not None:
        if queries.get_owned(session, Account, data["account_id"], user.id) is None:
            raise HTTPException(status_code=400, detail="Account not found")
    if data.get("category_id") is not None:
        if queries.get_visible_category(session, data["category_id"], user.id) is None:
            raise HTTPException(status_code=400, detail="Category not found")
    if data.get("receipt_id") is not None:
        if queries.get_owned(session, Receipt, data["receipt_id"], user.id) is None:
            raise HTTPException(status_code=400, detail="Receipt not found")


def utc_now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def user_now(session: Session, user: User) -> dt.datetime:
    """Current time in the timezone of the user's profile.

    Month windows and due dates are calendar questions, so they follow the
    user's clock, not the server's.
    """
    profile = session.get(Profile, user.id)
    tz_name = profile.timezone if profile is not None else DEFAULT_TIMEZONE
    try:
        tz = ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(
            "Unknown timezone %r for user %s, falling back to %s",
            tz_name, user.id, DEFAULT_TIMEZONE,
        )
        tz = ZoneInfo(DEFAULT_TIMEZONE)
    return utc_now().astimezone(tz)


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    session: Session = Depends(get_session),
) -> User:
    """Resolve the current user from a bearer token."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = decode_access_token(token)
        username: str | None = payload.get("sub")
        if username is None:
            raise credentials_exception
    except JWTError:
        raise credentials_exception

    user = get_user_by_username(session, username=username)
    if user is None:
        raise credentials_exception
    return user


# AUTH ENDPOINTS
@app.post("/auth/register", response_model=UserRead, status_code=201)
def register_user(
    user_in: UserCreate,
    session: Session = Depends(get_session),
):
    """Register a new user and create their profile."""
    existing = get_user_by_username(session, user_in.username)
    if existing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Username already registered",
        )

    try:
        hashed = get_password_hash(user_in.password)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    user = save_and_refresh(session, User(username=user_in.username, hashed_password=hashed))
    save_and_refresh(session, Profile(id=user.id))
    return user


@app.post("/auth/login", response_model=Token)
def login(
    user_in: UserLogin,
    session: Session = Depends(get_session),
):
    """Authenticate a user and return a bearer token."""
    user = get_user_by_username(session, user_in.username)
    if not user or not verify_password(user_in.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Incorrect username or password",
        )

    access_token = create_access_token({"sub": user.username})
    return {"access_token": access_token, "token_type": "bearer"}


@app.get("/auth/me")
def read_current_user(current_user: User = Depends(get_current_user)):
    """Return the current authenticated user."""
    return {
        "id": current_user.id,
        "username": current_user.username,
        "created_at": current_user.created_at,
    }


@app.post("/auth/change-username")
def change_username(
    payload: UsernameChange,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """Change the current user's username and return a fresh token."""
    existing = get_user_by_username(session, payload.new_username)
    if existing:
        raise HTTPException(status_code=400, detail="Username already in use.")

    current_user.username = payload.new_username
    save_and_refresh(session, current_user)

    new_token = create_access_token(
        {"sub": current_user.username, "user_id": current_user.id}
    )

    return {
        "message": "username-updated",
        "access_token": new_token,
        "token_type": "bearer",
    }


@app.post("/auth/change-password")
def change_password(
    payload: PasswordChange,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """Change the current user's password."""
    if not verify_password(payload.current_password, current_user.hashed_password):
        raise HTTPException(status_code=400, detail="Current password is incorrect.")

    try:
        current_user.hashed_password = get_password_hash(payload.new_password)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    save_and_refresh(session, current_user)

    return {"message": "password-updated"}


# PROFILE
@app.get("/api/profile", response_model=ProfileRead)
def read_profile(
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    profile = session.get(Profile, current_user.id)
    if profile is None:
        # users created before profiles existed
        profile = save_and_refresh(session, Profile(id=current_user.id))
    return profile


@app.patch("/api/profile", response_model=ProfileRead)
def update_profile(
    payload: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    profile = session.get(Profile, current_user.id) or Profile(id=current_user.id)
    queries.apply_updates(profile, payload.model_dump(exclude_unset=True))
    return save_and_refresh(session, profile)


# ACCOUNT ENDPOINTS

# Active accounts, newest first. Archived ones only on request.
@app.get("/api/accounts", response_model=list[Account])
def list_accounts(
    include_inactive: bool = False,
    type: Optional[AccountType] = None,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return queries.list_accounts(session, current_user.id, include_inactive, type)


@app.post("/api/accounts", response_model=Account, status_code=201)
def create_account(
    payload: AccountCreate,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    data = payload.model_dump(exclude_none=True)
    return save_and_refresh(session, Account(user_id=current_user.id, **data))


@app.patch("/api/accounts/{account_id}", response_model=Account)
def update_account(
    account_id: int,
    payload: AccountUpdate,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """Edit an account. Setting is_active=false archives it."""
    account = get_owned_or_404(session, Account, account_id, current_user, "Account")
    queries.apply_updates(account, payload.model_dump(exclude_unset=True))
    return save_and_refresh(session, account)


@app.delete("/api/accounts/{account_id}", status_code=204)
def delete_account(
    account_id: int,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """Delete an account together with its transactions."""
    account = get_owned_or_404(session, Account, account_id, current_user, "Account")
    queries.delete_account(session, account)
    return None


# CATEGORY ENDPOINTS

# Own + system categories, sorted by name, optionally one direction only.
@app.get("/api/categories", response_model=list[Category])
def list_categories(
    type: Optional[CategoryType] = None,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return queries.list_categories(session, current_user.id, type)


def _name_taken(
    session: Session,
    user: User,
    name: str,
    category_type: CategoryType,
    exclude_id: Optional[int] = None,
) -> bool:
    return any(
        c.name == name and c.id != exclude_id
        for c in queries.list_categories(session, user.id, category_type)
    )


def get_own_category_or_error(session: Session, category_id: int, user: User) -> Category:
    category = queries.get_visible_category(session, category_id, user.id)
    if category is None:
        raise HTTPException(status_code=404, detail="Category not found")
    if category.is_system:
        raise HTTPException(status_code=403, detail="System categories cannot be changed")
    return category


@app.post("/api/categories", response_model=Category, status_code=201)
def create_category(
    payload: CategoryCreate,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """Create a user category. Names are unique per direction."""
    if _name_taken(session, current_user, payload.name, payload.type):
        raise HTTPException(status_code=400, detail="Category already exists")
    if payload.parent_id is not None:
        check_links(session, current_user, {"category_id": payload.parent_id})

    data = payload.model_dump(exclude_none=True)
    return save_and_refresh(session, Category(user_id=current_user.id, **data))


@app.patch("/api/categories/{category_id}", response_model=Category)
def update_category(
    category_id: int,
    payload: CategoryUpdate,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """Edit one of the user's own categories, enforcing name uniqueness."""
    category = get_own_category_or_error(session, category_id, current_user)
    data = payload.model_dump(exclude_unset=True)

    if data.get("name") and _name_taken(
        session, current_user, data["name"], category.type, exclude_id=category_id
    ):
        raise HTTPException(status_code=400, detail="Category with this name already exists")
    if data.get("parent_id") is not None:
        if data["parent_id"] == category_id:
            raise HTTPException(status_code=400, detail="Category cannot be its own parent")
        check_links(session, current_user, {"category_id": data["parent_id"]})

    queries.apply_updates(category, data)
    return save_and_refresh(session, category)


@app.delete("/api/categories/{category_id}", status_code=204)
def delete_category(
    category_id: int,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """Delete a category; transactions, budgets and subscriptions using it become uncategorized."""
    category = get_own_category_or_error(session, category_id, current_user)
    queries.delete_category(session, category)
    return None


# TRANSACTION ENDPOINTS

@app.get("/api/transactions", response_model=list[TransactionView])
def list_transactions(
    date_from: Optional[dt.date] = None,
    date_to: Optional[dt.date] = None,
    type: Optional[TransactionType] = None,
    account_id: Optional[int] = None,
    category_id: Optional[int] = None,
    q: Optional[str] = None,
    limit: Optional[int] = Query(default=None, ge=1, le=1000),
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """Transactions newest first, with category/account names filled in."""
    rows = queries.list_transactions(
        session, current_user.id,
        date_from=date_from, date_to=date_to, tx_type=type,
        account_id=account_id, category_id=category_id, query=q, limit=limit,
    )
    categories = {c.id: c for c in queries.list_categories(session, current_user.id)}
    accounts = {
        a.id: a
        for a in queries.list_accounts(session, current_user.id, include_inactive=True)
    }
    return [
        queries.to_transaction_view(t, categories.get(t.category_id), accounts.get(t.account_id))
        for t in rows
    ]


@app.post("/api/transactions", response_model=Transaction, status_code=201)
def create_transaction(
    payload: TransactionCreate,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """Record a transaction and apply it to the account balance."""
    data = payload.model_dump()
    if data["transaction_date"] is None:
        data["transaction_date"] = user_now(session, current_user).date()
    check_links(session, current_user, data)

    try:
        return queries.record_transaction(session, current_user.id, data)
    except SQLAlchemyError:
        logger.exception("Error adding transaction for user %s", current_user.id)
        raise HTTPException(status_code=400, detail="Failed to add transaction")


@app.patch("/api/transactions/{transaction_id}", response_model=Transaction)
def update_transaction(
    transaction_id: int,
    payload: TransactionUpdate,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """Patch a transaction. Account balances are left as they are."""
    transaction = get_owned_or_404(session, Transaction, transaction_id, current_user, "Transaction")
    data = payload.model_dump(exclude_unset=True)
    check_links(session, current_user, data)
    queries.apply_updates(transaction, data)
    return save_and_refresh(session, transaction)


@app.delete("/api/transactions/{transaction_id}", status_code=204)
def delete_transaction(
    transaction_id: int,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    transaction = get_owned_or_404(session, Transaction, transaction_id, current_user, "Transaction")
    session.delete(transaction)
    session.commit()
    return None


# BUDGET ENDPOINTS

@app.get("/api/budgets", response_model=list[Budget])
def list_budgets(
    active_only: bool = False,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return queries.list_budgets(session, current_user.id, active_only)


def _current_month_expenses(session: Session, user: User, today: dt.date) -> list[Transaction]:
    return queries.list_transactions(
        session, user.id,
        date_from=aggregation.month_start(today),
        date_to=today,
        tx_type=TransactionType.expense,
    )


# Spend vs. limit for each active budget this month.
@app.get("/api/budgets/status", response_model=list[BudgetStatusRead])
def budget_status(
    alerts_only: bool = False,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    today = user_now(session, current_user).date()
    budgets = queries.list_budgets(session, current_user.id, active_only=True)
    expenses = _current_month_expenses(session, current_user, today)
    if alerts_only:
        return aggregation.budget_alerts(budgets, expenses, today)
    return aggregation.budget_statuses(budgets, expenses, today)


def check_budget_period(start: dt.date, end: Optional[dt.date]) -> None:
    if end is not None and end < start:
        raise HTTPException(status_code=422, detail="end_date must not be before start_date")


@app.post("/api/budgets", response_model=Budget, status_code=201)
def create_budget(
    payload: BudgetCreate,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    data = payload.model_dump()
    if data["start_date"] is None:
        data["start_date"] = user_now(session, current_user).date()
    check_budget_period(data["start_date"], data["end_date"])
    check_links(session, current_user, data)
    return save_and_refresh(session, Budget(user_id=current_user.id, **data))


@app.patch("/api/budgets/{budget_id}", response_model=Budget)
def update_budget(
    budget_id: int,
    payload: BudgetUpdate,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    budget = get_owned_or_404(session, Budget, budget_id, current_user, "Budget")
    data = payload.model_dump(exclude_unset=True)
    check_budget_period(
        data.get("start_date") or budget.start_date,
        data["end_date"] if "end_date" in data else budget.end_date,
    )
    check_links(session, current_user, data)
    queries.apply_updates(budget, data)
    return save_and_refresh(session, budget)


@app.delete("/api/budgets/{budget_id}", status_code=204)
def delete_budget(
    budget_id: int,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    budget = get_owned_or_404(session, Budget, budget_id, current_user, "Budget")
    session.delete(budget)
    session.commit()
    return None


# GOAL ENDPOINTS

@app.get("/api/goals", response_model=list[Goal])
def list_goals(
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return queries.list_goals(session, current_user.id)


@app.get("/api/goals/progress", response_model=list[GoalProgressRead])
def goals_progress(
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return [
        {
            "goal_id": goal.id,
            "name": goal.name,
            "target_amount": goal.target_amount,
            "current_amount": goal.current_amount,
            "progress_percentage": aggregation.goal_progress(goal),
            "is_completed": goal.is_completed,
        }
        for goal in queries.list_goals(session, current_user.id)
    ]


@app.post("/api/goals", response_model=Goal, status_code=201)
def create_goal(
    payload: GoalCreate,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    data = payload.model_dump(exclude_none=True)
    return save_and_refresh(session, Goal(user_id=current_user.id, **data))


@app.patch("/api/goals/{goal_id}", response_model=Goal)
def update_goal(
    goal_id: int,
    payload: GoalUpdate,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    goal = get_owned_or_404(session, Goal, goal_id, current_user, "Goal")
    queries.apply_updates(goal, payload.model_dump(exclude_unset=True))
    return save_and_refresh(session, goal)


@app.delete("/api/goals/{goal_id}", status_code=204)
def delete_goal(
    goal_id: int,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    goal = get_owned_or_404(session, Goal, goal_id, current_user, "Goal")
    session.delete(goal)
    session.commit()
    return None


# SUBSCRIPTION ENDPOINTS

@app.get("/api/subscriptions", response_model=list[Subscription])
def list_subscriptions(
    active_only: bool = False,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return queries.list_subscriptions(session, current_user.id, active_only)


# Due-in-days, reminder flag and monthly cost for active subscriptions.
@app.get("/api/subscriptions/upcoming", response_model=SubscriptionOverviewRead)
def upcoming_subscriptions(
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    subscriptions = queries.list_subscriptions(session, current_user.id, active_only=True)
    return aggregation.subscription_overview(subscriptions, user_now(session, current_user))


@app.post("/api/subscriptions", response_model=Subscription, status_code=201)
def create_subscription(
    payload: SubscriptionCreate,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    data = payload.model_dump()
    check_links(session, current_user, data)
    return save_and_refresh(session, Subscription(user_id=current_user.id, **data))


@app.patch("/api/subscriptions/{subscription_id}", response_model=Subscription)
def update_subscription(
    subscription_id: int,
    payload: SubscriptionUpdate,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    subscription = get_owned_or_404(
        session, Subscription, subscription_id, current_user, "Subscription"
    )
    data = payload.model_dump(exclude_unset=True)
    check_links(session, current_user, data)
    queries.apply_updates(subscription, data)
    return save_and_refresh(session, subscription)


@app.delete("/api/subscriptions/{subscription_id}", status_code=204)
def delete_subscription(
    subscription_id: int,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    subscription = get_owned_or_404(
        session, Subscription, subscription_id, current_user, "Subscription"
    )
    session.delete(subscription)
    session.commit()
    return None


# LOAN ENDPOINTS

@app.get("/api/loans", response_model=list[Loan])
def list_loans(
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return queries.list_loans(session, current_user.id)


# Total debt, amount paid off, per-loan payoff % and months remaining.
@app.get("/api/loans/summary", response_model=LoanSummaryRead)
def loans_summary(
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    loans = queries.list_loans(session, current_user.id)
    return aggregation.loan_summary(loans, user_now(session, current_user).date())


@app.post("/api/loans", response_model=Loan, status_code=201)
def create_loan(
    payload: LoanCreate,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    data = payload.model_dump()
    check_links(session, current_user, data)
    return save_and_refresh(session, Loan(user_id=current_user.id, **data))


@app.patch("/api/loans/{loan_id}", response_model=Loan)
def update_loan(
    loan_id: int,
    payload: LoanUpdate,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    loan = get_owned_or_404(session, Loan, loan_id, current_user, "Loan")
    data = payload.model_dump(exclude_unset=True)
    check_links(session, current_user, data)
    queries.apply_updates(loan, data)
    return save_and_refresh(session, loan)


@app.delete("/api/loans/{loan_id}", status_code=204)
def delete_loan(
    loan_id: int,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    loan = get_owned_or_404(session, Loan, loan_id, current_user, "Loan")
    session.delete(loan)
    session.commit()
    return None


# INVESTMENT ENDPOINTS

@app.get("/api/investments", response_model=list[Investment])
def list_investments(
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return queries.list_investments(session, current_user.id)


@app.get("/api/investments/summary", response_model=PortfolioSummaryRead)
def investments_summary(
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return aggregation.portfolio_summary(queries.list_investments(session, current_user.id))


@app.post("/api/investments", response_model=Investment, status_code=201)
def create_investment(
    payload: InvestmentCreate,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    data = payload.model_dump()
    check_links(session, current_user, data)
    return save_and_refresh(session, Investment(user_id=current_user.id, **data))


@app.patch("/api/investments/{investment_id}", response_model=Investment)
def update_investment(
    investment_id: int,
    payload: InvestmentUpdate,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    investment = get_owned_or_404(session, Investment, investment_id, current_user, "Investment")
    data = payload.model_dump(exclude_unset=True)
    check_links(session, current_user, data)
    queries.apply_updates(investment, data)
    return save_and_refresh(session, investment)


@app.delete("/api/investments/{investment_id}", status_code=204)
def delete_investment(
    investment_id: int,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    investment = get_owned_or_404(session, Investment, investment_id, current_user, "Investment")
    session.delete(investment)
    session.commit()
    return None


# RECEIPT ENDPOINTS

@app.get("/api/receipts", response_model=list[Receipt])
def list_receipts(
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return queries.list_receipts(session, current_user.id)


@app.post("/api/receipts", response_model=Receipt, status_code=201)
def create_receipt(
    payload: ReceiptCreate,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return save_and_refresh(session, Receipt(user_id=current_user.id, **payload.model_dump()))


@app.delete("/api/receipts/{receipt_id}", status_code=204)
def delete_receipt(
    receipt_id: int,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    receipt = get_owned_or_404(session, Receipt, receipt_id, current_user, "Receipt")
    queries.delete_receipt(session, receipt)
    return None


# DASHBOARD / STATS

@app.get("/api/dashboard", response_model=DashboardRead)
def dashboard(
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """Total balance, this month's cash flow and savings rate, recent activity, budget alerts."""
    today = user_now(session, current_user).date()
    accounts = queries.list_accounts(session, current_user.id)
    month_transactions = queries.list_transactions(
        session, current_user.id,
        date_from=aggregation.month_start(today), date_to=today,
    )
    budgets = queries.list_budgets(session, current_user.id, active_only=True)

    return {
        "stats": aggregation.dashboard_stats(accounts, month_transactions, today),
        "recent_transactions": queries.recent_transactions(
            session, current_user.id, limit=RECENT_TRANSACTIONS_LIMIT
        ),
        "budget_alerts": aggregation.budget_alerts(budgets, month_transactions, today),
    }


# Income/expense totals and net over an inclusive date range.
@app.get("/api/stats/summary", response_model=SummaryRead)
def get_summary(
    date_from: Optional[dt.date] = None,
    date_to: Optional[dt.date] = None,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    transactions = queries.list_transactions(
        session, current_user.id, date_from=date_from, date_to=date_to
    )
    return {
        "date_from": date_from,
        "date_to": date_to,
        **aggregation.compute_summary(transactions),
    }
