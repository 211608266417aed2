"""System category presets shared by every user."""
from sqlmodel import Session, select

from logging_config import get_logger
from models import Category, CategoryType

logger = get_logger(__name__)

# (name, type, icon, color, keywords). Keywords are stored for auto-categorization.
SYSTEM_CATEGORIES = [
    ("Salary", CategoryType.income, "💰", "#10b981", ["salary", "wage", "payroll"]),
    ("Freelance", CategoryType.income, "💼", "#059669", ["freelance", "contract", "consulting"]),
    ("Business", CategoryType.income, "🏢", "#047857", ["business", "revenue", "sales"]),
    ("Investment", CategoryType.income, "📈", "#065f46", ["dividend", "interest", "capital gain"]),
    ("Other Income", CategoryType.income, "💵", "#6ee7b7", ["gift", "bonus", "refund"]),
    ("Food & Dining", CategoryType.expense, "🍔", "#ef4444", ["food", "restaurant", "dining", "zomato", "swiggy"]),
    ("Groceries", CategoryType.expense, "🛒", "#dc2626", ["grocery", "supermarket", "vegetables", "bigbasket"]),
    ("Transportation", CategoryType.expense, "🚗", "#f97316", ["fuel", "petrol", "uber", "ola", "metro", "bus"]),
    ("Shopping", CategoryType.expense, "🛍️", "#ec4899", ["shopping", "clothes", "amazon", "flipkart"]),
    ("Entertainment", CategoryType.expense, "🎬", "#8b5cf6", ["movie", "netflix", "prime", "spotify"]),
    ("Bills & Utilities", CategoryType.expense, "📱", "#3b82f6", ["electricity", "water", "gas", "internet", "mobile"]),
    ("Healthcare", CategoryType.expense, "🏥", "#06b6d4", ["doctor", "medicine", "hospital", "pharmacy"]),
    ("Education", CategoryType.expense, "📚", "#0ea5e9", ["school", "course", "books", "tuition"]),
    ("Rent", CategoryType.expense, "🏠", "#6366f1", ["rent", "lease", "housing"]),
    ("Insurance", CategoryType.expense, "🛡️", "#4f46e5", ["insurance", "premium", "policy"]),
    ("Travel", CategoryType.expense, "✈️", "#0891b2", ["travel", "hotel", "flight", "vacation"]),
    ("Personal Care", CategoryType.expense, "💆", "#d946ef", ["salon", "spa", "gym", "fitness"]),
    ("Other", CategoryType.expense, "📦", "#64748b", ["misc", "other"]),
]


def seed_system_categories(session: Session) -> int:
    """Insert missing system categories. Returns how many were added."""
    existing = set(
        session.exec(select(Category.name).where(Category.is_system == True)).all()  # noqa: E712
    )

    added = [
        Category(
            name=name,
            type=type_,
            icon=icon,
            color=color,
            keywords=keywords,
            is_system=True,
            user_id=None,
        )
        for name, type_, icon, color, keywords in SYSTEM_CATEGORIES
        if name not in existing
    ]
    if not added:
        logger.info("System categories already exist, skipping seed")
        return 0

    session.add_all(added)
    session.commit()
    logger.info("Added %d system categories", len(added))
    return len(added)
