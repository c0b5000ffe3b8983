"""
Default category table.

Transactions reference categories by free-form id. Ids not found here
are not an error; they get a generic fallback display.
"""

from pydantic import BaseModel


class CategoryInfo(BaseModel):
    id: str
    name: str
    icon: str
    color: str


FALLBACK_ICON = "📦"
FALLBACK_COLOR = "#6B7280"


EXPENSE_CATEGORIES = [
    CategoryInfo(id="housing", name="Housing", icon="🏠", color="#8B5CF6"),
    CategoryInfo(id="food", name="Food & Dining", icon="🍔", color="#F59E0B"),
    CategoryInfo(id="transportation", name="Transportation", icon="🚗", color="#3B82F6"),
    CategoryInfo(id="utilities", name="Utilities", icon="💡", color="#10B981"),
    CategoryInfo(id="entertainment", name="Entertainment", icon="🎬", color="#EC4899"),
    CategoryInfo(id="healthcare", name="Healthcare", icon="🏥", color="#EF4444"),
    CategoryInfo(id="shopping", name="Shopping", icon="🛍️", color="#F97316"),
    CategoryInfo(id="personal", name="Personal", icon="👤", color="#6366F1"),
    CategoryInfo(id="education", name="Education", icon="📚", color="#14B8A6"),
    CategoryInfo(id="other-expense", name="Other", icon="📦", color="#6B7280"),
]

INCOME_CATEGORIES = [
    CategoryInfo(id="salary", name="Salary", icon="💼", color="#10B981"),
    CategoryInfo(id="freelance", name="Freelance", icon="💻", color="#8B5CF6"),
    CategoryInfo(id="investments", name="Investments", icon="📈", color="#3B82F6"),
    CategoryInfo(id="rental", name="Rental Income", icon="🏘️", color="#F59E0B"),
    CategoryInfo(id="gifts", name="Gifts", icon="🎁", color="#EC4899"),
    CategoryInfo(id="other-income", name="Other Income", icon="💰", color="#10B981"),
]

_BY_ID = {c.id: c for c in EXPENSE_CATEGORIES + INCOME_CATEGORIES}


def get_category_info(category_id: str) -> CategoryInfo:
    """Look up display info, degrading to a generic entry for unknown ids."""
    info = _BY_ID.get(category_id)
    if info is None:
        return CategoryInfo(
            id=category_id,
            name=category_id,
            icon=FALLBACK_ICON,
            color=FALLBACK_COLOR,
        )
    return info
