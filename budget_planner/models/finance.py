"""
Core Data Models for Budget Planner

These models define the schemas for everything held in the store and
written to either backing store. They are designed to:
1. Enforce non-negative money amounts at the boundary
2. Serialize to the camelCase JSON shape shared by local and remote storage
3. Accept both camelCase (stored) and snake_case (Python callers) input

Money is Decimal throughout. Percentages are plain floats.
"""

import datetime as dt
import secrets
import time
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    ValidatorFunctionWrapHandler,
    field_validator,
)
from pydantic.alias_generators import to_camel


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Direction of a transaction. Amounts are always stored positive."""
    INCOME = "income"
    EXPENSE = "expense"


class Recurrence(str, Enum):
    """How often a transaction repeats (informational only)."""
    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class Period(str, Enum):
    """Dashboard time period."""
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


class BudgetTemplate(str, Enum):
    """Named budget allocation policies."""
    FIFTY_THIRTY_TWENTY = "50-30-20"
    ZERO_BASED = "zero-based"


def generate_id() -> str:
    """
    Time-based prefix plus random suffix.

    No collision check is performed; the random part makes a clash
    within the same millisecond negligible.
    """
    millis = int(time.time() * 1000)
    digits = "0123456789abcdefghijklmnopqrstuvwxyz"
    prefix = ""
    while millis:
        millis, rem = divmod(millis, 36)
        prefix = digits[rem] + prefix
    return prefix + secrets.token_hex(5)


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


Money = Annotated[Decimal, Field(ge=0)]


class CamelModel(BaseModel):
    """Base for every persisted shape: camelCase on the wire, snake_case in Python."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )

    def to_payload(self) -> dict[str, Any]:
        """JSON-safe dict using the stored (camelCase) field names."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# =============================================================================
# ENTITIES
# =============================================================================

class TransactionDraft(CamelModel):
    """A transaction before the store has assigned it an identity."""

    type: TransactionType
    amount: Money = Field(
        ...,
        description="Positive magnitude; sign comes from type"
    )
    date: dt.date
    category: str = Field(
        default="other-expense",
        description="Free-form category id"
    )
    description: str = ""
    recurring: Recurrence = Recurrence.NONE


class Transaction(TransactionDraft):
    id: str = Field(default_factory=generate_id)
    created_at: dt.datetime = Field(default_factory=utcnow)

    @property
    def signed_amount(self) -> Decimal:
        return self.amount if self.type == TransactionType.INCOME else -self.amount


class GoalDraft(CamelModel):
    """A savings goal before the store has assigned it an identity."""

    name: str = Field(..., min_length=1, max_length=200)
    target: Decimal = Field(..., gt=0)
    current: Money = Field(
        default=Decimal("0"),
        description="Saved so far; may exceed target"
    )
    deadline: Optional[dt.date] = None
    icon: str = "🎯"


class Goal(GoalDraft):
    id: str = Field(default_factory=generate_id)
    created_at: dt.datetime = Field(default_factory=utcnow)

    @property
    def progress(self) -> float:
        """Percentage of target reached. Not capped at 100."""
        if self.target <= 0:
            return 0.0
        return float(self.current / self.target * 100)


class DebtDraft(CamelModel):
    """A debt before the store has assigned it an identity."""

    name: str = Field(..., min_length=1, max_length=200)
    principal: Money = Decimal("0")
    rate: Annotated[Decimal, Field(ge=0, description="Annual percentage rate")] = Decimal("0")
    payment: Annotated[Decimal, Field(ge=0, description="Monthly payment")] = Decimal("0")


class Debt(DebtDraft):
    id: str = Field(default_factory=generate_id)
    created_at: dt.datetime = Field(default_factory=utcnow)


class UserSettings(CamelModel):
    """
    Per-user preferences stored alongside the data.

    An invalid preference falls back to its default instead of failing
    validation, so one bad field can't discard a whole snapshot.
    """

    dark_mode: bool = False
    default_view: Period = Period.MONTH
    currency: str = Field(default="DZD", min_length=3, max_length=3)

    @field_validator("dark_mode", "default_view", "currency", mode="wrap")
    @classmethod
    def fall_back_to_default(
        cls, value: Any, handler: ValidatorFunctionWrapHandler, info: ValidationInfo
    ) -> Any:
        try:
            return handler(value)
        except ValidationError:
            return cls.model_fields[info.field_name].default


class TransactionFilters(CamelModel):
    """Transaction list filters. `all` / empty search disables a filter."""

    search: str = ""
    type: str = Field(default="all", pattern="^(all|income|expense)$")
    category: str = "all"


# =============================================================================
# SNAPSHOT - the unit of persistence for both stores
# =============================================================================

class Snapshot(CamelModel):
    """
    Complete serializable state of all collections plus settings.

    Both backing stores only ever read or write whole snapshots.
    `origin`/`revision` tag remote writes so a process can recognize
    its own writes when they come back through the subscription.
    """

    version: int = 1
    transactions: list[Transaction] = Field(default_factory=list)
    budgets: dict[str, Money] = Field(default_factory=dict)
    goals: list[Goal] = Field(default_factory=list)
    debts: list[Debt] = Field(default_factory=list)
    settings: UserSettings = Field(default_factory=UserSettings)

    saved_at: Optional[dt.datetime] = None
    last_updated: Optional[dt.datetime] = None

    origin: Optional[str] = None
    revision: Optional[int] = Field(default=None, ge=0)

    def is_empty(self) -> bool:
        return not (self.transactions or self.budgets or self.goals or self.debts)


class ExportBundle(CamelModel):
    """
    Shape of the JSON export file.

    Every collection is optional on import; absent keys leave the
    corresponding collection untouched.
    """

    transactions: Optional[list[Transaction]] = None
    budgets: Optional[dict[str, Money]] = None
    goals: Optional[list[Goal]] = None
    debts: Optional[list[Debt]] = None
    exported_at: Optional[dt.datetime] = None
