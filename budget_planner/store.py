"""
Domain Store

The single in-memory owner of transactions, budgets, goals, debts and
settings. Every mutation goes through here and follows the same steps:

1. Update the in-memory state
2. Notify every subscriber synchronously (one cycle per mutation)
3. Hand a full snapshot to the persister (local first, then remote)

Persistence failures never surface here: a mutation always succeeds
against the in-memory model. Queries are pure and read "today" from an
injectable clock.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Mapping, Optional, Union

from pydantic import BaseModel, ValidationError

from budget_planner.audit import AuditLogger
from budget_planner.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from budget_planner.models.categories import CategoryInfo, get_category_info
from budget_planner.models.finance import (
    BudgetTemplate,
    Debt,
    DebtDraft,
    ExportBundle,
    Goal,
    GoalDraft,
    Period,
    Snapshot,
    Transaction,
    TransactionDraft,
    TransactionFilters,
    UserSettings,
)
from budget_planner.models.reports import (
    AmortizationRow,
    BudgetUsage,
    MonthlyTrendPoint,
    Summary,
)
from budget_planner.queries import (
    amortization_schedule,
    budget_template_allocation,
    budget_usage,
    debt_payoff_months,
    filter_transactions,
    monthly_income,
    monthly_trend,
    summarize,
)


Observer = Callable[["BudgetStore"], None]
Persister = Callable[[Snapshot], Any]
EntityInput = Union[BaseModel, Mapping[str, Any]]

# Never overwritten by an update
_IMMUTABLE_FIELDS = {"id", "created_at"}


class Subscription:
    """Handle returned by `BudgetStore.subscribe`."""

    def __init__(self, store: "BudgetStore", callback: Observer):
        self._store = store
        self.callback = callback

    def unsubscribe(self) -> None:
        self._store.unsubscribe(self)


def _field_names(model_cls: type[BaseModel], data: Mapping[str, Any]) -> dict[str, Any]:
    """Normalize camelCase keys to field names; unknown keys pass through."""
    by_alias = {
        (info.alias or name): name
        for name, info in model_cls.model_fields.items()
    }
    return {by_alias.get(key, key): value for key, value in data.items()}


class BudgetStore:
    """
    Authoritative in-memory state with a mutation API and observers.

    One instance is owned by a session and passed to collaborators;
    there is no module-level store.
    """

    def __init__(
        self,
        clock: Callable[[], date] = date.today,
        audit_logger: Optional[AuditLogger] = None,
        default_settings: Optional[UserSettings] = None,
        snapshot_version: int = 1,
    ):
        self._clock = clock
        self._audit_logger = audit_logger or AuditLogger()
        self._default_settings = default_settings or UserSettings()
        self._snapshot_version = snapshot_version

        self.transactions: list[Transaction] = []
        self.budgets: dict[str, Decimal] = {}
        self.goals: list[Goal] = []
        self.debts: list[Debt] = []
        self.settings: UserSettings = self._default_settings.model_copy()

        # View state; never persisted
        self.filters = TransactionFilters()
        self.current_period: Period = self.settings.default_view

        self._subscriptions: list[Subscription] = []
        self._persister: Optional[Persister] = None

    # =========================================================================
    # Observers and persistence
    # =========================================================================

    def subscribe(self, callback: Observer) -> Subscription:
        """Register a callback invoked with the store after every change."""
        subscription = Subscription(self, callback)
        self._subscriptions.append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        """Remove a subscription by handle. Unknown handles are ignored."""
        self._subscriptions = [s for s in self._subscriptions if s is not subscription]

    def set_persister(self, persister: Optional[Persister]) -> None:
        """Set the callable that receives a snapshot after each mutation."""
        self._persister = persister

    def notify(self) -> None:
        for subscription in list(self._subscriptions):
            try:
                subscription.callback(self)
            except Exception as e:
                self._audit_logger.log(AuditEvent(
                    event_type=AuditEventType.OBSERVER_FAILED,
                    severity=AuditSeverity.ERROR,
                    description="Change observer raised",
                    error_message=str(e),
                ))

    def _commit(self) -> None:
        self.notify()
        if self._persister is not None:
            self._persister(self.snapshot())

    # =========================================================================
    # Snapshot
    # =========================================================================

    def snapshot(self) -> Snapshot:
        """Full serializable state at this instant."""
        return Snapshot(
            version=self._snapshot_version,
            transactions=list(self.transactions),
            budgets=dict(self.budgets),
            goals=list(self.goals),
            debts=list(self.debts),
            settings=self.settings.model_copy(),
        )

    def load_snapshot(self, snapshot: Optional[Snapshot], reset_view: bool = False) -> None:
        """
        Replace all collections with a snapshot and notify once.

        Settings present in the snapshot are merged over the defaults.
        Does not persist: the caller already holds this data.

        Args:
            snapshot: New state, or None for an empty store
            reset_view: Also set the current period from the loaded
                `default_view` (session start). Remote updates leave the
                user's period alone.
        """
        if snapshot is None:
            self.transactions = []
            self.budgets = {}
            self.goals = []
            self.debts = []
            self.settings = self._default_settings.model_copy()
        else:
            self.transactions = list(snapshot.transactions)
            self.budgets = dict(snapshot.budgets)
            self.goals = list(snapshot.goals)
            self.debts = list(snapshot.debts)
            self.settings = self._default_settings.model_copy(
                update=snapshot.settings.model_dump(exclude_unset=True)
            )
        if reset_view:
            self.current_period = self.settings.default_view
        self.notify()

    # =========================================================================
    # Generic entity operations
    # =========================================================================

    def _create(self, model_cls: type[BaseModel], draft: EntityInput) -> Any:
        if isinstance(draft, BaseModel):
            data = draft.model_dump()
        else:
            data = _field_names(model_cls, draft)
        for name in _IMMUTABLE_FIELDS:
            data.pop(name, None)
        return model_cls.model_validate(data)

    def _update(
        self,
        collection: list,
        model_cls: type[BaseModel],
        entity_type: str,
        entity_id: str,
        fields: Mapping[str, Any],
    ) -> Optional[Any]:
        for index, entity in enumerate(collection):
            if entity.id != entity_id:
                continue
            changes = {
                name: value
                for name, value in _field_names(model_cls, fields).items()
                if name not in _IMMUTABLE_FIELDS
            }
            updated = model_cls.model_validate({**entity.model_dump(), **changes})
            collection[index] = updated
            self._audit_logger.log(
                AuditEventBuilder.entity_updated(entity_type, entity_id, sorted(changes))
            )
            self._commit()
            return updated
        return None

    def _delete(self, collection: list, entity_type: str, entity_id: str) -> list:
        remaining = [e for e in collection if e.id != entity_id]
        self._audit_logger.log(
            AuditEventBuilder.entity_deleted(entity_type, entity_id, len(remaining) != len(collection))
        )
        return remaining

    # =========================================================================
    # Transactions
    # =========================================================================

    def add_transaction(self, draft: Union[TransactionDraft, Mapping[str, Any]]) -> Transaction:
        """Create a transaction; newest transactions come first."""
        transaction = self._create(Transaction, draft)
        self.transactions.insert(0, transaction)
        self._audit_logger.log(AuditEventBuilder.entity_created("transaction", transaction.id))
        self._commit()
        return transaction

    def update_transaction(self, transaction_id: str, **fields: Any) -> Optional[Transaction]:
        """Shallow-merge fields into a transaction. Returns None if not found."""
        return self._update(self.transactions, Transaction, "transaction", transaction_id, fields)

    def delete_transaction(self, transaction_id: str) -> None:
        self.transactions = self._delete(self.transactions, "transaction", transaction_id)
        self._commit()

    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        return next((t for t in self.transactions if t.id == transaction_id), None)

    # =========================================================================
    # Budgets
    # =========================================================================

    def set_budget(self, category: str, amount: Union[Decimal, int, float, str]) -> None:
        """Set (or replace) a category's monthly limit."""
        value = Decimal(str(amount))
        if value < 0:
            raise ValueError("Budget amount cannot be negative")
        self.budgets[category] = value
        self._audit_logger.log(AuditEvent(
            event_type=AuditEventType.BUDGET_SET,
            severity=AuditSeverity.DEBUG,
            entity_type="budget",
            entity_id=category,
            description=f"Budget set for {category}",
            details={"amount": str(value)},
        ))
        self._commit()

    def remove_budget(self, category: str) -> None:
        """Drop a category's limit. Missing categories are ignored."""
        self.budgets.pop(category, None)
        self._audit_logger.log(AuditEvent(
            event_type=AuditEventType.BUDGET_REMOVED,
            severity=AuditSeverity.DEBUG,
            entity_type="budget",
            entity_id=category,
            description=f"Budget removed for {category}",
        ))
        self._commit()

    def apply_budget_template(self, template: Union[BudgetTemplate, str]) -> dict[str, Decimal]:
        """
        Replace all budgets with a template computed from this month's income.

        Raises:
            ValueError: If the template name is unknown (store untouched)
        """
        income = self.get_monthly_income()
        self.budgets = budget_template_allocation(template, income)
        self._audit_logger.log(
            AuditEventBuilder.budget_template_applied(BudgetTemplate(template).value, str(income))
        )
        self._commit()
        return dict(self.budgets)

    # =========================================================================
    # Goals
    # =========================================================================

    def add_goal(self, draft: Union[GoalDraft, Mapping[str, Any]]) -> Goal:
        goal = self._create(Goal, draft)
        self.goals.append(goal)
        self._audit_logger.log(AuditEventBuilder.entity_created("goal", goal.id))
        self._commit()
        return goal

    def update_goal(self, goal_id: str, **fields: Any) -> Optional[Goal]:
        return self._update(self.goals, Goal, "goal", goal_id, fields)

    def delete_goal(self, goal_id: str) -> None:
        self.goals = self._delete(self.goals, "goal", goal_id)
        self._commit()

    def get_goal(self, goal_id: str) -> Optional[Goal]:
        return next((g for g in self.goals if g.id == goal_id), None)

    def contribute_to_goal(self, goal_id: str, amount: Union[Decimal, int, float, str]) -> Optional[Goal]:
        """Add money to a goal's current balance."""
        goal = self.get_goal(goal_id)
        if goal is None:
            return None
        return self.update_goal(goal_id, current=goal.current + Decimal(str(amount)))

    # =========================================================================
    # Debts
    # =========================================================================

    def add_debt(self, draft: Union[DebtDraft, Mapping[str, Any]]) -> Debt:
        debt = self._create(Debt, draft)
        self.debts.append(debt)
        self._audit_logger.log(AuditEventBuilder.entity_created("debt", debt.id))
        self._commit()
        return debt

    def update_debt(self, debt_id: str, **fields: Any) -> Optional[Debt]:
        return self._update(self.debts, Debt, "debt", debt_id, fields)

    def delete_debt(self, debt_id: str) -> None:
        self.debts = self._delete(self.debts, "debt", debt_id)
        self._commit()

    def get_debt(self, debt_id: str) -> Optional[Debt]:
        return next((d for d in self.debts if d.id == debt_id), None)

    # =========================================================================
    # Settings and view state
    # =========================================================================

    def toggle_dark_mode(self) -> bool:
        self.settings = self.settings.model_copy(update={"dark_mode": not self.settings.dark_mode})
        self._audit_logger.log(AuditEvent(
            event_type=AuditEventType.SETTINGS_CHANGED,
            severity=AuditSeverity.DEBUG,
            entity_type="settings",
            description="Dark mode toggled",
            details={"dark_mode": self.settings.dark_mode},
        ))
        self._commit()
        return self.settings.dark_mode

    def set_filters(
        self,
        search: Optional[str] = None,
        type: Optional[str] = None,
        category: Optional[str] = None,
    ) -> None:
        """Change transaction list filters. Notifies, but nothing is persisted."""
        update = {"search": search, "type": type, "category": category}
        self.filters = TransactionFilters.model_validate({
            **self.filters.model_dump(),
            **{k: v for k, v in update.items() if v is not None},
        })
        self.notify()

    def set_period(self, period: Union[Period, str]) -> None:
        self.current_period = Period(period)
        self.notify()

    # =========================================================================
    # Import / export
    # =========================================================================

    def export_json(self) -> str:
        """Export collections as indented JSON (settings are not exported)."""
        bundle = ExportBundle(
            transactions=list(self.transactions),
            budgets=dict(self.budgets),
            goals=list(self.goals),
            debts=list(self.debts),
            exported_at=datetime.now(timezone.utc),
        )
        return bundle.model_dump_json(by_alias=True, exclude_none=True, indent=2)

    def import_json(self, text: str) -> bool:
        """
        Replace collections with those present in an export file.

        Returns:
            True on success. False if the text isn't a valid export, in
            which case the store is left untouched.
        """
        try:
            bundle = ExportBundle.model_validate_json(text)
        except ValidationError as e:
            self._audit_logger.log(AuditEventBuilder.import_failed(str(e)))
            return False

        if bundle.transactions is not None:
            self.transactions = list(bundle.transactions)
        if bundle.budgets is not None:
            self.budgets = dict(bundle.budgets)
        if bundle.goals is not None:
            self.goals = list(bundle.goals)
        if bundle.debts is not None:
            self.debts = list(bundle.debts)

        self._audit_logger.log(AuditEvent(
            event_type=AuditEventType.IMPORT_COMPLETED,
            description="Data imported",
            details={
                "transactions": len(self.transactions),
                "goals": len(self.goals),
                "debts": len(self.debts),
            },
        ))
        self._commit()
        return True

    # =========================================================================
    # Queries
    # =========================================================================

    def today(self) -> date:
        return self._clock()

    def get_filtered_transactions(self) -> list[Transaction]:
        """Transactions matching the filters within the rolling lookback period."""
        return filter_transactions(self.transactions, self.filters, self.current_period, self.today())

    def get_budget_usage(self, category: str) -> BudgetUsage:
        return budget_usage(self.transactions, self.budgets, category, self.today())

    def get_summary(self, period: Optional[Union[Period, str]] = None) -> Summary:
        """Totals over the calendar window of `period` (defaults to the current period)."""
        return summarize(
            self.transactions,
            self.budgets,
            Period(period) if period is not None else self.current_period,
            self.today(),
        )

    def get_monthly_trend(self) -> list[MonthlyTrendPoint]:
        return monthly_trend(self.transactions, self.today())

    def get_monthly_income(self) -> Decimal:
        return monthly_income(self.transactions, self.today())

    def calculate_debt_payoff(self, debt: Debt) -> Optional[Union[int, float]]:
        """Months to pay off; None without a payment, NaN if it never amortizes."""
        return debt_payoff_months(debt)

    def debt_schedule(self, debt: Debt, extra_payment: Union[Decimal, int, str] = 0) -> list[AmortizationRow]:
        return amortization_schedule(debt, extra_payment=Decimal(str(extra_payment)))

    def get_category_info(self, category_id: str) -> CategoryInfo:
        return get_category_info(category_id)
