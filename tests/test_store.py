"""Tests for the domain store: mutations, notifications and import/export."""

from datetime import date
from decimal import Decimal

import pytest

from conftest import TODAY

from budget_planner.models.audit import AuditEventType
from budget_planner.models.finance import (
    DebtDraft,
    GoalDraft,
    Period,
    Snapshot,
    TransactionDraft,
)
from budget_planner.store import BudgetStore


def add_expense(store, amount="20", category="food", description="Lunch", on=TODAY):
    return store.add_transaction({
        "type": "expense",
        "amount": amount,
        "date": on,
        "category": category,
        "description": description,
    })


class TestTransactions:
    """Tests for transaction mutations."""

    def test_add_prepends_and_assigns_identity(self, store, saved_snapshots):
        first = add_expense(store, description="first")
        second = add_expense(store, description="second")

        assert [t.id for t in store.transactions] == [second.id, first.id]
        assert first.id != second.id
        assert first.created_at is not None
        assert len(saved_snapshots) == 2
        assert saved_snapshots[-1].transactions[0].id == second.id

    def test_add_accepts_draft_model(self, store):
        draft = TransactionDraft(type="income", amount=Decimal("50"), date=TODAY, category="gifts")
        transaction = store.add_transaction(draft)
        assert transaction.category == "gifts"
        assert store.transactions == [transaction]

    def test_add_ignores_supplied_id(self, store):
        transaction = store.add_transaction({
            "id": "chosen-by-caller",
            "type": "expense",
            "amount": "1",
            "date": TODAY,
        })
        assert transaction.id != "chosen-by-caller"

    def test_update_merges_fields(self, store, saved_snapshots):
        transaction = add_expense(store)
        updated = store.update_transaction(transaction.id, description="Dinner", amount="35")

        assert updated.description == "Dinner"
        assert updated.amount == Decimal("35")
        assert updated.category == "food"
        assert store.get_transaction(transaction.id) == updated
        assert len(saved_snapshots) == 2

    def test_update_never_changes_id(self, store):
        transaction = add_expense(store)
        updated = store.update_transaction(transaction.id, id="other", createdAt="2020-01-01T00:00:00Z")
        assert updated.id == transaction.id
        assert updated.created_at == transaction.created_at

    def test_update_unknown_id_returns_none(self, store, saved_snapshots):
        """Test not-found is a benign None with no notification or save."""
        calls = []
        store.subscribe(lambda s: calls.append(s))

        assert store.update_transaction("missing", description="x") is None
        assert calls == []
        assert saved_snapshots == []

    def test_update_rejects_invalid_values(self, store):
        transaction = add_expense(store)
        with pytest.raises(ValueError):
            store.update_transaction(transaction.id, amount="-5")
        assert store.get_transaction(transaction.id).amount == Decimal("20")

    def test_delete(self, store):
        transaction = add_expense(store)
        store.delete_transaction(transaction.id)
        assert store.transactions == []

    def test_delete_unknown_id_is_noop(self, store, audit_logger):
        add_expense(store)
        store.delete_transaction("missing")
        assert len(store.transactions) == 1
        event = audit_logger.recent_events(1)[0]
        assert event.event_type == AuditEventType.ENTITY_DELETED
        assert event.details == {"existed": False}


class TestGoalsAndDebts:
    """Tests for goal and debt mutations."""

    def test_goals_are_appended(self, store):
        first = store.add_goal(GoalDraft(name="Trip", target=Decimal("500")))
        second = store.add_goal({"name": "Car", "target": "9000"})
        assert [g.id for g in store.goals] == [first.id, second.id]
        assert second.current == Decimal("0")

    def test_contribute_to_goal(self, store):
        goal = store.add_goal({"name": "Trip", "target": "500", "current": "100"})
        updated = store.contribute_to_goal(goal.id, "50.25")
        assert updated.current == Decimal("150.25")
        assert store.contribute_to_goal("missing", 5) is None

    def test_delete_goal(self, store):
        goal = store.add_goal({"name": "Trip", "target": "500"})
        store.delete_goal(goal.id)
        assert store.goals == []

    def test_debts_default_to_zero(self, store):
        debt = store.add_debt({"name": "Loan"})
        assert debt.principal == Decimal("0")
        assert store.calculate_debt_payoff(debt) is None

    def test_update_and_delete_debt(self, store):
        debt = store.add_debt(DebtDraft(name="Phone", principal=Decimal("1200")))
        updated = store.update_debt(debt.id, payment=100)
        assert store.calculate_debt_payoff(updated) == 12
        assert len(store.debt_schedule(updated)) == 12

        store.delete_debt(debt.id)
        assert store.debts == []
        assert store.update_debt(debt.id, payment=1) is None


class TestBudgetsAndSettings:
    """Tests for budgets, templates and settings."""

    def test_set_budget_upserts(self, store):
        store.set_budget("food", 300)
        store.set_budget("food", "350.50")
        assert store.budgets == {"food": Decimal("350.50")}

    def test_set_negative_budget_rejected(self, store):
        with pytest.raises(ValueError):
            store.set_budget("food", -1)

    def test_remove_budget(self, store):
        store.set_budget("food", 300)
        store.remove_budget("food")
        store.remove_budget("never-set")
        assert store.budgets == {}

    def test_template_replaces_existing_budgets(self, store):
        store.set_budget("custom", 10)
        store.add_transaction({"type": "income", "amount": "1000", "date": TODAY, "category": "salary"})
        store.add_transaction({
            "type": "income", "amount": "5000", "date": date(2024, 5, 1), "category": "salary",
        })

        store.apply_budget_template("50-30-20")

        assert "custom" not in store.budgets
        assert store.budgets["housing"] == Decimal("250")
        assert store.budgets["food"] == Decimal("125")

    def test_unknown_template_leaves_budgets(self, store, saved_snapshots):
        store.set_budget("food", 300)
        with pytest.raises(ValueError):
            store.apply_budget_template("envelope")
        assert store.budgets == {"food": Decimal("300")}
        assert len(saved_snapshots) == 1

    def test_toggle_dark_mode(self, store, saved_snapshots):
        assert store.toggle_dark_mode() is True
        assert store.settings.dark_mode is True
        assert store.toggle_dark_mode() is False
        assert saved_snapshots[0].settings.dark_mode is True


class TestNotifications:
    """Tests for the observer registry."""

    def test_every_mutation_notifies_once(self, store):
        calls = []
        store.subscribe(lambda s: calls.append(len(s.transactions)))

        transaction = add_expense(store)
        store.update_transaction(transaction.id, amount="1")
        store.set_budget("food", 1)
        store.delete_transaction(transaction.id)

        assert calls == [1, 1, 1, 0]

    def test_notification_precedes_persistence(self, store):
        order = []
        store.subscribe(lambda s: order.append("notify"))
        store.set_persister(lambda snapshot: order.append("persist"))
        add_expense(store)
        assert order == ["notify", "persist"]

    def test_unsubscribe_by_handle(self, store):
        calls = []
        handle = store.subscribe(lambda s: calls.append("a"))
        other = store.subscribe(lambda s: calls.append("b"))

        handle.unsubscribe()
        add_expense(store)
        store.unsubscribe(other)
        add_expense(store)

        assert calls == ["b"]

    def test_failing_observer_does_not_stop_others(self, store, audit_logger):
        calls = []

        def broken(_):
            raise RuntimeError("render failed")

        store.subscribe(broken)
        store.subscribe(lambda s: calls.append("ok"))
        add_expense(store)

        assert calls == ["ok"]
        assert any(
            e.event_type == AuditEventType.OBSERVER_FAILED for e in audit_logger.recent_events()
        )

    def test_view_state_notifies_without_persisting(self, store, saved_snapshots):
        calls = []
        store.subscribe(lambda s: calls.append(s.current_period))
        store.set_period("year")
        store.set_filters(search="lunch")
        assert calls == [Period.YEAR, Period.YEAR]
        assert saved_snapshots == []


class TestQueries:
    """Tests for store query methods."""

    def test_filtered_transactions_use_store_filters(self, store):
        add_expense(store, description="Lunch")
        add_expense(store, description="Taxi", category="transportation")
        add_expense(store, description="Old", on=date(2024, 1, 1))

        store.set_filters(search="taxi")
        assert [t.description for t in store.get_filtered_transactions()] == ["Taxi"]

        store.set_filters(search="", category="food")
        assert [t.description for t in store.get_filtered_transactions()] == ["Lunch"]

        store.set_filters(category="all")
        store.set_period("year")
        assert len(store.get_filtered_transactions()) == 3

    def test_summary_and_usage(self, store):
        store.set_budget("food", 100)
        add_expense(store, amount="25")
        summary = store.get_summary()
        assert summary.expenses == Decimal("25")
        assert summary.budget_used == pytest.approx(25.0)
        assert store.get_budget_usage("food").remaining == Decimal("75")
        assert store.get_budget_usage("shopping").percentage == 0.0

    def test_monthly_trend_has_six_entries(self, store):
        assert len(store.get_monthly_trend()) == 6

    def test_category_info(self, store):
        assert store.get_category_info("salary").name == "Salary"
        assert store.get_category_info("unknown").icon == "📦"


class TestSnapshotLoading:
    """Tests for load_snapshot and snapshot()."""

    def test_load_replaces_everything(self, store):
        add_expense(store)
        incoming = Snapshot.model_validate({
            "transactions": [{"type": "income", "amount": "5", "date": "2024-06-01", "id": "t1"}],
            "budgets": {"food": "10"},
        })
        store.load_snapshot(incoming)
        assert [t.id for t in store.transactions] == ["t1"]
        assert store.budgets == {"food": Decimal("10")}

    def test_settings_merge_over_defaults(self):
        store = BudgetStore(clock=lambda: TODAY)
        store.load_snapshot(
            Snapshot.model_validate({"settings": {"darkMode": True, "defaultView": "week"}}),
            reset_view=True,
        )
        assert store.settings.dark_mode is True
        assert store.settings.currency == "DZD"
        assert store.current_period == Period.WEEK

    def test_plain_load_keeps_current_period(self, store):
        """Test a reload only replaces data, not the period being viewed."""
        store.set_period("year")
        store.load_snapshot(Snapshot.model_validate({"settings": {"defaultView": "week"}}))
        assert store.settings.default_view == Period.WEEK
        assert store.current_period == Period.YEAR

    def test_load_none_resets(self, store):
        add_expense(store)
        store.load_snapshot(None)
        assert store.transactions == []
        assert store.snapshot().is_empty()


class TestImportExport:
    """Tests for JSON import/export."""

    def _populate(self, store):
        add_expense(store, description="one")
        add_expense(store, description="two", category="unknown-category")
        store.set_budget("food", 300)
        store.set_budget("housing", "1200.50")
        store.add_goal({"name": "Trip", "target": "500", "deadline": "2025-01-01"})
        store.add_debt({"name": "Card", "principal": "900", "rate": "19.9", "payment": "50"})

    def test_round_trip_on_empty_store(self, store):
        self._populate(store)
        exported = store.export_json()

        other = BudgetStore(clock=lambda: TODAY)
        assert other.import_json(exported) is True

        assert other.transactions == store.transactions
        assert other.goals == store.goals
        assert other.debts == store.debts
        assert set(other.budgets) == set(store.budgets)
        assert other.budgets == store.budgets

    def test_import_only_replaces_present_collections(self, store):
        self._populate(store)
        assert store.import_json('{"budgets": {"food": "5"}}') is True
        assert store.budgets == {"food": Decimal("5")}
        assert len(store.transactions) == 2

    def test_malformed_import_leaves_store_untouched(self, store, saved_snapshots, audit_logger):
        self._populate(store)
        before = store.snapshot()
        saves = len(saved_snapshots)

        assert store.import_json("{not json") is False
        assert store.import_json("[1, 2, 3]") is False
        assert store.import_json('{"transactions": [{"type": "refund"}]}') is False

        assert store.snapshot() == before
        assert len(saved_snapshots) == saves
        assert audit_logger.recent_events(1)[0].event_type == AuditEventType.IMPORT_FAILED


class TestDeterminism:
    """Replaying the same operations gives the same collections."""

    @staticmethod
    def _replay(store):
        a = add_expense(store, amount="10", description="a")
        b = add_expense(store, amount="20", description="b")
        store.update_transaction(a.id, amount="15")
        store.delete_transaction(b.id)
        goal = store.add_goal({"name": "Trip", "target": "100"})
        store.contribute_to_goal(goal.id, 30)
        debt = store.add_debt({"name": "Loan", "principal": "500"})
        store.update_debt(debt.id, rate=5)
        store.delete_transaction("missing")

    def test_replay_matches_fresh_store(self):
        first = BudgetStore(clock=lambda: TODAY)
        second = BudgetStore(clock=lambda: TODAY)
        self._replay(first)
        self._replay(second)

        volatile = {"id", "created_at"}
        for left, right in (
            (first.transactions, second.transactions),
            (first.goals, second.goals),
            (first.debts, second.debts),
        ):
            assert [e.model_dump(exclude=volatile) for e in left] == [
                e.model_dump(exclude=volatile) for e in right
            ]
        assert first.budgets == second.budgets
