"""End-to-end tests for a wired session: startup merge and live sync."""

import asyncio
import threading
import time
from decimal import Decimal

import pytest

from conftest import TODAY, make_transaction

from budget_planner.config import Settings
from budget_planner.models.audit import AuditEventType
from budget_planner.models.finance import Period, Snapshot
from budget_planner.services.storage import (
    InMemoryKeyValueBackend,
    InMemorySnapshotStore,
    StorageError,
)
from budget_planner.services.sync import SnapshotSource
from budget_planner.session import create_session


class OrderedBackend(InMemoryKeyValueBackend):

    def __init__(self, order):
        super().__init__()
        self._order = order

    def set(self, key, value):
        self._order.append("local")
        super().set(key, value)


class OrderedRemoteStore(InMemorySnapshotStore):

    def __init__(self, order):
        super().__init__()
        self._order = order

    async def write(self, key, payload):
        self._order.append("remote")
        return await super().write(key, payload)


class FailingRemoteStore(InMemorySnapshotStore):

    async def write(self, key, payload):
        raise StorageError("network down")


class SlowRemoteStore(InMemorySnapshotStore):
    """Remote store that takes half a second per write."""

    async def write(self, key, payload):
        await asyncio.sleep(0.5)
        return await super().write(key, payload)


class LoopRecordingRemoteStore(InMemorySnapshotStore):
    """Records the event loop a subscription was opened on."""

    def __init__(self):
        super().__init__()
        self.watch_loop = None

    def watch(self, key, on_change, on_error=None):
        self.watch_loop = asyncio.get_running_loop()
        return super().watch(key, on_change, on_error)


def remote_snapshot():
    return Snapshot(
        transactions=[make_transaction("income", "3000", TODAY, "salary", "Remote salary")],
        budgets={"housing": Decimal("900")},
        origin="other-device",
        revision=7,
    )


def local_snapshot():
    return Snapshot(
        transactions=[make_transaction("expense", "15", TODAY, "food", "Local lunch")],
    )


def build_session(local_backend=None, remote_store=None):
    return create_session(
        settings=Settings(),
        local_backend=local_backend or InMemoryKeyValueBackend(),
        remote_store=remote_store,
        clock=lambda: TODAY,
    )


@pytest.fixture
def local_backend():
    return InMemoryKeyValueBackend()


@pytest.fixture
def remote_store():
    return InMemorySnapshotStore()


@pytest.fixture
def session(local_backend, remote_store):
    session = build_session(local_backend, remote_store)
    yield session
    asyncio.run(session.close())


def seed_local(session, identity, snapshot):
    session.local.set_user(identity)
    session.local.save_local(snapshot)


def drain(session):
    asyncio.run(session.coordinator.drain())


class TestStartupMerge:
    """Tests for choosing the initial snapshot."""

    def test_remote_wins_and_overwrites_local(self, session, remote_store):
        remote = remote_snapshot()
        remote_store.push("alice", remote.to_payload())
        seed_local(session, "alice", local_snapshot())

        source = asyncio.run(session.start("Alice"))

        assert source == SnapshotSource.REMOTE
        assert session.store.transactions == remote.transactions
        assert session.store.budgets == {"housing": Decimal("900")}
        assert session.local.load().transactions == remote.transactions

    def test_local_used_when_remote_empty(self, session, remote_store):
        seed_local(session, "alice", local_snapshot())

        source = asyncio.run(session.start("alice"))
        assert source == SnapshotSource.LOCAL
        assert [t.description for t in session.store.transactions] == ["Local lunch"]
        assert remote_store.write_count == 0

        # The next save seeds the remote record
        session.store.set_budget("food", 100)
        drain(session)
        stored = asyncio.run(remote_store.read("alice"))
        assert remote_store.write_count == 1
        assert [t["description"] for t in stored["transactions"]] == ["Local lunch"]
        assert stored["budgets"] == {"food": "100"}

    def test_empty_when_nothing_stored(self, session):
        assert asyncio.run(session.start("alice")) == SnapshotSource.EMPTY
        assert session.store.snapshot().is_empty()

    def test_start_applies_default_view(self, session, remote_store):
        remote_store.push("alice", Snapshot.model_validate({"settings": {"defaultView": "year"}}).to_payload())
        asyncio.run(session.start("alice"))
        assert session.store.current_period == Period.YEAR

    def test_anonymous_session_uses_default_key(self, session, local_backend, remote_store):
        seed_local(session, None, local_snapshot())

        assert asyncio.run(session.start()) == SnapshotSource.LOCAL
        assert session.remote.current_user is None

        session.store.toggle_dark_mode()
        drain(session)
        assert local_backend.keys() == ["budgetPlannerData"]
        assert remote_store.write_count == 0

    def test_start_logs_source(self, session):
        asyncio.run(session.start("alice"))
        event = session.audit_logger.recent_events(1)[0]
        assert event.event_type == AuditEventType.SESSION_STARTED
        assert event.details == {"source": "empty"}

    def test_local_only_session(self, local_backend):
        session = build_session(local_backend)
        assert session.remote is None
        assert session.coordinator.worker is None

        assert asyncio.run(session.start("alice")) == SnapshotSource.EMPTY
        session.store.add_transaction({"type": "expense", "amount": "3", "date": TODAY})
        assert local_backend.keys() == ["budgetPlannerData:alice"]
        asyncio.run(session.close())


class TestLiveSync:
    """Tests for changes flowing both ways after startup."""

    def test_push_from_other_device_replaces_state(self, session, remote_store):
        asyncio.run(session.start("alice"))
        calls = []
        session.store.subscribe(lambda s: calls.append(len(s.transactions)))

        remote_store.push("alice", remote_snapshot().to_payload())

        assert calls == [1]
        assert [t.description for t in session.store.transactions] == ["Remote salary"]
        assert session.local.load().budgets == {"housing": Decimal("900")}
        # Applying a remote change never writes back
        drain(session)
        assert remote_store.write_count == 0

    def test_push_from_other_device_keeps_current_period(self, session, remote_store):
        asyncio.run(session.start("alice"))
        session.store.set_period("year")

        remote_store.push("alice", Snapshot(origin="other-device", revision=1).to_payload())

        assert session.store.current_period == Period.YEAR

    def test_in_loop_mutation_writes_once_without_echo(self, session, remote_store):
        async def scenario():
            await session.start("alice")
            calls = []
            session.store.subscribe(lambda s: calls.append("notify"))

            session.store.add_transaction({"type": "expense", "amount": "9", "date": TODAY})
            await session.coordinator.drain()
            return calls

        calls = asyncio.run(scenario())

        assert remote_store.write_count == 1
        assert calls == ["notify"]
        assert len(session.store.transactions) == 1

    def test_slow_remote_does_not_delay_mutation(self, local_backend):
        """Test a mutation returns before its remote write completes."""
        remote_store = SlowRemoteStore()
        session = build_session(local_backend, remote_store)
        asyncio.run(session.start("alice"))

        started = time.perf_counter()
        session.store.set_budget("food", 1)
        elapsed = time.perf_counter() - started

        assert elapsed < 0.2
        assert session.local.load().budgets == {"food": Decimal("1")}
        assert remote_store.write_count == 0
        assert session.coordinator.pending_writes() == 1

        drain(session)
        assert remote_store.write_count == 1
        assert session.coordinator.pending_writes() == 0
        asyncio.run(session.close())

    def test_queued_writes_arrive_in_order(self, local_backend):
        remote_store = SlowRemoteStore()
        session = build_session(local_backend, remote_store)
        asyncio.run(session.start("alice"))

        session.store.set_budget("food", 1)
        session.store.set_budget("food", 2)
        drain(session)

        stored = asyncio.run(remote_store.read("alice"))
        assert remote_store.write_count == 2
        assert stored["budgets"] == {"food": "2"}
        assert stored["revision"] == 2
        asyncio.run(session.close())

    def test_subscription_outlives_start_loop(self, local_backend):
        """Test the watch keeps running after the loop used for start() closes."""
        remote_store = LoopRecordingRemoteStore()
        session = build_session(local_backend, remote_store)
        asyncio.run(session.start("alice"))

        assert remote_store.watch_loop.is_running()
        assert session.coordinator.worker.running
        assert remote_store.watcher_count("alice") == 1

        asyncio.run(session.close())
        assert not session.coordinator.worker.running
        assert remote_store.watcher_count("alice") == 0

    def test_local_is_written_before_remote(self):
        order = []
        session = build_session(OrderedBackend(order), OrderedRemoteStore(order))
        asyncio.run(session.start("alice"))
        order.clear()

        session.store.set_budget("food", 50)
        drain(session)
        assert order == ["local", "remote"]
        asyncio.run(session.close())

    def test_remote_failure_does_not_block_local(self, local_backend):
        session = build_session(local_backend, FailingRemoteStore())
        asyncio.run(session.start("alice"))

        transaction = session.store.add_transaction({"type": "income", "amount": "8", "date": TODAY})

        assert session.store.transactions == [transaction]
        assert session.local.load().transactions == [transaction]
        drain(session)
        assert session.audit_logger.recent_events(1)[0].event_type == AuditEventType.REMOTE_SAVE_FAILED
        asyncio.run(session.close())

    def test_remote_io_runs_off_the_caller_thread(self, local_backend):
        threads = []

        class ThreadRecordingRemoteStore(InMemorySnapshotStore):
            async def write(self, key, payload):
                threads.append(threading.current_thread())
                return await super().write(key, payload)

        session = build_session(local_backend, ThreadRecordingRemoteStore())
        asyncio.run(session.start("alice"))
        session.store.set_budget("food", 5)
        drain(session)

        assert threads and threads[0] is not threading.current_thread()
        asyncio.run(session.close())

    def test_close_flushes_and_unsubscribes(self, session, remote_store):
        async def scenario():
            await session.start("alice")
            session.store.set_budget("food", 20)
            await session.close()

        asyncio.run(scenario())

        assert remote_store.write_count == 1
        assert remote_store.watcher_count("alice") == 0
