"""
Integration tests: timer -> coordinator -> SQLite store.
"""

import pytest

from timora.db import configure_database, init_db, session_scope
from timora.db.models import UserProgressRow
from timora.study import SessionTimer, TimerMode, TimerSettings
from timora.sync import SqlProgressStore, SyncCoordinator, UserRecord

USER = "integration-user"


@pytest.fixture
def sqlite_db(tmp_path):
    """Fresh SQLite database per test."""
    engine = configure_database(f"sqlite:///{tmp_path / 'timora.db'}")
    init_db()
    yield engine
    engine.dispose()


class TestSqlProgressStore:
    @pytest.mark.asyncio
    async def test_missing_user(self, sqlite_db):
        assert await SqlProgressStore().load(USER) is None

    @pytest.mark.asyncio
    async def test_save_and_load(self, sqlite_db, today):
        store = SqlProgressStore()
        record = UserRecord(coins=30, total_focus_hours=1.5, current_streak=2, last_active_date=today)

        assert await store.save(USER, record) == 1
        assert await store.save(USER, record.model_copy(update={"coins": 40})) == 2

        snapshot = await store.load(USER)
        assert snapshot.revision == 2
        assert snapshot.record.coins == 40
        assert snapshot.record.last_active_date == today
        assert snapshot.record.settings.focus_minutes == 25

    @pytest.mark.asyncio
    async def test_row_holds_document_fields(self, sqlite_db, today):
        await SqlProgressStore().save(USER, UserRecord(coins=10, last_active_date=today))

        with session_scope() as db:
            row = db.get(UserProgressRow, USER)
            assert row.last_active_date == today.isoformat()
            assert row.settings["sessionsBeforeLongBreak"] == 4
            assert row.recent_sessions == []

    @pytest.mark.asyncio
    async def test_poll_notifies_on_foreign_write(self, sqlite_db):
        ours = SqlProgressStore()
        theirs = SqlProgressStore()
        received = []
        ours.subscribe(USER, received.append)

        await ours.save(USER, UserRecord(coins=10))
        assert await ours.poll(USER) is None

        await theirs.save(USER, UserRecord(coins=90))
        snapshot = await ours.poll(USER)

        assert snapshot.revision == 2
        assert [s.record.coins for s in received] == [90]
        assert await ours.poll(USER) is None


class TestStudyFlow:
    """A full focus session ends up in the database exactly once."""

    @pytest.mark.asyncio
    async def test_focus_session_is_rewarded_and_persisted(self, sqlite_db, today):
        coordinator = await SyncCoordinator.connect(SqlProgressStore(), USER, today=lambda: today)
        timer = SessionTimer(TimerSettings(focus_minutes=1))
        timer.subscribe(coordinator.apply_completion)

        timer.start()
        timer.advance(60)
        assert timer.mode == TimerMode.SHORT_BREAK
        assert await coordinator.flush() is True
        await coordinator.close()

        snapshot = await SqlProgressStore().load(USER)
        assert snapshot.record.coins == 20
        assert snapshot.record.total_focus_hours == pytest.approx(1 / 60)
        assert snapshot.record.current_streak == 1
        assert len(snapshot.record.recent_sessions) == 1

    @pytest.mark.asyncio
    async def test_restart_does_not_double_reward(self, sqlite_db, today, focus_event):
        first = await SyncCoordinator.connect(SqlProgressStore(), USER, today=lambda: today)
        first.apply_completion(focus_event("evt-once"))
        await first.flush()
        await first.close()

        second = await SyncCoordinator.connect(SqlProgressStore(), USER, today=lambda: today)
        assert second.apply_completion(focus_event("evt-once")) is False
        assert second.progress.coins == 20
        await second.close()

    @pytest.mark.asyncio
    async def test_remote_change_picked_up_by_poll(self, sqlite_db, today):
        store = SqlProgressStore()
        coordinator = await SyncCoordinator.connect(store, USER, today=lambda: today)
        await coordinator.flush()

        await SqlProgressStore().save(USER, UserRecord(coins=250))
        await store.poll(USER)

        assert coordinator.progress.coins == 250
        await coordinator.close()
