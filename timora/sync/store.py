"""
Progress stores - where the persisted user record lives.

The SyncCoordinator is the only caller. Stores assign a monotonically
increasing integer revision on every write and push snapshots to
subscribers (the realtime-subscription seam).

Implementations:
- InMemoryProgressStore: process-local, also used to simulate other devices
- SqlProgressStore: SQLAlchemy table, blocking I/O moved off the event loop
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date
from typing import Any, Protocol

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from timora.study.reward_ledger import NEW_ACCOUNT_COINS, UserProgress
from timora.study.session_timer import TimerSettings


class SettingsRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    focus_minutes: int = Field(default=25, alias="focusMinutes")
    short_break_minutes: int = Field(default=5, alias="shortBreakMinutes")
    long_break_minutes: int = Field(default=15, alias="longBreakMinutes")
    sessions_before_long_break: int = Field(default=4, alias="sessionsBeforeLongBreak")

    def to_settings(self) -> TimerSettings:
        return TimerSettings(
            focus_minutes=self.focus_minutes,
            short_break_minutes=self.short_break_minutes,
            long_break_minutes=self.long_break_minutes,
            sessions_before_long_break=self.sessions_before_long_break,
        )

    @classmethod
    def from_settings(cls, settings: TimerSettings) -> "SettingsRecord":
        return cls.model_validate(settings.to_record())


class RecentSession(BaseModel):
    """A completed session remembered for display and duplicate detection."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    mode: str
    minutes: int
    coins: int = 0
    completed_at: str = Field(alias="completedAt")


class UserRecord(BaseModel):
    """The persisted user record (external-store document shape)."""

    model_config = ConfigDict(populate_by_name=True)

    coins: int = Field(default=0, ge=0)
    total_focus_hours: float = Field(default=0.0, ge=0, alias="totalFocusHours")
    current_streak: int = Field(default=0, ge=0, alias="currentStreak")
    settings: SettingsRecord = Field(default_factory=SettingsRecord)
    last_active_date: date | None = Field(default=None, alias="lastActiveDate")
    recent_sessions: list[RecentSession] = Field(default_factory=list, alias="recentSessions")

    @property
    def progress(self) -> UserProgress:
        return UserProgress(
            coins=self.coins,
            total_focus_hours=self.total_focus_hours,
            current_streak=self.current_streak,
        )

    def with_progress(self, progress: UserProgress) -> "UserRecord":
        return self.model_copy(
            update={
                "coins": progress.coins,
                "total_focus_hours": progress.total_focus_hours,
                "current_streak": progress.current_streak,
            }
        )

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def new_account(cls, settings: TimerSettings | None = None) -> "UserRecord":
        """Record created at account bootstrap."""
        return cls(
            coins=NEW_ACCOUNT_COINS,
            settings=SettingsRecord.from_settings(settings or TimerSettings()),
        )


@dataclass(frozen=True)
class StoredSnapshot:
    """A record as the store last saw it."""

    record: UserRecord
    revision: int


SnapshotListener = Callable[[StoredSnapshot], None]


class ProgressStore(Protocol):
    """Async interface the SyncCoordinator talks to."""

    async def load(self, user_id: str) -> StoredSnapshot | None:
        ...

    async def save(self, user_id: str, record: UserRecord) -> int:
        """Write the full record; returns the new revision."""
        ...

    def subscribe(self, user_id: str, listener: SnapshotListener) -> Callable[[], None]:
        ...


class _ListenerRegistry:
    def __init__(self) -> None:
        self._listeners: dict[str, list[SnapshotListener]] = {}

    def subscribe(self, user_id: str, listener: SnapshotListener) -> Callable[[], None]:
        self._listeners.setdefault(user_id, []).append(listener)

        def unsubscribe() -> None:
            listeners = self._listeners.get(user_id, [])
            if listener in listeners:
                listeners.remove(listener)

        return unsubscribe

    def notify(self, user_id: str, snapshot: StoredSnapshot) -> None:
        for listener in list(self._listeners.get(user_id, [])):
            listener(snapshot)


class InMemoryProgressStore:
    """Dictionary-backed store with synchronous change notification."""

    def __init__(self) -> None:
        self._rows: dict[str, StoredSnapshot] = {}
        self._registry = _ListenerRegistry()

    async def load(self, user_id: str) -> StoredSnapshot | None:
        return self._rows.get(user_id)

    async def save(self, user_id: str, record: UserRecord) -> int:
        return self._put(user_id, record)

    def subscribe(self, user_id: str, listener: SnapshotListener) -> Callable[[], None]:
        return self._registry.subscribe(user_id, listener)

    def push_remote(self, user_id: str, record: UserRecord) -> StoredSnapshot:
        """Write as another device would; subscribers are notified."""
        self._put(user_id, record)
        return self._rows[user_id]

    def _put(self, user_id: str, record: UserRecord) -> int:
        current = self._rows.get(user_id)
        revision = (current.revision if current else 0) + 1
        snapshot = StoredSnapshot(record=record.model_copy(deep=True), revision=revision)
        self._rows[user_id] = snapshot
        self._registry.notify(user_id, snapshot)
        return revision


class SqlProgressStore:
    """
    SQLAlchemy-backed store.

    There is no server push, so poll() compares revisions and notifies
    subscribers of changes written by other processes.
    """

    def __init__(self) -> None:
        self._registry = _ListenerRegistry()
        self._seen: dict[str, int] = {}

    async def load(self, user_id: str) -> StoredSnapshot | None:
        return await asyncio.to_thread(self._load_sync, user_id)

    async def save(self, user_id: str, record: UserRecord) -> int:
        revision = await asyncio.to_thread(self._save_sync, user_id, record)
        self._seen[user_id] = revision
        return revision

    def subscribe(self, user_id: str, listener: SnapshotListener) -> Callable[[], None]:
        return self._registry.subscribe(user_id, listener)

    async def poll(self, user_id: str) -> StoredSnapshot | None:
        """Notify subscribers if the stored revision moved since we last looked."""
        snapshot = await self.load(user_id)
        if snapshot is None or snapshot.revision <= self._seen.get(user_id, 0):
            return None
        self._seen[user_id] = snapshot.revision
        self._registry.notify(user_id, snapshot)
        return snapshot

    @staticmethod
    def _to_snapshot(row) -> StoredSnapshot:
        record = UserRecord(
            coins=row.coins,
            total_focus_hours=row.total_focus_hours,
            current_streak=row.current_streak,
            settings=SettingsRecord.model_validate(row.settings or {}),
            last_active_date=row.last_active_date,
            recent_sessions=[RecentSession.model_validate(item) for item in row.recent_sessions or []],
        )
        return StoredSnapshot(record=record, revision=row.revision)

    def _load_sync(self, user_id: str) -> StoredSnapshot | None:
        from timora.db.database import session_scope
        from timora.db.models import UserProgressRow

        with session_scope() as db:
            row = db.get(UserProgressRow, user_id)
            return self._to_snapshot(row) if row is not None else None

    def _save_sync(self, user_id: str, record: UserRecord) -> int:
        from timora.db.database import session_scope
        from timora.db.models import UserProgressRow

        document = record.to_document()
        with session_scope() as db:
            row = db.get(UserProgressRow, user_id)
            if row is None:
                row = UserProgressRow(user_id=user_id, revision=0)
                db.add(row)
            row.coins = record.coins
            row.total_focus_hours = record.total_focus_hours
            row.current_streak = record.current_streak
            row.settings = document["settings"]
            row.last_active_date = document["lastActiveDate"]
            row.recent_sessions = document["recentSessions"]
            row.revision = (row.revision or 0) + 1
            revision = row.revision
        logger.debug(f"Saved progress for {user_id} at revision {revision}")
        return revision
