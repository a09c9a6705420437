"""
Sync Coordinator - reconciles local progress with the persisted record.

Policy:
- Local mutations are applied synchronously and are immediately visible.
  Each one marks the envelope pending and queues a write of the full record.
- A remote snapshot arriving while a write is pending is held, never applied.
  After the write is acknowledged the held snapshot is applied only if it is
  newer than the acknowledged revision and nothing new is pending.
- With nothing pending, a remote snapshot newer than the last seen revision
  replaces the local record wholesale.
- Failed writes are retried with capped exponential backoff, then abandoned
  until the next flush(); local state is never rolled back.

The coordinator is the single consumer of the store subscription and the
single producer of outbound writes.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import date
from enum import Enum

from loguru import logger

from timora.core.errors import PersistenceFailure
from timora.study.reward_ledger import (
    UserProgress,
    advance_streak,
    apply_completion,
    reset_progress,
)
from timora.study.session_timer import SessionComplete, TimerMode, TimerSettings
from timora.sync.store import (
    ProgressStore,
    RecentSession,
    SettingsRecord,
    StoredSnapshot,
    UserRecord,
)

StreakPolicy = Callable[[UserProgress, date | None, date], UserProgress]


class SyncStatus(str, Enum):
    SYNCED = "synced"
    PENDING = "pending"
    FAILED = "failed"


@dataclass(frozen=True)
class SyncEnvelope:
    """Bookkeeping for the unacknowledged local write."""

    local: UserProgress
    remote_revision_seen: int | None
    pending_write: bool


StatusListener = Callable[[SyncStatus, PersistenceFailure | None], None]
ChangeListener = Callable[[UserRecord], None]


class SyncCoordinator:
    """
    Owns the local copy of one learner's record.

    Usage:
        coordinator = await SyncCoordinator.connect(store, "learner-1")
        coordinator.apply_completion(event)   # sync, UI sees it at once
        await coordinator.flush()             # wait for persistence
    """

    def __init__(
        self,
        store: ProgressStore,
        user_id: str = "default",
        record: UserRecord | None = None,
        revision: int | None = None,
        *,
        max_attempts: int = 5,
        backoff_base: float = 0.5,
        backoff_cap: float = 30.0,
        recent_limit: int = 50,
        streak_policy: StreakPolicy = advance_streak,
        today: Callable[[], date] = date.today,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._store = store
        self.user_id = user_id
        self._record = record or UserRecord.new_account()
        self._revision_seen = revision
        self._pending = False
        self._version = 0
        self._held: StoredSnapshot | None = None

        self.max_attempts = max(1, max_attempts)
        self.backoff_base = backoff_base
        self.backoff_cap = backoff_cap
        self.recent_limit = recent_limit
        self._streak_policy = streak_policy
        self._today = today
        self._sleep = sleep

        self._write_lock = asyncio.Lock()
        self._writer: asyncio.Task | None = None
        self._status = SyncStatus.SYNCED
        self.last_error: PersistenceFailure | None = None
        self._status_listeners: list[StatusListener] = []
        self._change_listeners: list[ChangeListener] = []
        self._unsubscribe: Callable[[], None] | None = None

    @classmethod
    async def connect(
        cls,
        store: ProgressStore,
        user_id: str = "default",
        default_settings: TimerSettings | None = None,
        **options,
    ) -> "SyncCoordinator":
        """Load (or bootstrap) the record and subscribe to remote snapshots."""
        snapshot = await store.load(user_id)
        if snapshot is None:
            logger.info(f"No stored record for {user_id}; bootstrapping a new account")
            coordinator = cls(store, user_id, UserRecord.new_account(default_settings), None, **options)
            coordinator._mark_dirty()
            coordinator._schedule_write()
        else:
            coordinator = cls(store, user_id, snapshot.record, snapshot.revision, **options)
        coordinator._unsubscribe = store.subscribe(user_id, coordinator.receive_remote)
        return coordinator

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def record(self) -> UserRecord:
        return self._record

    @property
    def progress(self) -> UserProgress:
        return self._record.progress

    @property
    def settings(self) -> TimerSettings:
        return self._record.settings.to_settings()

    @property
    def applied_ids(self) -> frozenset[str]:
        """Event ids already rewarded, as kept in the bounded recent sessions."""
        return frozenset(session.id for session in self._record.recent_sessions)

    @property
    def envelope(self) -> SyncEnvelope:
        return SyncEnvelope(
            local=self.progress,
            remote_revision_seen=self._revision_seen,
            pending_write=self._pending,
        )

    @property
    def status(self) -> SyncStatus:
        return self._status

    def on_status(self, listener: StatusListener) -> None:
        self._status_listeners.append(listener)

    def on_change(self, listener: ChangeListener) -> None:
        self._change_listeners.append(listener)

    # =========================================================================
    # LOCAL MUTATIONS
    # =========================================================================

    def apply_completion(self, event: SessionComplete) -> bool:
        """
        Reward a completed session exactly once.

        Returns:
            False if this event id was already applied (replay or restart)
        """
        if event.event_id in self.applied_ids:
            logger.debug(f"Ignoring duplicate completion {event.event_id}")
            return False

        before = self.progress
        progress = apply_completion(before, event)
        record = self._record
        if event.mode == TimerMode.FOCUS:
            today = self._today()
            progress = self._streak_policy(progress, record.last_active_date, today)
            record = record.model_copy(update={"last_active_date": today})

        entry = RecentSession(
            id=event.event_id,
            mode=event.mode.value,
            minutes=event.duration_minutes,
            coins=progress.coins - before.coins,
            completed_at=event.completed_at.isoformat(timespec="seconds"),
        )
        recent = [entry, *record.recent_sessions][: self.recent_limit]
        self._commit(record.with_progress(progress).model_copy(update={"recent_sessions": recent}))
        return True

    def update_settings(self, settings: TimerSettings) -> None:
        fixed, _ = settings.clamped()
        self._commit(self._record.model_copy(update={"settings": SettingsRecord.from_settings(fixed)}))

    def reset_progress(self) -> None:
        """Zero the counters on explicit request; settings are kept."""
        self._commit(
            self._record.with_progress(reset_progress()).model_copy(
                update={"last_active_date": None}
            )
        )

    def _commit(self, record: UserRecord) -> None:
        self._record = record
        self._mark_dirty()
        self._notify_change()
        self._schedule_write()

    def _mark_dirty(self) -> None:
        self._version += 1
        self._pending = True
        self._set_status(SyncStatus.PENDING)

    # =========================================================================
    # REMOTE SNAPSHOTS
    # =========================================================================

    def receive_remote(self, snapshot: StoredSnapshot) -> None:
        """Store subscription callback."""
        if self._pending:
            if self._held is None or snapshot.revision > self._held.revision:
                logger.debug(f"Holding remote revision {snapshot.revision} until local write is acknowledged")
                self._held = snapshot
            return
        self._apply_remote(snapshot)

    def _apply_remote(self, snapshot: StoredSnapshot) -> bool:
        if self._revision_seen is not None and snapshot.revision <= self._revision_seen:
            logger.debug(f"Discarding stale remote revision {snapshot.revision}")
            return False
        self._record = snapshot.record
        self._revision_seen = snapshot.revision
        logger.info(f"Applied remote revision {snapshot.revision} for {self.user_id}")
        self._notify_change()
        return True

    # =========================================================================
    # WRITES
    # =========================================================================

    def _schedule_write(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop: the write waits for the next flush()
            return
        if self._writer is None or self._writer.done():
            self._writer = loop.create_task(self._write_pending())

    async def flush(self) -> bool:
        """
        Wait for the in-flight write, or push a pending one (e.g. after FAILED).

        Returns:
            True when nothing is left pending
        """
        if self._writer is not None and not self._writer.done():
            await self._writer
        elif self._pending:
            await self._write_pending()
        return not self._pending

    async def close(self) -> None:
        """Stop listening; an in-flight write is allowed to finish."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        if self._writer is not None and not self._writer.done():
            await self._writer

    async def _write_pending(self) -> None:
        async with self._write_lock:
            while self._pending:
                version = self._version
                record = self._record
                revision = await self._save_with_retry(record)
                if revision is None:
                    return

                if self._revision_seen is None or revision > self._revision_seen:
                    self._revision_seen = revision
                if self._version == version:
                    self._pending = False
                    self._set_status(SyncStatus.SYNCED)
                    self._release_held()
                # Otherwise a newer mutation arrived mid-write; send it too

    async def _save_with_retry(self, record: UserRecord) -> int | None:
        last_error: Exception | None = None
        for attempt in range(self.max_attempts):
            try:
                revision = await self._store.save(self.user_id, record)
                if attempt:
                    logger.info(f"Progress write succeeded on attempt {attempt + 1}")
                self.last_error = None
                return revision
            except Exception as e:  # Store backends raise their own error types
                last_error = e
                if attempt < self.max_attempts - 1:
                    delay = min(self.backoff_cap, self.backoff_base * 2**attempt)
                    logger.warning(
                        f"Progress write failed on attempt {attempt + 1}/{self.max_attempts}: {e}. "
                        f"Retrying in {delay:.1f}s..."
                    )
                    await self._sleep(delay)

        failure = PersistenceFailure(
            f"Progress write abandoned after {self.max_attempts} attempts: {last_error}",
            attempts=self.max_attempts,
            cause=last_error,
        )
        logger.error(str(failure))
        self.last_error = failure
        self._set_status(SyncStatus.FAILED, failure)
        return None

    def _release_held(self) -> None:
        held, self._held = self._held, None
        if held is not None:
            self._apply_remote(held)

    # =========================================================================
    # NOTIFICATION
    # =========================================================================

    def _set_status(self, status: SyncStatus, error: PersistenceFailure | None = None) -> None:
        if status == self._status and error is None:
            return
        self._status = status
        for listener in list(self._status_listeners):
            listener(status, error)

    def _notify_change(self) -> None:
        for listener in list(self._change_listeners):
            listener(self._record)
