"""
Progress Sync Engine.

Components:
- coordinator: SyncCoordinator, the single reader/writer of the persisted record
- store: persisted record schema and store implementations (in-memory, SQL)
"""

from timora.sync.coordinator import SyncCoordinator, SyncEnvelope, SyncStatus
from timora.sync.store import (
    InMemoryProgressStore,
    ProgressStore,
    SqlProgressStore,
    StoredSnapshot,
    UserRecord,
)

__all__ = [
    "InMemoryProgressStore",
    "ProgressStore",
    "SqlProgressStore",
    "StoredSnapshot",
    "SyncCoordinator",
    "SyncEnvelope",
    "SyncStatus",
    "UserRecord",
]
