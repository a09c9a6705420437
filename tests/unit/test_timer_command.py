"""
Unit tests for timer command output.
"""

import pytest

from timora.cli.timora_cli import _reward_message
from timora.sync import InMemoryProgressStore, SyncCoordinator
from timora.sync.store import RecentSession


class TestRewardMessage:
    def test_reports_recorded_coins(self):
        session = RecentSession(id="evt-1", mode="focus", minutes=50, coins=25, completed_at="2026-10-19T10:00:00")
        message = _reward_message(session, 3)
        assert "+25 coins" in message
        assert "focus session 3 done" in message

    @pytest.mark.asyncio
    async def test_matches_ledger_reward(self, today, focus_event):
        coordinator = await SyncCoordinator.connect(InMemoryProgressStore(), "learner", today=lambda: today)
        coordinator.apply_completion(focus_event())

        message = _reward_message(coordinator.record.recent_sessions[0], 1)

        assert "+10 coins" in message
        await coordinator.flush()
