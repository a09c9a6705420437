"""
Timora - rule-constrained study planning and focus-session tracking.

Components:
- planner: RuleSet, deterministic PlanGenerator, plan validation, remote optimizer
- study: SessionTimer state machine and RewardLedger
- sync: SyncCoordinator reconciling local progress with a persisted record
"""

__version__ = "1.0.0"
