"""
SQLAlchemy models for persisted learner state.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Float, Integer, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class UserProgressRow(Base):
    """One learner's progress, settings and recent sessions."""

    __tablename__ = "user_progress"

    user_id: Mapped[str] = mapped_column(Text, primary_key=True)
    coins: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_focus_hours: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    current_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    settings: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    last_active_date: Mapped[str | None] = mapped_column(Text)  # ISO date
    recent_sessions: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    revision: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(default=func.now(), onupdate=func.now())
