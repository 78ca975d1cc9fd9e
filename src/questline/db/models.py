"""ORM models for the progression engine.

Three tables: users, tasks and the per-(user, task) assignments relation.
Completion state lives on the assignment, never on the shared task row.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    false,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from questline.db.base import Base

# SQLite only autoincrements INTEGER PRIMARY KEY columns.
BigIntPK = BigInteger().with_variant(Integer, "sqlite")

EXTERNAL_ID_MAX_LENGTH = 64
NAME_MAX_LENGTH = 128
WALLET_ADDRESS_MAX_LENGTH = 128
REFERRAL_CODE_MAX_LENGTH = 32
TITLE_MAX_LENGTH = 256

# Largest values the columns hold on every backend.
MAX_POINTS = 2**31 - 1
MAX_ID = 2**63 - 1


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class User(Base):
    """A registered player, keyed externally by the messaging-platform id."""

    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint("external_id", name="uq_users_external_id"),
        UniqueConstraint("referral_code", name="uq_users_referral_code"),
        CheckConstraint("points >= 0", name="ck_users_points_non_negative"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    external_id: Mapped[str] = mapped_column(String(EXTERNAL_ID_MAX_LENGTH), nullable=False)
    name: Mapped[str] = mapped_column(String(NAME_MAX_LENGTH), nullable=False)
    points: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0", index=True)
    avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    wallet_address: Mapped[str | None] = mapped_column(String(WALLET_ADDRESS_MAX_LENGTH), nullable=True)
    referral_code: Mapped[str] = mapped_column(String(REFERRAL_CODE_MAX_LENGTH), nullable=False)
    invited_by: Mapped[str | None] = mapped_column(String(REFERRAL_CODE_MAX_LENGTH), nullable=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    assignments: Mapped[list[Assignment]] = relationship("Assignment", back_populates="user")


# ---------------------------------------------------------------------------
# Task catalog
# ---------------------------------------------------------------------------


class Task(Base):
    """A curated task. Identity is immutable, metadata is editable."""

    __tablename__ = "tasks"
    __table_args__ = (CheckConstraint("points >= 0", name="ck_tasks_points_non_negative"),)

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(TITLE_MAX_LENGTH), nullable=False)
    points: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    url: Mapped[str | None] = mapped_column(Text, nullable=True)
    image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )


# ---------------------------------------------------------------------------
# Assignments
# ---------------------------------------------------------------------------


class Assignment(Base):
    """Per-user task state. ``awarded_points`` is frozen at completion."""

    __tablename__ = "assignments"
    __table_args__ = (UniqueConstraint("user_id", "task_id", name="uq_assignments_user_task"),)

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    task_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("tasks.id"), nullable=False, index=True)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    awarded_points: Mapped[int | None] = mapped_column(Integer, nullable=True)
    assigned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    user: Mapped[User] = relationship("User", back_populates="assignments")
    task: Mapped[Task] = relationship("Task")
