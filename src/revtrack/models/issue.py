# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2026 Revtrack Contributors

from __future__ import annotations

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from revtrack.models.base import Base, IntegerIDMixin, TimestampMixin


class IssueStatus(IntegerIDMixin, Base):
    __tablename__ = "issue_statuses"

    name: Mapped[str] = mapped_column(String(30), nullable=False, unique=True)
    is_closed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    position: Mapped[int] = mapped_column(Integer, default=1)


class Issue(IntegerIDMixin, TimestampMixin, Base):
    __tablename__ = "issues"

    project_id: Mapped[int] = mapped_column(
        ForeignKey("projects.id"),
        nullable=False,
    )
    subject: Mapped[str] = mapped_column(Text, nullable=False)
    status_id: Mapped[int] = mapped_column(
        ForeignKey("issue_statuses.id"),
        nullable=False,
    )
    done_ratio: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Relationships
    status: Mapped[IssueStatus] = relationship()

    __table_args__ = (
        CheckConstraint(
            "done_ratio >= 0 AND done_ratio <= 100",
            name="ck_issues_done_ratio",
        ),
        Index("idx_issues_project", "project_id"),
    )
