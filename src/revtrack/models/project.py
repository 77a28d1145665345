# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2026 Revtrack Contributors

from __future__ import annotations

from sqlalchemy import ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from revtrack.models.base import Base, IntegerIDMixin, TimestampMixin


class Project(IntegerIDMixin, TimestampMixin, Base):
    __tablename__ = "projects"

    name: Mapped[str] = mapped_column(Text, nullable=False)
    identifier: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    # Status applied to issues closed from a commit message. Falls back to the
    # ``commit_fix_status`` setting when unset.
    closed_status_id: Mapped[int | None] = mapped_column(
        ForeignKey("issue_statuses.id"),
        default=None,
    )

    # Relationships
    repository: Mapped[Repository | None] = relationship(  # type: ignore[name-defined]  # noqa: F821
        back_populates="project",
    )
