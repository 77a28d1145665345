# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2026 Revtrack Contributors

from __future__ import annotations

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from revtrack.models.base import Base, IntegerIDMixin, TimestampMixin


class Repository(IntegerIDMixin, TimestampMixin, Base):
    """An external SCM repository mirrored for one project.

    ``kind`` selects the adapter from the adapter registry.
    """

    __tablename__ = "repositories"

    project_id: Mapped[int] = mapped_column(
        ForeignKey("projects.id"),
        nullable=False,
        unique=True,
    )
    url: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    root_url: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    login: Mapped[str | None] = mapped_column(String(60), default=None)
    password: Mapped[str | None] = mapped_column(String(60), default=None)
    kind: Mapped[str] = mapped_column(String(30), nullable=False)

    # Relationships
    project: Mapped[Project] = relationship(  # type: ignore[name-defined]  # noqa: F821
        back_populates="repository",
    )
    # No ORM cascade: history is removed with set-based deletes before the row.
    changesets: Mapped[list[Changeset]] = relationship(  # type: ignore[name-defined]  # noqa: F821
        back_populates="repository",
        passive_deletes=True,
    )

    @validates("url", "root_url")
    def _strip(self, key: str, value: str | None) -> str:
        return value.strip() if value else ""
