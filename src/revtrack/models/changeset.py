# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2026 Revtrack Contributors

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from revtrack.models.base import Base, IntegerIDMixin


class ChangeAction(str, enum.Enum):
    ADDED = "A"
    MODIFIED = "M"
    DELETED = "D"
    RENAMED = "R"
    COPIED = "C"

    @classmethod
    def normalize(cls, action: str) -> str:
        """Map word forms such as ``add`` or ``deleted`` to the one-letter code.

        Unknown values are returned unchanged and rejected by the database.
        """
        word = (action or "").strip().lower()
        if word.upper() in {member.value for member in cls}:
            return word.upper()
        return _ACTION_WORDS.get(word, action)


_ACTION_WORDS = {
    "add": "A",
    "added": "A",
    "modify": "M",
    "modified": "M",
    "delete": "D",
    "deleted": "D",
    "removed": "D",
    "rename": "R",
    "renamed": "R",
    "copy": "C",
    "copied": "C",
}


class IssueRelation(str, enum.Enum):
    REFERENCES = "references"
    FIXES = "fixes"


def with_leading_slash(path: str | None) -> str:
    """Normalize a repository path to the stored form (``/lib/foo.rb``)."""
    path = (path or "").strip()
    return path if path.startswith("/") else f"/{path}"


class Changeset(IntegerIDMixin, Base):
    __tablename__ = "changesets"

    repository_id: Mapped[int] = mapped_column(
        ForeignKey("repositories.id"),
        nullable=False,
    )
    revision: Mapped[str] = mapped_column(String(255), nullable=False)
    # Hash-like identifier for SCMs that also number revisions.
    scmid: Mapped[str | None] = mapped_column(String(255), default=None)
    committer: Mapped[str | None] = mapped_column(String(255), default=None)
    user_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        default=None,
    )
    committed_on: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    comment: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # Relationships
    repository: Mapped[Repository] = relationship(  # type: ignore[name-defined]  # noqa: F821
        back_populates="changesets",
    )
    user: Mapped[User | None] = relationship()  # type: ignore[name-defined]  # noqa: F821
    changes: Mapped[list[Change]] = relationship(
        back_populates="changeset",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    issue_relations: Mapped[list[ChangesetIssue]] = relationship(
        back_populates="changeset",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        UniqueConstraint(
            "repository_id", "revision", name="uq_changesets_repository_revision"
        ),
        Index("idx_changesets_committed_on", "repository_id", "committed_on"),
        Index("idx_changesets_committer", "repository_id", "committer"),
    )


class Change(IntegerIDMixin, Base):
    __tablename__ = "changes"

    changeset_id: Mapped[int] = mapped_column(
        ForeignKey("changesets.id", ondelete="CASCADE"),
        nullable=False,
    )
    action: Mapped[str] = mapped_column(String(1), nullable=False)
    path: Mapped[str] = mapped_column(Text, nullable=False)
    from_path: Mapped[str | None] = mapped_column(Text, default=None)
    from_revision: Mapped[str | None] = mapped_column(String(255), default=None)

    # Relationships
    changeset: Mapped[Changeset] = relationship(back_populates="changes")

    __table_args__ = (
        CheckConstraint(
            f"action IN ({', '.join(repr(a.value) for a in ChangeAction)})",
            name="ck_changes_action",
        ),
        Index("idx_changes_changeset", "changeset_id"),
        Index("idx_changes_path", "path"),
    )

    @validates("action")
    def _normalize_action(self, key: str, value: str) -> str:
        return ChangeAction.normalize(value)

    @validates("path")
    def _normalize_path(self, key: str, value: str) -> str:
        return with_leading_slash(value)


class ChangesetIssue(Base):
    """Link between a changeset and an issue mentioned in its comment."""

    __tablename__ = "changesets_issues"

    changeset_id: Mapped[int] = mapped_column(
        ForeignKey("changesets.id", ondelete="CASCADE"),
        primary_key=True,
    )
    issue_id: Mapped[int] = mapped_column(
        ForeignKey("issues.id", ondelete="CASCADE"),
        primary_key=True,
    )
    relation: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=IssueRelation.REFERENCES.value,
    )

    # Relationships
    changeset: Mapped[Changeset] = relationship(back_populates="issue_relations")

    __table_args__ = (
        CheckConstraint(
            "relation IN ('references', 'fixes')",
            name="ck_changesets_issues_relation",
        ),
        Index("idx_changesets_issues_issue", "issue_id"),
    )
