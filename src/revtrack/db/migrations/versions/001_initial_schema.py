# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2026 Revtrack Contributors

"""Initial schema: projects, users, issues, repositories and changesets.

Revision ID: 001
Revises:
Create Date: 2026-10-18
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision: str = "001"
down_revision: str | None = None
branch_labels: tuple[str, ...] | None = None
depends_on: tuple[str, ...] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=True,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=True,
            server_default=sa.func.now(),
        ),
    ]


def upgrade() -> None:
    # ------------------------------------------------------------------
    # 1. issue_statuses
    # ------------------------------------------------------------------
    op.create_table(
        "issue_statuses",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(30), nullable=False, unique=True),
        sa.Column("is_closed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_default", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("position", sa.Integer(), nullable=True, server_default="1"),
    )

    # ------------------------------------------------------------------
    # 2. projects
    # ------------------------------------------------------------------
    op.create_table(
        "projects",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("identifier", sa.String(100), nullable=False, unique=True),
        sa.Column(
            "closed_status_id",
            sa.Integer(),
            sa.ForeignKey("issue_statuses.id"),
            nullable=True,
        ),
        *_timestamps(),
    )

    # ------------------------------------------------------------------
    # 3. users
    # ------------------------------------------------------------------
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("login", sa.String(255), nullable=False, unique=True),
        sa.Column("mail", sa.String(255), nullable=True),
        sa.Column("firstname", sa.String(30), nullable=True, server_default=""),
        sa.Column("lastname", sa.String(30), nullable=True, server_default=""),
        *_timestamps(),
    )
    op.create_index("idx_users_mail", "users", ["mail"])

    # ------------------------------------------------------------------
    # 4. issues
    # ------------------------------------------------------------------
    op.create_table(
        "issues",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "project_id", sa.Integer(), sa.ForeignKey("projects.id"), nullable=False
        ),
        sa.Column("subject", sa.Text(), nullable=False),
        sa.Column(
            "status_id",
            sa.Integer(),
            sa.ForeignKey("issue_statuses.id"),
            nullable=False,
        ),
        sa.Column("done_ratio", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
        sa.CheckConstraint(
            "done_ratio >= 0 AND done_ratio <= 100",
            name="ck_issues_done_ratio",
        ),
    )
    op.create_index("idx_issues_project", "issues", ["project_id"])

    # ------------------------------------------------------------------
    # 5. repositories
    # ------------------------------------------------------------------
    op.create_table(
        "repositories",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "project_id",
            sa.Integer(),
            sa.ForeignKey("projects.id"),
            nullable=False,
            unique=True,
        ),
        sa.Column("url", sa.String(255), nullable=False, server_default=""),
        sa.Column("root_url", sa.String(255), nullable=False, server_default=""),
        sa.Column("login", sa.String(60), nullable=True),
        sa.Column("password", sa.String(60), nullable=True),
        sa.Column("kind", sa.String(30), nullable=False),
        *_timestamps(),
    )

    # ------------------------------------------------------------------
    # 6. changesets
    # ------------------------------------------------------------------
    op.create_table(
        "changesets",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "repository_id",
            sa.Integer(),
            sa.ForeignKey("repositories.id"),
            nullable=False,
        ),
        sa.Column("revision", sa.String(255), nullable=False),
        sa.Column("scmid", sa.String(255), nullable=True),
        sa.Column("committer", sa.String(255), nullable=True),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("committed_on", sa.DateTime(timezone=True), nullable=False),
        sa.Column("comment", sa.Text(), nullable=False, server_default=""),
        sa.UniqueConstraint(
            "repository_id", "revision", name="uq_changesets_repository_revision"
        ),
    )
    op.create_index(
        "idx_changesets_committed_on", "changesets", ["repository_id", "committed_on"]
    )
    op.create_index(
        "idx_changesets_committer", "changesets", ["repository_id", "committer"]
    )

    # ------------------------------------------------------------------
    # 7. changes
    # ------------------------------------------------------------------
    op.create_table(
        "changes",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "changeset_id",
            sa.Integer(),
            sa.ForeignKey("changesets.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("action", sa.String(1), nullable=False),
        sa.Column("path", sa.Text(), nullable=False),
        sa.Column("from_path", sa.Text(), nullable=True),
        sa.Column("from_revision", sa.String(255), nullable=True),
        sa.CheckConstraint(
            "action IN ('A', 'M', 'D', 'R', 'C')",
            name="ck_changes_action",
        ),
    )
    op.create_index("idx_changes_changeset", "changes", ["changeset_id"])
    op.create_index("idx_changes_path", "changes", ["path"])

    # ------------------------------------------------------------------
    # 8. changesets_issues
    # ------------------------------------------------------------------
    op.create_table(
        "changesets_issues",
        sa.Column(
            "changeset_id",
            sa.Integer(),
            sa.ForeignKey("changesets.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "issue_id",
            sa.Integer(),
            sa.ForeignKey("issues.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "relation", sa.String(20), nullable=False, server_default="references"
        ),
        sa.CheckConstraint(
            "relation IN ('references', 'fixes')",
            name="ck_changesets_issues_relation",
        ),
    )
    op.create_index("idx_changesets_issues_issue", "changesets_issues", ["issue_id"])

    # ------------------------------------------------------------------
    # Seed statuses used when a commit closes an issue
    # ------------------------------------------------------------------
    op.execute(
        "INSERT INTO issue_statuses (name, is_closed, is_default, position) VALUES "
        "('New', false, true, 1), ('Closed', true, false, 2)"
    )


def downgrade() -> None:
    op.drop_table("changesets_issues")
    op.drop_table("changes")
    op.drop_table("changesets")
    op.drop_table("repositories")
    op.drop_table("issues")
    op.drop_table("users")
    op.drop_table("projects")
    op.drop_table("issue_statuses")
