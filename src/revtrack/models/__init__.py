# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2026 Revtrack Contributors

from revtrack.models.base import Base, IntegerIDMixin, TimestampMixin
from revtrack.models.changeset import (
    Change,
    ChangeAction,
    Changeset,
    ChangesetIssue,
    IssueRelation,
    with_leading_slash,
)
from revtrack.models.issue import Issue, IssueStatus
from revtrack.models.project import Project
from revtrack.models.repository import Repository
from revtrack.models.user import User

__all__ = [
    "Base",
    "Change",
    "ChangeAction",
    "Changeset",
    "ChangesetIssue",
    "IntegerIDMixin",
    "Issue",
    "IssueRelation",
    "IssueStatus",
    "Project",
    "Repository",
    "TimestampMixin",
    "User",
    "with_leading_slash",
]
