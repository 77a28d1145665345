# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2026 Revtrack Contributors

from revtrack.repositories.base import BaseRepository
from revtrack.repositories.changeset_repository import ChangesetRepository
from revtrack.repositories.issue_repository import IssueRepository
from revtrack.repositories.repository_repository import RepositoryRepository
from revtrack.repositories.user_repository import UserRepository

__all__ = [
    "BaseRepository",
    "ChangesetRepository",
    "IssueRepository",
    "RepositoryRepository",
    "UserRepository",
]
