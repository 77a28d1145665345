# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2026 Revtrack Contributors

"""Map raw SCM committer strings to user accounts."""

from __future__ import annotations

import re

from sqlalchemy.ext.asyncio import AsyncSession

from revtrack.models.user import User
from revtrack.repositories.changeset_repository import ChangesetRepository
from revtrack.repositories.user_repository import UserRepository

# "name <email>" or a bare "name"
_COMMITTER_RE = re.compile(r"^([^<]+)(<(.*)>)?$")


def parse_committer(committer: str) -> tuple[str, str | None] | None:
    """Split a committer string into ``(username, email)``."""
    match = _COMMITTER_RE.match(committer.strip())
    if match is None:
        return None
    email = (match.group(3) or "").strip()
    return match.group(1).strip(), email or None


class CommitterResolver:
    """Resolves committers for one session.

    Lookups are cached per instance, so a resolver should live no longer than
    a single fetch run.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._changesets = ChangesetRepository(session)
        self._users = UserRepository(session)
        self._cache: dict[tuple[int, str], User | None] = {}

    def clear_cache(self) -> None:
        self._cache.clear()

    async def resolve(self, repository_id: int, committer: str | None) -> User | None:
        """Return the user for *committer*, or ``None`` when nothing matches.

        Tries, in order: an existing mapping in this repository's changesets,
        a user whose login equals the name part, a user whose mail equals the
        email part.
        """
        if not committer or not committer.strip():
            return None
        key = (repository_id, committer)
        if key not in self._cache:
            self._cache[key] = await self._lookup(repository_id, committer)
        return self._cache[key]

    async def _lookup(self, repository_id: int, committer: str) -> User | None:
        user = await self._changesets.find_committer_user(repository_id, committer)
        if user is not None:
            return user
        parsed = parse_committer(committer)
        if parsed is None:
            return None
        username, email = parsed
        user = await self._users.get_by_login(username)
        if user is None and email:
            user = await self._users.get_by_mail(email)
        return user
