# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2026 Revtrack Contributors

from __future__ import annotations

from sqlalchemy import delete, exists, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from revtrack.models.changeset import Change, Changeset, ChangesetIssue
from revtrack.models.user import User
from revtrack.repositories.base import BaseRepository

# Canonical ordering for every "latest" query.
LATEST_FIRST = (Changeset.committed_on.desc(), Changeset.id.desc())


class ChangesetRepository(BaseRepository[Changeset]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Changeset)

    async def latest(self, repository_id: int, limit: int = 10) -> list[Changeset]:
        stmt = (
            select(Changeset)
            .where(Changeset.repository_id == repository_id)
            .options(selectinload(Changeset.user))
            .order_by(*LATEST_FIRST)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def latest_for_path(
        self, repository_id: int, path: str, limit: int = 10
    ) -> list[Changeset]:
        """Changesets with a change at *path*, each counted once."""
        touches_path = exists().where(
            Change.changeset_id == Changeset.id, Change.path == path
        )
        stmt = (
            select(Changeset)
            .where(Changeset.repository_id == repository_id, touches_path)
            .options(selectinload(Changeset.user))
            .order_by(*LATEST_FIRST)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_latest(self, repository_id: int) -> Changeset | None:
        stmt = (
            select(Changeset)
            .where(Changeset.repository_id == repository_id)
            .order_by(*LATEST_FIRST)
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_revision(
        self, repository_id: int, revision: str
    ) -> Changeset | None:
        result = await self.session.execute(
            select(Changeset).where(
                Changeset.repository_id == repository_id,
                Changeset.revision == revision,
            )
        )
        return result.scalar_one_or_none()

    async def find_by_name(self, repository_id: int, name: str) -> Changeset | None:
        """Exact match for revision numbers, prefix match for hashes."""
        if name.isdigit():
            condition = Changeset.revision == name
        else:
            condition = Changeset.revision.startswith(name, autoescape=True)
        stmt = (
            select(Changeset)
            .where(Changeset.repository_id == repository_id, condition)
            .order_by(*LATEST_FIRST)
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_batch(
        self, repository_id: int, after_id: int = 0, limit: int = 500
    ) -> list[Changeset]:
        """Keyset page of a repository's changesets in insertion order."""
        stmt = (
            select(Changeset)
            .where(Changeset.repository_id == repository_id, Changeset.id > after_id)
            .order_by(Changeset.id)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_changes(self, changeset_id: int) -> list[Change]:
        result = await self.session.execute(
            select(Change).where(Change.changeset_id == changeset_id).order_by(Change.id)
        )
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Committers
    # ------------------------------------------------------------------

    async def committers(self, repository_id: int) -> list[tuple[str | None, int | None]]:
        stmt = (
            select(Changeset.committer, Changeset.user_id)
            .where(Changeset.repository_id == repository_id)
            .distinct()
            .order_by(Changeset.committer)
        )
        result = await self.session.execute(stmt)
        return [(row.committer, row.user_id) for row in result]

    async def find_committer_user(
        self, repository_id: int, committer: str
    ) -> User | None:
        """User already mapped to *committer* in this repository, if any."""
        stmt = (
            select(User)
            .join(Changeset, Changeset.user_id == User.id)
            .where(
                Changeset.repository_id == repository_id,
                Changeset.committer == committer,
            )
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def reassign_committer(
        self, repository_id: int, committer: str | None, user_id: int | None
    ) -> int:
        committer_match = (
            Changeset.committer.is_(None)
            if committer is None
            else Changeset.committer == committer
        )
        result = await self.session.execute(
            update(Changeset)
            .where(Changeset.repository_id == repository_id, committer_match)
            .values(user_id=user_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    # ------------------------------------------------------------------
    # Bulk delete
    # ------------------------------------------------------------------

    async def purge(self, repository_id: int) -> dict[str, int]:
        """Delete a repository's history with three set-based statements.

        Order matters: issue relations and changes reference changesets.
        """
        changeset_ids = select(Changeset.id).where(
            Changeset.repository_id == repository_id
        )
        relations = await self.session.execute(
            delete(ChangesetIssue)
            .where(ChangesetIssue.changeset_id.in_(changeset_ids))
            .execution_options(synchronize_session=False)
        )
        changes = await self.session.execute(
            delete(Change)
            .where(Change.changeset_id.in_(changeset_ids))
            .execution_options(synchronize_session=False)
        )
        changesets = await self.session.execute(
            delete(Changeset)
            .where(Changeset.repository_id == repository_id)
            .execution_options(synchronize_session=False)
        )
        return {
            "issue_relations": relations.rowcount,
            "changes": changes.rowcount,
            "changesets": changesets.rowcount,
        }
