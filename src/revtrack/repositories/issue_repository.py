# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2026 Revtrack Contributors

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from revtrack.models.changeset import ChangesetIssue
from revtrack.models.issue import Issue, IssueStatus
from revtrack.repositories.base import BaseRepository


class IssueRepository(BaseRepository[Issue]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Issue)

    async def get_many(
        self, issue_ids: Iterable[int], project_id: int | None = None
    ) -> list[Issue]:
        ids = list(issue_ids)
        if not ids:
            return []
        stmt = (
            select(Issue)
            .where(Issue.id.in_(ids))
            .options(selectinload(Issue.status))
            .order_by(Issue.id)
        )
        if project_id is not None:
            stmt = stmt.where(Issue.project_id == project_id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_status(self, status_id: int) -> IssueStatus | None:
        return await self.session.get(IssueStatus, status_id)

    async def get_status_by_name(self, name: str) -> IssueStatus | None:
        result = await self.session.execute(
            select(IssueStatus).where(IssueStatus.name == name)
        )
        return result.scalar_one_or_none()

    async def relations_for_changeset(self, changeset_id: int) -> dict[int, ChangesetIssue]:
        result = await self.session.execute(
            select(ChangesetIssue).where(ChangesetIssue.changeset_id == changeset_id)
        )
        return {rel.issue_id: rel for rel in result.scalars().all()}
