# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2026 Revtrack Contributors

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from revtrack.models.repository import Repository
from revtrack.repositories.base import BaseRepository


class RepositoryRepository(BaseRepository[Repository]):
    """Data access for SCM repository records."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Repository)

    async def get_by_project(self, project_id: int) -> Repository | None:
        result = await self.session.execute(
            select(Repository).where(Repository.project_id == project_id)
        )
        return result.scalar_one_or_none()

    async def list_ids(self) -> list[int]:
        result = await self.session.execute(select(Repository.id).order_by(Repository.id))
        return list(result.scalars().all())

    async def find_by_urls(self, urls: Iterable[str]) -> list[Repository]:
        candidates = {u.strip().rstrip("/").removesuffix(".git") for u in urls if u}
        if not candidates:
            return []
        variants = candidates | {f"{u}.git" for u in candidates}
        result = await self.session.execute(
            select(Repository)
            .where(Repository.url.in_(variants) | Repository.root_url.in_(variants))
            .order_by(Repository.id)
        )
        return list(result.scalars().all())
