# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2026 Revtrack Contributors

from __future__ import annotations

from functools import lru_cache

from fastapi import Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from revtrack.config import get_settings
from revtrack.db.session import get_db
from revtrack.models.repository import Repository
from revtrack.repositories.repository_repository import RepositoryRepository
from revtrack.scm.registry import AdapterRegistry, default_registry


@lru_cache
def get_registry() -> AdapterRegistry:
    """Adapter registry shared by the app."""
    return default_registry(get_settings().forgejo_timeout)


async def get_repository(
    repository_id: int,
    db: AsyncSession = Depends(get_db),
) -> Repository:
    repository = await RepositoryRepository(db).get_by_id(repository_id)
    if repository is None:
        raise HTTPException(status_code=404, detail="Repository not found")
    return repository
