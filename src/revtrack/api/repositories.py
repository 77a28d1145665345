# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2026 Revtrack Contributors

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, BackgroundTasks, Body, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from revtrack.api.dependencies import get_registry, get_repository
from revtrack.config import Settings, get_settings
from revtrack.db.session import get_db, get_session_factory
from revtrack.models.repository import Repository
from revtrack.repositories.changeset_repository import ChangesetRepository
from revtrack.scm.registry import AdapterRegistry
from revtrack.schemas.changeset import (
    ChangeResponse,
    ChangesetDetailResponse,
    ChangesetResponse,
    CommitterResponse,
    EntryResponse,
    FetchScheduled,
)
from revtrack.schemas.common import ListResponse
from revtrack.services.repository_service import RepositoryService
from revtrack.services.scheduler import fetch_repository

router = APIRouter(prefix="/repositories", tags=["repositories"])


@router.get("/{repository_id}/changesets", response_model=ListResponse[ChangesetResponse])
async def list_changesets(
    path: str | None = Query(None),
    limit: int = Query(10, ge=1, le=200),
    repository: Repository = Depends(get_repository),
    registry: AdapterRegistry = Depends(get_registry),
    db: AsyncSession = Depends(get_db),
) -> ListResponse[ChangesetResponse]:
    service = RepositoryService(db, repository, registry)
    changesets = await service.latest_changesets(path, limit=limit)
    items = [ChangesetResponse.model_validate(c) for c in changesets]
    return ListResponse(items=items, total=len(items), limit=limit)


@router.get(
    "/{repository_id}/changesets/{name}", response_model=ChangesetDetailResponse
)
async def get_changeset(
    name: str,
    repository: Repository = Depends(get_repository),
    registry: AdapterRegistry = Depends(get_registry),
    db: AsyncSession = Depends(get_db),
) -> ChangesetDetailResponse:
    service = RepositoryService(db, repository, registry)
    changeset = await service.find_changeset_by_name(name)
    if changeset is None:
        raise HTTPException(status_code=404, detail="Changeset not found")
    changes = await ChangesetRepository(db).list_changes(changeset.id)
    return ChangesetDetailResponse(
        **ChangesetResponse.model_validate(changeset).model_dump(),
        changes=[ChangeResponse.model_validate(c) for c in changes],
    )


@router.get("/{repository_id}/entries", response_model=list[EntryResponse])
async def list_entries(
    path: str = Query(""),
    rev: str | None = Query(None),
    repository: Repository = Depends(get_repository),
    registry: AdapterRegistry = Depends(get_registry),
    db: AsyncSession = Depends(get_db),
) -> list[EntryResponse]:
    """Directory listing straight from the SCM; nothing is cached."""
    service = RepositoryService(db, repository, registry)
    try:
        entries = await service.entries(path, rev)
    finally:
        await service.close()
    return [EntryResponse.model_validate(e) for e in entries]


@router.get("/{repository_id}/committers", response_model=list[CommitterResponse])
async def list_committers(
    repository: Repository = Depends(get_repository),
    registry: AdapterRegistry = Depends(get_registry),
    db: AsyncSession = Depends(get_db),
) -> list[CommitterResponse]:
    service = RepositoryService(db, repository, registry)
    return [
        CommitterResponse(committer=committer, user_id=user_id)
        for committer, user_id in await service.committers()
    ]


@router.put("/{repository_id}/committers", response_model=list[CommitterResponse])
async def update_committers(
    mapping: Any = Body(...),
    repository: Repository = Depends(get_repository),
    registry: AdapterRegistry = Depends(get_registry),
    db: AsyncSession = Depends(get_db),
) -> list[CommitterResponse]:
    """Map committer strings to user ids, e.g. ``{"alice <a@x.com>": 7}``."""
    service = RepositoryService(db, repository, registry)
    if not await service.set_committer_ids(mapping):
        raise HTTPException(
            status_code=422, detail="Expected an object of committer to user id"
        )
    await db.commit()
    return [
        CommitterResponse(committer=committer, user_id=user_id)
        for committer, user_id in await service.committers()
    ]


@router.post(
    "/{repository_id}/fetch", response_model=FetchScheduled, status_code=202
)
async def schedule_fetch(
    background_tasks: BackgroundTasks,
    repository: Repository = Depends(get_repository),
    registry: AdapterRegistry = Depends(get_registry),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    settings: Settings = Depends(get_settings),
) -> FetchScheduled:
    """Queue a fetch to run after the response is sent."""
    background_tasks.add_task(
        fetch_repository, session_factory, registry, settings, repository.id
    )
    return FetchScheduled(repository_id=repository.id)
