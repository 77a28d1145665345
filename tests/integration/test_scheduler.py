# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2026 Revtrack Contributors

from __future__ import annotations

import asyncio

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from revtrack.config import Settings
from revtrack.models.changeset import Changeset, ChangesetIssue
from revtrack.scm.registry import AdapterRegistry
from revtrack.services.scheduler import (
    ChangesetFetchWorker,
    fetch_all,
    fetch_repository,
    scan_all_for_issue_ids,
)
from tests.conftest import (
    FakeAdapter,
    make_revision,
    seed_issue,
    seed_repository,
    seed_statuses,
)


async def _count(session: AsyncSession, model: type) -> int:
    return await session.scalar(select(func.count()).select_from(model))


class TestFetchAll:
    async def test_failure_does_not_stop_others(
        self,
        db_session: AsyncSession,
        session_factory: async_sessionmaker[AsyncSession],
        registry: AdapterRegistry,
        settings: Settings,
        fake_adapter: type[FakeAdapter],
    ) -> None:
        broken = await seed_repository(db_session, identifier="broken", url="invalid://x")
        working = await seed_repository(db_session, identifier="working")
        fake_adapter.history = [make_revision("r0"), make_revision("r1", minutes=1)]

        results = await fetch_all(session_factory, registry, settings)

        by_id = {r.repository_id: r for r in results}
        assert not by_id[broken.id].ok
        assert "Cannot create fake adapter" in by_id[broken.id].error
        assert by_id[working.id].ok
        assert by_id[working.id].count == 2
        assert await _count(db_session, Changeset) == 2

    async def test_partial_fetch_reported(
        self,
        db_session: AsyncSession,
        session_factory: async_sessionmaker[AsyncSession],
        registry: AdapterRegistry,
        settings: Settings,
        fake_adapter: type[FakeAdapter],
    ) -> None:
        repository = await seed_repository(db_session)
        fake_adapter.history = [make_revision(f"r{i}", minutes=i) for i in range(4)]
        fake_adapter.fail_after = 3

        result = await fetch_repository(session_factory, registry, settings, repository.id)

        assert not result.ok
        assert result.count == 3
        assert await _count(db_session, Changeset) == 3

    async def test_selected_and_missing_repositories(
        self,
        db_session: AsyncSession,
        session_factory: async_sessionmaker[AsyncSession],
        registry: AdapterRegistry,
        settings: Settings,
        fake_adapter: type[FakeAdapter],
    ) -> None:
        first = await seed_repository(db_session, identifier="first")
        await seed_repository(db_session, identifier="second")
        fake_adapter.history = [make_revision("r0")]

        results = await fetch_all(session_factory, registry, settings, [first.id, 999])

        assert [(r.repository_id, r.ok) for r in results] == [(first.id, True), (999, False)]
        assert results[1].error == "repository not found"
        assert await _count(db_session, Changeset) == 1


class TestScanAll:
    async def test_scan_all(
        self,
        db_session: AsyncSession,
        session_factory: async_sessionmaker[AsyncSession],
        registry: AdapterRegistry,
        settings: Settings,
        fake_adapter: type[FakeAdapter],
    ) -> None:
        new, _ = await seed_statuses(db_session)
        repository = await seed_repository(db_session)
        issue = await seed_issue(db_session, project_id=repository.project_id, status=new)
        await db_session.commit()
        fake_adapter.history = [make_revision("r0", message=f"see #{issue.id}")]
        await fetch_all(session_factory, registry, settings)
        assert await _count(db_session, ChangesetIssue) == 0

        wildcard = settings.model_copy(update={"commit_ref_keywords": ["*"]})
        results = await scan_all_for_issue_ids(session_factory, registry, wildcard)

        assert [(r.repository_id, r.count) for r in results] == [(repository.id, 1)]
        assert await _count(db_session, ChangesetIssue) == 1


class TestChangesetFetchWorker:
    async def test_worker_fetches_until_stopped(
        self,
        db_session: AsyncSession,
        session_factory: async_sessionmaker[AsyncSession],
        registry: AdapterRegistry,
        settings: Settings,
        fake_adapter: type[FakeAdapter],
    ) -> None:
        await seed_repository(db_session)
        fake_adapter.history = [make_revision("r0")]

        # The first run starts at once; the next one is an hour away.
        worker = ChangesetFetchWorker(session_factory, registry, settings, interval=3600)
        await worker.start()
        try:
            for _ in range(200):
                if fake_adapter.closed:
                    break
                await asyncio.sleep(0.01)
            await asyncio.sleep(0.05)
        finally:
            await worker.stop()

        assert fake_adapter.closed == 1
        assert await _count(db_session, Changeset) == 1
