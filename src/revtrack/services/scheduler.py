# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2026 Revtrack Contributors

"""Entry points for periodic fetch and scan runs.

Usage:
    Invoke ``fetch_all`` / ``scan_all_for_issue_ids`` from cron through the
    ``revtrack`` CLI, or let the web app run ``ChangesetFetchWorker`` when
    ``changeset_fetch_interval`` is set. Every repository gets its own session
    and a failure in one repository never stops the others.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from revtrack.config import Settings
from revtrack.repositories.repository_repository import RepositoryRepository
from revtrack.scm.base import ScmError
from revtrack.scm.registry import AdapterRegistry
from revtrack.services.changeset_sync import ChangesetSynchronizer, FetchError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RunResult:
    """Outcome of a fetch or scan for one repository."""

    repository_id: int
    count: int = 0
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def _repository_ids(
    session_factory: async_sessionmaker[AsyncSession],
    repository_ids: Iterable[int] | None,
) -> list[int]:
    if repository_ids is not None:
        return list(repository_ids)
    async with session_factory() as session:
        return await RepositoryRepository(session).list_ids()


async def fetch_repository(
    session_factory: async_sessionmaker[AsyncSession],
    registry: AdapterRegistry,
    settings: Settings,
    repository_id: int,
) -> RunResult:
    """Fetch new changesets of one repository in a fresh session."""
    async with session_factory() as session:
        repository = await RepositoryRepository(session).get_by_id(repository_id)
        if repository is None:
            return RunResult(repository_id, error="repository not found")
        sync = ChangesetSynchronizer(session, registry, settings)
        try:
            count = await sync.fetch_changesets(repository)
        except FetchError as exc:
            logger.error("%s", exc)
            return RunResult(repository_id, exc.persisted, str(exc))
        except ScmError as exc:
            logger.error("Repository %d not fetched: %s", repository_id, exc)
            return RunResult(repository_id, error=str(exc))
        except Exception as exc:
            logger.exception("Unexpected error fetching repository %d", repository_id)
            return RunResult(repository_id, error=str(exc))
        return RunResult(repository_id, count)


async def fetch_all(
    session_factory: async_sessionmaker[AsyncSession],
    registry: AdapterRegistry,
    settings: Settings,
    repository_ids: Iterable[int] | None = None,
) -> list[RunResult]:
    """Fetch new changesets for every repository (or the given ones)."""
    results = [
        await fetch_repository(session_factory, registry, settings, repository_id)
        for repository_id in await _repository_ids(session_factory, repository_ids)
    ]
    logger.info(
        "Fetched %d repositories: %d changesets, %d failures",
        len(results),
        sum(r.count for r in results),
        sum(not r.ok for r in results),
    )
    return results


async def scan_all_for_issue_ids(
    session_factory: async_sessionmaker[AsyncSession],
    registry: AdapterRegistry,
    settings: Settings,
    repository_ids: Iterable[int] | None = None,
) -> list[RunResult]:
    """Rescan the changesets of every repository for issue references."""
    results: list[RunResult] = []
    for repository_id in await _repository_ids(session_factory, repository_ids):
        async with session_factory() as session:
            repository = await RepositoryRepository(session).get_by_id(repository_id)
            if repository is None:
                results.append(RunResult(repository_id, error="repository not found"))
                continue
            sync = ChangesetSynchronizer(session, registry, settings)
            try:
                created = await sync.scan_changesets(repository)
            except Exception as exc:
                logger.exception("Unexpected error scanning repository %d", repository_id)
                results.append(RunResult(repository_id, error=str(exc)))
                continue
            results.append(RunResult(repository_id, created))
    return results


class ChangesetFetchWorker:
    """Runs ``fetch_all`` every ``interval`` seconds in the background."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        registry: AdapterRegistry,
        settings: Settings,
        interval: float,
    ) -> None:
        self._session_factory = session_factory
        self._registry = registry
        self._settings = settings
        self._interval = interval
        self._running = False
        self._task: asyncio.Task | None = None

    async def start(self) -> None:
        """Start the polling loop."""
        self._running = True
        self._task = asyncio.create_task(self._poll_loop())
        logger.info("Changeset fetch worker started (every %ss)", self._interval)

    async def stop(self) -> None:
        """Stop the polling loop."""
        self._running = False
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        logger.info("Changeset fetch worker stopped")

    async def _poll_loop(self) -> None:
        while self._running:
            try:
                await fetch_all(self._session_factory, self._registry, self._settings)
            except asyncio.CancelledError:
                break
            except Exception:
                logger.exception("Changeset fetch worker error in poll loop")
            await asyncio.sleep(self._interval)
