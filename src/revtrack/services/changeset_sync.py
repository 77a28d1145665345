# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2026 Revtrack Contributors

"""Changeset synchronizer: mirrors an SCM log into the changeset tables.

Each new revision is stored in its own transaction together with its
changes and issue links, so an interrupted fetch keeps everything stored so
far and the next run resumes after the newest stored revision.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from revtrack.config import Settings
from revtrack.models.changeset import Change, Changeset
from revtrack.models.repository import Repository
from revtrack.repositories.changeset_repository import ChangesetRepository
from revtrack.scm.base import Revision, ScmError
from revtrack.scm.registry import AdapterRegistry
from revtrack.services.identity import CommitterResolver
from revtrack.services.issue_scanner import IssueReferenceScanner
from revtrack.services.repository_service import RepositoryService

logger = logging.getLogger(__name__)


class FetchError(Exception):
    """Raised when the adapter fails partway through a fetch.

    ``persisted`` changesets were stored before the failure and stay stored.
    """

    def __init__(self, repository_id: int, persisted: int, reason: str = "") -> None:
        message = (
            f"Fetching repository {repository_id} aborted after "
            f"{persisted} changesets"
        )
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.repository_id = repository_id
        self.persisted = persisted


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class ChangesetSynchronizer:
    """Fetches, rescans and purges changesets of repositories.

    Commits on the given session: one transaction per stored changeset.
    """

    def __init__(
        self,
        session: AsyncSession,
        registry: AdapterRegistry,
        settings: Settings,
    ) -> None:
        self.session = session
        self.registry = registry
        self.settings = settings
        self._changesets = ChangesetRepository(session)

    async def fetch_changesets(self, repository: Repository) -> int:
        """Store revisions newer than the latest cached one.

        Returns the number of changesets stored. Raises ``AdapterUnavailable``
        when the adapter cannot be created and ``FetchError`` when the
        revision stream fails partway.
        """
        repository_id = repository.id
        project_id = repository.project_id

        service = RepositoryService(self.session, repository, self.registry)
        try:
            adapter = await service.adapter()
            await self.session.commit()

            latest = await self._changesets.get_latest(repository_id)
            since = latest.revision if latest is not None else None

            resolver = CommitterResolver(self.session)
            scanner = IssueReferenceScanner(self.session, self.settings)
            persisted = 0
            try:
                async for revision in adapter.revisions(since):
                    stored = await self._store(
                        repository, project_id, revision, resolver, scanner
                    )
                    if stored:
                        persisted += 1
            except (ScmError, IntegrityError) as exc:
                logger.warning(
                    "Fetch of repository %d failed after %d changesets: %s",
                    repository_id,
                    persisted,
                    exc,
                )
                raise FetchError(repository_id, persisted, str(exc)) from exc
        finally:
            await service.close()

        if persisted:
            logger.info(
                "Repository %d: stored %d new changesets after %s",
                repository_id,
                persisted,
                since or "the beginning",
            )
        return persisted

    async def _store(
        self,
        repository: Repository,
        project_id: int,
        revision: Revision,
        resolver: CommitterResolver,
        scanner: IssueReferenceScanner,
    ) -> bool:
        """Store one revision in its own transaction. ``False`` if skipped.

        An ``IntegrityError`` is only skipped when another fetch stored the
        same revision meanwhile; any other violation is re-raised.
        """
        repository_id = repository.id
        if await self._changesets.get_by_revision(repository_id, revision.identifier):
            logger.debug(
                "Repository %d: revision %s already stored",
                repository_id,
                revision.identifier,
            )
            return False

        committer = (revision.author or "")[:255] or None
        user = await resolver.resolve(repository_id, committer)
        changeset = Changeset(
            repository_id=repository_id,
            revision=revision.identifier,
            scmid=revision.scmid,
            committer=committer,
            user_id=user.id if user is not None else None,
            committed_on=_as_utc(revision.time),
            comment=revision.message or "",
            changes=[
                Change(
                    action=p.action,
                    path=p.path,
                    from_path=p.from_path,
                    from_revision=p.from_revision,
                )
                for p in revision.paths
            ],
        )
        self.session.add(changeset)
        try:
            await self.session.flush()
            await scanner.scan(changeset, project_id)
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            # The rollback expired every loaded object, the caller's included.
            resolver.clear_cache()
            scanner.clear_cache()
            await self.session.refresh(repository)
            if await self._changesets.get_by_revision(
                repository_id, revision.identifier
            ) is None:
                logger.error(
                    "Repository %d: revision %s rejected by the database",
                    repository_id,
                    revision.identifier,
                )
                raise
            logger.debug(
                "Repository %d: revision %s stored concurrently, skipped",
                repository_id,
                revision.identifier,
            )
            return False
        return True

    async def scan_changesets(self, repository: Repository) -> int:
        """Rescan all changesets of *repository* for issue references."""
        repository_id = repository.id
        scanner = IssueReferenceScanner(self.session, self.settings)
        created = await scanner.scan_repository(repository_id, repository.project_id)
        await self.session.commit()
        logger.info(
            "Repository %d: scan created %d issue relations", repository_id, created
        )
        return created

    async def purge(self, repository: Repository) -> dict[str, int]:
        """Delete all changesets, changes and issue relations of *repository*.

        Safe to re-run; the repository row is kept.
        """
        repository_id = repository.id
        counts = await self._changesets.purge(repository_id)
        await self.session.commit()
        logger.info(
            "Repository %d purged: %d changesets, %d changes, %d issue relations",
            repository_id,
            counts["changesets"],
            counts["changes"],
            counts["issue_relations"],
        )
        return counts
