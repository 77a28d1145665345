# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2026 Revtrack Contributors

"""Query façade over one SCM repository.

History queries read the local changeset cache; browsing (entries, cat,
diff, refs) goes straight to the adapter with no caching.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from sqlalchemy.ext.asyncio import AsyncSession

from revtrack.config import Settings
from revtrack.models.changeset import Changeset, with_leading_slash
from revtrack.models.repository import Repository
from revtrack.repositories.changeset_repository import ChangesetRepository
from revtrack.repositories.repository_repository import RepositoryRepository
from revtrack.scm.base import AnnotatedLine, Entry, ScmAdapter
from revtrack.scm.registry import AdapterRegistry, UnknownKind

logger = logging.getLogger(__name__)

Committer = tuple[str | None, int | None]


class MalformedMapping(ValueError):
    """Raised internally for committer mappings that cannot be applied."""


def _coerce_user_id(value: object) -> int | None:
    """Turn a submitted user id into ``int`` or ``None`` (clear the mapping).

    Empty and non-positive values clear; anything not integer-like is
    malformed.
    """
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise MalformedMapping(f"not a user id: {value!r}")
    if isinstance(value, int):
        user_id = value
    elif isinstance(value, str) and value.strip().lstrip("-").isdigit():
        user_id = int(value.strip())
    else:
        raise MalformedMapping(f"not a user id: {value!r}")
    return user_id if user_id > 0 else None


class RepositoryService:
    """Façade for one ``Repository`` row.

    Holds two per-instance caches: the adapter (``adapter()``) and the
    committer list (``committers()``, dropped by ``invalidate_committers()``).
    Call ``close()`` when done to release the adapter.
    """

    def __init__(
        self,
        session: AsyncSession,
        repository: Repository,
        registry: AdapterRegistry,
    ) -> None:
        self.session = session
        self.repository = repository
        self.registry = registry
        self._changesets = ChangesetRepository(session)
        self._adapter: ScmAdapter | None = None
        self._committers: list[Committer] | None = None

    # ------------------------------------------------------------------
    # Adapter
    # ------------------------------------------------------------------

    async def adapter(self) -> ScmAdapter:
        """Return the memoized adapter, creating it on first use.

        A blank ``root_url`` is filled in from the adapter and flushed.
        """
        if self._adapter is None:
            repo = self.repository
            self._adapter = self.registry.create(
                repo.kind, repo.url, repo.root_url, repo.login, repo.password
            )
            if not repo.root_url and self._adapter.root_url:
                repo.root_url = self._adapter.root_url
                await self.session.flush()
                logger.info(
                    "Repository %d root_url set to %s", repo.id, repo.root_url
                )
        return self._adapter

    async def close(self) -> None:
        if self._adapter is not None:
            await self._adapter.close()
            self._adapter = None

    async def supports_cat(self) -> bool:
        return (await self.adapter()).supports_cat

    async def supports_annotate(self) -> bool:
        return (await self.adapter()).supports_annotate

    async def entry(self, path: str = "", identifier: str | None = None) -> Entry | None:
        return await (await self.adapter()).entry(path, identifier)

    async def entries(self, path: str = "", identifier: str | None = None) -> list[Entry]:
        return await (await self.adapter()).entries(path, identifier)

    async def branches(self) -> list[str]:
        return await (await self.adapter()).branches()

    async def tags(self) -> list[str]:
        return await (await self.adapter()).tags()

    async def default_branch(self) -> str | None:
        return await (await self.adapter()).default_branch()

    async def properties(
        self, path: str, identifier: str | None = None
    ) -> dict[str, str] | None:
        return await (await self.adapter()).properties(path, identifier)

    async def cat(self, path: str, identifier: str | None = None) -> bytes:
        return await (await self.adapter()).cat(path, identifier)

    async def annotate(
        self, path: str, identifier: str | None = None
    ) -> list[AnnotatedLine]:
        return await (await self.adapter()).annotate(path, identifier)

    async def diff(
        self, path: str, identifier_from: str, identifier_to: str | None = None
    ) -> list[str]:
        return await (await self.adapter()).diff(path, identifier_from, identifier_to)

    def relative_path(self, path: str) -> str:
        """Path relative to the repository url. Identity for URL-rooted SCMs."""
        return path

    # ------------------------------------------------------------------
    # Cached history
    # ------------------------------------------------------------------

    async def latest_changeset(self) -> Changeset | None:
        return await self._changesets.get_latest(self.repository.id)

    async def latest_changesets(
        self, path: str | None = None, identifier: str | None = None, limit: int = 10
    ) -> list[Changeset]:
        """Newest cached changesets, optionally only those touching *path*.

        *identifier* is accepted for adapters that answer from the SCM; the
        cache ignores it.
        """
        if not path or not path.strip("/"):
            return await self._changesets.latest(self.repository.id, limit=limit)
        return await self._changesets.latest_for_path(
            self.repository.id, with_leading_slash(path), limit=limit
        )

    async def find_changeset_by_name(self, name: str) -> Changeset | None:
        """Find by revision number, or by the beginning of a hash."""
        name = (name or "").strip()
        if not name:
            return None
        return await self._changesets.find_by_name(self.repository.id, name)

    # ------------------------------------------------------------------
    # Committers
    # ------------------------------------------------------------------

    async def committers(self) -> list[Committer]:
        """Distinct ``(committer, user_id)`` pairs seen in this repository."""
        if self._committers is None:
            self._committers = await self._changesets.committers(self.repository.id)
        return self._committers

    def invalidate_committers(self) -> None:
        self._committers = None

    async def set_committer_ids(self, mapping: object) -> bool:
        """Map committer strings to user ids.

        Committers absent from *mapping* are left alone; empty or
        non-positive ids clear the mapping. Returns ``False`` without changing
        anything when *mapping* is not a mapping of committer to user id.
        """
        if not isinstance(mapping, Mapping):
            return False
        try:
            wanted = {
                committer: _coerce_user_id(value)
                for committer, value in mapping.items()
            }
        except MalformedMapping as exc:
            logger.info(
                "Rejected committer mapping for repository %d: %s",
                self.repository.id,
                exc,
            )
            return False

        for committer, user_id in await self.committers():
            if committer not in wanted:
                continue
            new_user_id = wanted[committer]
            if new_user_id == user_id:
                continue
            updated = await self._changesets.reassign_committer(
                self.repository.id, committer, new_user_id
            )
            logger.info(
                "Repository %d: committer %r mapped to user %s (%d changesets)",
                self.repository.id,
                committer,
                new_user_id,
                updated,
            )
        await self.session.flush()
        self.invalidate_committers()
        return True


# ----------------------------------------------------------------------
# Lifecycle
# ----------------------------------------------------------------------


async def create_repository(
    session: AsyncSession,
    registry: AdapterRegistry,
    settings: Settings,
    *,
    project_id: int,
    kind: str,
    url: str | None,
    root_url: str | None = None,
    login: str | None = None,
    password: str | None = None,
) -> tuple[Repository | None, dict[str, list[str]]]:
    """Build and store a repository of the given kind.

    Returns ``(repository, {})`` on success and ``(None, errors)`` with
    field-level messages when validation fails.
    """
    errors: dict[str, list[str]] = {}
    try:
        registry.get(kind)
        if kind not in settings.enabled_scm:
            raise UnknownKind(f"SCM kind '{kind}' is not enabled")
    except UnknownKind as exc:
        logger.info("Rejected repository for project %d: %s", project_id, exc)
        errors.setdefault("kind", []).append("is invalid")

    repository = Repository(
        project_id=project_id,
        kind=kind,
        url=url,
        root_url=root_url,
        login=login or None,
        password=password or None,
    )
    if not repository.url:
        errors.setdefault("url", []).append("can't be blank")
    if await RepositoryRepository(session).get_by_project(project_id) is not None:
        errors.setdefault("project_id", []).append("has already been taken")
    if errors:
        return None, errors

    await RepositoryRepository(session).create(repository)
    return repository, {}


async def destroy_repository(session: AsyncSession, repository: Repository) -> dict[str, int]:
    """Purge the repository's history, then delete the repository row."""
    counts = await ChangesetRepository(session).purge(repository.id)
    await RepositoryRepository(session).delete(repository)
    logger.info(
        "Destroyed repository %d (%d changesets, %d changes, %d issue relations)",
        repository.id,
        counts["changesets"],
        counts["changes"],
        counts["issue_relations"],
    )
    return counts
