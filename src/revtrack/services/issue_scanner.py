# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2026 Revtrack Contributors

"""Find issue references in commit messages.

A reference is a keyword followed by one or more issue numbers::

    fixes #1, refs #2 and #3
    closes: 4 & 5

Referencing keywords link the changeset to the issue; fixing keywords also
move the issue to the project's closed status. Scanning never fails because
of a refused status change.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from functools import lru_cache

from sqlalchemy.ext.asyncio import AsyncSession

from revtrack.config import Settings
from revtrack.models.changeset import Changeset, ChangesetIssue, IssueRelation
from revtrack.models.issue import Issue, IssueStatus
from revtrack.models.project import Project
from revtrack.repositories.changeset_repository import ChangesetRepository
from revtrack.repositories.issue_repository import IssueRepository

logger = logging.getLogger(__name__)

# Matches "refs #2 and #3", "fixes 1,2", "closes #4 & #5"
_SEPARATOR = r"(?:\s*[,;&]\s*|\s+and\s+|\s+)"
_ISSUE_IDS = rf"#?\d+(?:{_SEPARATOR}#?\d+)*"
# Bare "#123" references, enabled with the "*" keyword
_BARE_REFERENCE_RE = re.compile(r"(?:^|[\s(\[,-])#(\d+)(?=\W|$)")

_SCAN_BATCH_SIZE = 500


class IssueTransitionError(Exception):
    """Raised when an issue cannot be moved to the fix status."""


@lru_cache(maxsize=32)
def _keyword_regexp(keywords: tuple[str, ...]) -> re.Pattern[str]:
    # Longest first so "references" wins over "refs".
    alternatives = "|".join(
        re.escape(kw) for kw in sorted(keywords, key=len, reverse=True)
    )
    return re.compile(
        rf"(?<![\w-])({alternatives})[\s:]+({_ISSUE_IDS})", re.IGNORECASE
    )


def parse_issue_references(
    comment: str,
    ref_keywords: Iterable[str],
    fix_keywords: Iterable[str],
) -> dict[int, IssueRelation]:
    """Return ``{issue_id: relation}`` in order of first mention.

    An issue that is both referenced and fixed is recorded as fixed.
    """
    ref_keywords = list(ref_keywords)
    fix_keywords = list(fix_keywords)
    fix_lookup = {kw.lower() for kw in fix_keywords}
    keywords = tuple(
        kw for kw in (*ref_keywords, *fix_keywords) if kw and kw != "*"
    )
    found: dict[int, IssueRelation] = {}
    if not comment:
        return found

    if keywords:
        for match in _keyword_regexp(keywords).finditer(comment):
            relation = (
                IssueRelation.FIXES
                if match.group(1).lower() in fix_lookup
                else IssueRelation.REFERENCES
            )
            for number in re.findall(r"\d+", match.group(2)):
                issue_id = int(number)
                if relation is IssueRelation.FIXES or issue_id not in found:
                    found[issue_id] = relation

    if "*" in ref_keywords:
        for match in _BARE_REFERENCE_RE.finditer(comment):
            found.setdefault(int(match.group(1)), IssueRelation.REFERENCES)
    return found


class IssueReferenceScanner:
    """Links changesets to the issues their comments mention."""

    def __init__(self, session: AsyncSession, settings: Settings) -> None:
        self.session = session
        self.settings = settings
        self._issues = IssueRepository(session)
        self._fix_statuses: dict[int, IssueStatus] = {}

    def clear_cache(self) -> None:
        self._fix_statuses.clear()

    async def scan(
        self, changeset: Changeset, project_id: int
    ) -> list[ChangesetIssue]:
        """Scan one changeset. Returns the relations created by this call.

        Rescanning creates nothing new; a fix found later upgrades an existing
        reference.
        """
        references = parse_issue_references(
            changeset.comment or "",
            self.settings.commit_ref_keywords,
            self.settings.commit_fix_keywords,
        )
        if not references:
            return []

        scope = None if self.settings.commit_cross_project_ref else project_id
        issues = await self._issues.get_many(references, project_id=scope)
        existing = await self._issues.relations_for_changeset(changeset.id)

        created: list[ChangesetIssue] = []
        for issue in issues:
            relation = references[issue.id]
            link = existing.get(issue.id)
            if link is None:
                link = ChangesetIssue(
                    changeset_id=changeset.id,
                    issue_id=issue.id,
                    relation=relation.value,
                )
                self.session.add(link)
                created.append(link)
            elif relation is IssueRelation.FIXES:
                link.relation = relation.value

            if relation is IssueRelation.FIXES:
                await self._fix_issue(issue, changeset)

        await self.session.flush()
        return created

    async def scan_repository(self, repository_id: int, project_id: int) -> int:
        """Scan every changeset of a repository. Returns relations created."""
        changesets = ChangesetRepository(self.session)
        created = 0
        after_id = 0
        while True:
            batch = await changesets.list_batch(
                repository_id, after_id=after_id, limit=_SCAN_BATCH_SIZE
            )
            if not batch:
                break
            for changeset in batch:
                created += len(await self.scan(changeset, project_id))
            after_id = batch[-1].id
        return created

    async def _fix_issue(self, issue: Issue, changeset: Changeset) -> None:
        if issue.status.is_closed:
            return
        try:
            status = await self._fix_status(issue.project_id)
        except IssueTransitionError as exc:
            logger.warning(
                "Changeset %s could not close issue #%d: %s",
                changeset.revision,
                issue.id,
                exc,
            )
            return

        issue.status = status
        if self.settings.commit_fix_done_ratio is not None:
            issue.done_ratio = self.settings.commit_fix_done_ratio
        logger.info(
            "Issue #%d set to %s by changeset %s",
            issue.id,
            status.name,
            changeset.revision,
        )

    async def _fix_status(self, project_id: int) -> IssueStatus:
        if project_id in self._fix_statuses:
            return self._fix_statuses[project_id]

        project = await self.session.get(Project, project_id)
        if project is not None and project.closed_status_id is not None:
            status = await self._issues.get_status(project.closed_status_id)
            if status is None:
                raise IssueTransitionError(
                    f"closed status {project.closed_status_id} does not exist"
                )
        else:
            status = await self._issues.get_status_by_name(
                self.settings.commit_fix_status
            )
            if status is None:
                raise IssueTransitionError(
                    f"no issue status named {self.settings.commit_fix_status!r}"
                )
        if not status.is_closed:
            raise IssueTransitionError(f"status {status.name!r} is not a closed status")

        self._fix_statuses[project_id] = status
        return status
