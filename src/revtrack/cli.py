# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2026 Revtrack Contributors
"""Scheduler entry points for cron.

Usage:
    revtrack fetch-changesets                 # all repositories
    revtrack fetch-changesets -r 3 -r 7       # selected repositories
    revtrack scan-issue-ids
    revtrack purge -r 3                       # drop the cached history
"""

from __future__ import annotations

import argparse
import asyncio
import sys

from revtrack.config import Settings, get_settings
from revtrack.db.session import get_engine, get_session_factory
from revtrack.log import configure_logging
from revtrack.repositories.repository_repository import RepositoryRepository
from revtrack.scm.registry import default_registry
from revtrack.services.changeset_sync import ChangesetSynchronizer
from revtrack.services.scheduler import RunResult, fetch_all, scan_all_for_issue_ids


def _report(results: list[RunResult], noun: str) -> int:
    failures = 0
    for result in results:
        if result.ok:
            print(f"repository {result.repository_id}: {result.count} {noun}")
        else:
            failures += 1
            print(
                f"repository {result.repository_id}: FAILED after {result.count} "
                f"{noun}: {result.error}",
                file=sys.stderr,
            )
    return 1 if failures else 0


async def _purge(settings: Settings, repository_ids: list[int]) -> int:
    registry = default_registry(settings.forgejo_timeout)
    async with get_session_factory()() as session:
        repos = RepositoryRepository(session)
        sync = ChangesetSynchronizer(session, registry, settings)
        for repository_id in repository_ids:
            repository = await repos.get_by_id(repository_id)
            if repository is None:
                print(f"repository {repository_id}: not found", file=sys.stderr)
                return 1
            counts = await sync.purge(repository)
            print(
                f"repository {repository_id}: deleted {counts['changesets']} changesets, "
                f"{counts['changes']} changes, {counts['issue_relations']} issue relations"
            )
    return 0


async def _run(args: argparse.Namespace) -> int:
    settings = get_settings()
    registry = default_registry(settings.forgejo_timeout)
    registry.validate_kinds(settings.enabled_scm)
    try:
        if args.command == "fetch-changesets":
            results = await fetch_all(
                get_session_factory(), registry, settings, args.repository
            )
            return _report(results, "new changesets")
        if args.command == "scan-issue-ids":
            results = await scan_all_for_issue_ids(
                get_session_factory(), registry, settings, args.repository
            )
            return _report(results, "new issue relations")
        return await _purge(settings, args.repository or [])
    finally:
        await get_engine().dispose()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="revtrack", description=__doc__.splitlines()[0])
    sub = parser.add_subparsers(dest="command", required=True)
    for name, help_text in (
        ("fetch-changesets", "store new changesets from every repository"),
        ("scan-issue-ids", "rescan changeset comments for issue references"),
        ("purge", "delete the cached history of repositories"),
    ):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument(
            "-r",
            "--repository",
            type=int,
            action="append",
            required=name == "purge",
            help="repository id (repeatable)",
        )
    args = parser.parse_args(argv)

    configure_logging(get_settings())
    return asyncio.run(_run(args))


if __name__ == "__main__":
    sys.exit(main())
