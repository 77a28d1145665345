# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2026 Revtrack Contributors

from __future__ import annotations

import os
from collections.abc import AsyncIterator
from datetime import datetime, timedelta, timezone

# Settings are read lazily, but importing the app reads CORS origins.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from revtrack.config import Settings
from revtrack.models import Base, IssueStatus, Project, Repository, User
from revtrack.models.issue import Issue
from revtrack.scm.base import (
    AdapterError,
    Entry,
    EntryNotFound,
    Revision,
    RevisionPath,
    ScmAdapter,
)
from revtrack.scm.registry import AdapterRegistry


def _get_test_database_url() -> str:
    """Return the test database URL from env, falling back to in-memory SQLite."""
    return os.environ.get(
        "TEST_DATABASE_URL",
        "sqlite+aiosqlite:///:memory:",
    )


@pytest.fixture
async def async_engine() -> AsyncIterator[AsyncEngine]:
    """Create an async engine for the test database."""
    engine = create_async_engine(_get_test_database_url(), echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    """Provide a session; code under test commits, so nothing is rolled back."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_url=_get_test_database_url(),
        enabled_scm=["forgejo", "fake"],
        webhook_secret="s3cret",
        _env_file=None,
    )


# ---------------------------------------------------------------------------
# Fake SCM adapter
# ---------------------------------------------------------------------------

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def make_revision(
    identifier: str,
    *,
    author: str = "alice <alice@example.org>",
    message: str = "",
    minutes: int = 0,
    paths: list[RevisionPath] | None = None,
) -> Revision:
    """Build a revision committed *minutes* after ``T0``."""
    return Revision(
        identifier=identifier,
        scmid=identifier,
        author=author,
        time=T0 + timedelta(minutes=minutes),
        message=message,
        paths=paths or [RevisionPath(action="M", path=f"/src/{identifier}.py")],
    )


class FakeAdapter(ScmAdapter):
    """Adapter over an in-memory, oldest-first list of revisions.

    ``fail_after`` raises ``AdapterError`` once that many revisions have been
    yielded in a single stream. ``replay`` ignores ``since`` and streams the
    whole history again.
    """

    kind = "fake"
    scm_name = "Fake"

    history: list[Revision] = []
    fail_after: int | None = None
    replay: bool = False
    discovered_root: str = ""
    closed: int = 0

    def __init__(self, url, root_url="", login=None, password=None) -> None:
        if url.startswith("invalid"):
            raise ValueError(f"bad url {url!r}")
        super().__init__(url, root_url, login, password)

    @property
    def root_url(self) -> str:
        return self._root_url or type(self).discovered_root

    async def entries(self, path="", identifier=None) -> list[Entry]:
        if path.strip("/") not in ("", "src"):
            raise EntryNotFound(path)
        if not path.strip("/"):
            return [Entry(name="src", path="src", kind="dir")]
        return [Entry(name="main.py", path="src/main.py", kind="file", size=12)]

    async def cat(self, path, identifier=None) -> bytes:
        return b"print('hi')\n"

    async def diff(self, path, identifier_from, identifier_to=None) -> list[str]:
        return [f"diff --git a/{path} b/{path}"]

    async def branches(self) -> list[str]:
        return ["main"]

    async def revisions(self, since=None):
        cls = type(self)
        start = 0
        if since is not None and not cls.replay:
            ids = [r.identifier for r in cls.history]
            start = ids.index(since) + 1 if since in ids else 0
        for yielded, revision in enumerate(cls.history[start:]):
            if cls.fail_after is not None and yielded >= cls.fail_after:
                raise AdapterError("connection reset by peer")
            yield revision

    async def close(self) -> None:
        type(self).closed += 1


@pytest.fixture
def fake_adapter() -> type[FakeAdapter]:
    """The ``FakeAdapter`` class, reset for this test."""
    FakeAdapter.history = []
    FakeAdapter.fail_after = None
    FakeAdapter.replay = False
    FakeAdapter.discovered_root = ""
    FakeAdapter.closed = 0
    return FakeAdapter


@pytest.fixture
def registry(fake_adapter: type[FakeAdapter]) -> AdapterRegistry:
    registry = AdapterRegistry()
    registry.register(fake_adapter.kind, fake_adapter, fake_adapter.scm_name)
    return registry


# ---------------------------------------------------------------------------
# Factory helpers for creating model instances in tests
# ---------------------------------------------------------------------------


def make_user(
    *,
    login: str = "alice",
    mail: str | None = "alice@example.org",
) -> dict[str, object]:
    """Return kwargs suitable for constructing a User model instance."""
    return {"login": login, "mail": mail, "firstname": login.title(), "lastname": "Test"}


def make_project(
    *,
    identifier: str = "widgets",
    closed_status_id: int | None = None,
) -> dict[str, object]:
    """Return kwargs suitable for constructing a Project model instance."""
    return {
        "name": identifier.title(),
        "identifier": identifier,
        "closed_status_id": closed_status_id,
    }


def make_repository(
    *,
    project_id: int,
    kind: str = "fake",
    url: str = "https://code.example.org/acme/widgets",
    root_url: str = "",
) -> dict[str, object]:
    """Return kwargs suitable for constructing a Repository model instance."""
    return {"project_id": project_id, "kind": kind, "url": url, "root_url": root_url}


async def seed_statuses(session: AsyncSession) -> tuple[IssueStatus, IssueStatus]:
    """Add the ``New`` and ``Closed`` statuses."""
    new = IssueStatus(name="New", is_closed=False, is_default=True, position=1)
    closed = IssueStatus(name="Closed", is_closed=True, position=2)
    session.add_all([new, closed])
    await session.flush()
    return new, closed


async def seed_repository(
    session: AsyncSession, *, identifier: str = "widgets", **repo_kwargs: object
) -> Repository:
    """Add a project with a fake-kind repository and commit."""
    project = Project(**make_project(identifier=identifier))
    session.add(project)
    await session.flush()
    repository = Repository(**make_repository(project_id=project.id, **repo_kwargs))
    session.add(repository)
    await session.commit()
    return repository


async def seed_issue(
    session: AsyncSession,
    *,
    project_id: int,
    status: IssueStatus,
    subject: str = "Broken widget",
) -> Issue:
    issue = Issue(project_id=project_id, subject=subject, status=status)
    session.add(issue)
    await session.flush()
    return issue


async def seed_user(session: AsyncSession, **kwargs: object) -> User:
    user = User(**make_user(**kwargs))
    session.add(user)
    await session.flush()
    return user
