# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2026 Revtrack Contributors

"""SCM adapter capability.

The synchronizer and the repository service only ever see ``ScmAdapter``.
One subclass exists per SCM kind and is picked through
``revtrack.scm.registry``.
"""

from __future__ import annotations

import posixpath
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from datetime import datetime
from typing import ClassVar

# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Entry:
    name: str
    path: str
    kind: str  # "file" or "dir"
    size: int | None = None
    last_revision: str | None = None

    @property
    def is_dir(self) -> bool:
        return self.kind == "dir"


@dataclass(frozen=True, slots=True)
class RevisionPath:
    """One path touched by a revision."""

    action: str  # A, M, D, R or C
    path: str
    from_path: str | None = None
    from_revision: str | None = None


@dataclass(frozen=True, slots=True)
class Revision:
    identifier: str
    author: str
    time: datetime
    message: str
    scmid: str | None = None
    paths: list[RevisionPath] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class AnnotatedLine:
    line: str
    revision: str
    author: str


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ScmError(Exception):
    """Base exception for SCM adapter operations."""


class AdapterError(ScmError):
    """Raised when a single adapter call fails."""


class AdapterUnavailable(AdapterError):
    """Raised when the SCM cannot be constructed or reached."""


class EntryNotFound(AdapterError):
    """Raised when a path or revision does not exist in the SCM."""


# ---------------------------------------------------------------------------
# Abstract interface
# ---------------------------------------------------------------------------


class ScmAdapter(ABC):
    """Read-only view of one external repository.

    Every call may block on network or process I/O; adapters bound their own
    timeouts.
    """

    kind: ClassVar[str] = "abstract"
    #: Human-readable SCM name shown when picking a kind.
    scm_name: ClassVar[str] = "Abstract"

    def __init__(
        self,
        url: str,
        root_url: str = "",
        login: str | None = None,
        password: str | None = None,
    ) -> None:
        self.url = url
        self._root_url = root_url or ""
        self.login = login
        self.password = password

    @property
    def root_url(self) -> str:
        """Repository root. Adapters may discover it when not configured."""
        return self._root_url or self.url

    @property
    def supports_cat(self) -> bool:
        return True

    @property
    def supports_annotate(self) -> bool:
        return False

    # --- Browsing ---

    @abstractmethod
    async def entries(
        self, path: str = "", identifier: str | None = None
    ) -> list[Entry]:
        """List the entries of a directory at a revision (default: head)."""
        ...

    async def entry(self, path: str = "", identifier: str | None = None) -> Entry | None:
        """Return the entry at *path*, or ``None`` if it does not exist."""
        path = path.strip("/")
        if not path:
            return Entry(name="", path="", kind="dir")
        parent, name = posixpath.split(path)
        try:
            siblings = await self.entries(parent, identifier)
        except EntryNotFound:
            return None
        return next((e for e in siblings if e.name == name), None)

    @abstractmethod
    async def cat(self, path: str, identifier: str | None = None) -> bytes:
        """Return the raw contents of a file."""
        ...

    async def annotate(
        self, path: str, identifier: str | None = None
    ) -> list[AnnotatedLine]:
        raise AdapterError(f"{self.scm_name} adapter does not support annotate")

    @abstractmethod
    async def diff(
        self,
        path: str,
        identifier_from: str,
        identifier_to: str | None = None,
    ) -> list[str]:
        """Unified diff lines for *path* (or the whole tree when empty)."""
        ...

    async def properties(
        self, path: str, identifier: str | None = None
    ) -> dict[str, str] | None:
        return None

    # --- Refs ---

    async def branches(self) -> list[str]:
        return []

    async def tags(self) -> list[str]:
        return []

    async def default_branch(self) -> str | None:
        return None

    # --- History ---

    @abstractmethod
    def revisions(self, since: str | None = None) -> AsyncIterator[Revision]:
        """Stream revisions strictly newer than *since*, oldest first.

        ``since=None`` streams the whole history.
        """
        ...

    async def close(self) -> None:
        """Release any resources held by the adapter."""
