# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2026 Revtrack Contributors

from __future__ import annotations

from collections.abc import Callable, Iterable
from functools import partial

from revtrack.scm.base import AdapterUnavailable, ScmAdapter, ScmError

AdapterFactory = Callable[[str, str, str | None, str | None], ScmAdapter]


class UnknownKind(ScmError):
    """Raised when no adapter is registered for an SCM kind."""


class AdapterRegistry:
    """Maps SCM kind identifiers to adapter constructors."""

    def __init__(self) -> None:
        self._factories: dict[str, AdapterFactory] = {}
        self._names: dict[str, str] = {}

    def register(
        self, kind: str, factory: AdapterFactory, scm_name: str | None = None
    ) -> None:
        """Add an adapter kind. Raises ValueError if already registered."""
        if kind in self._factories:
            msg = f"SCM kind '{kind}' is already registered"
            raise ValueError(msg)
        self._factories[kind] = factory
        self._names[kind] = scm_name or kind

    def get(self, kind: str) -> AdapterFactory:
        try:
            return self._factories[kind]
        except KeyError:
            raise UnknownKind(f"No adapter registered for SCM kind '{kind}'") from None

    def kinds(self) -> list[str]:
        return list(self._factories)

    def available_scm(self) -> list[tuple[str, str]]:
        """``(display name, kind)`` pairs, e.g. for a kind picker."""
        return [(self._names[k], k) for k in self._factories]

    def validate_kinds(self, kinds: Iterable[str]) -> None:
        """Reject configured kinds with no registered adapter."""
        unknown = sorted(set(kinds) - set(self._factories))
        if unknown:
            raise UnknownKind(f"Unknown SCM kinds configured: {', '.join(unknown)}")

    def create(
        self,
        kind: str,
        url: str,
        root_url: str = "",
        login: str | None = None,
        password: str | None = None,
    ) -> ScmAdapter:
        """Instantiate the adapter for *kind*.

        Constructor failures surface as ``AdapterUnavailable``; an unknown
        kind raises ``UnknownKind``.
        """
        factory = self.get(kind)
        try:
            return factory(url, root_url, login, password)
        except ScmError:
            raise
        except (ValueError, OSError) as exc:
            raise AdapterUnavailable(
                f"Cannot create {kind} adapter for {url!r}: {exc}"
            ) from exc


def default_registry(forgejo_timeout: float = 30.0) -> AdapterRegistry:
    """Registry with the built-in adapters."""
    from revtrack.scm.forgejo import ForgejoAdapter

    registry = AdapterRegistry()
    registry.register(
        ForgejoAdapter.kind,
        partial(ForgejoAdapter, timeout=forgejo_timeout),
        ForgejoAdapter.scm_name,
    )
    return registry
