# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2026 Revtrack Contributors

from __future__ import annotations

import pytest

from revtrack.scm.base import AdapterUnavailable
from revtrack.scm.forgejo import ForgejoAdapter
from revtrack.scm.registry import AdapterRegistry, UnknownKind, default_registry
from tests.conftest import FakeAdapter


class TestAdapterRegistry:
    def test_register_and_create(self) -> None:
        registry = AdapterRegistry()
        registry.register("fake", FakeAdapter, "Fake")
        adapter = registry.create("fake", "https://example.org/a/b")
        assert isinstance(adapter, FakeAdapter)
        assert registry.kinds() == ["fake"]
        assert registry.available_scm() == [("Fake", "fake")]

    def test_duplicate_kind_rejected(self) -> None:
        registry = AdapterRegistry()
        registry.register("fake", FakeAdapter)
        with pytest.raises(ValueError, match="already registered"):
            registry.register("fake", FakeAdapter)

    def test_unknown_kind(self) -> None:
        registry = AdapterRegistry()
        with pytest.raises(UnknownKind):
            registry.create("darcs", "https://example.org/a/b")

    def test_constructor_failure_is_unavailable(self) -> None:
        registry = AdapterRegistry()
        registry.register("fake", FakeAdapter)
        with pytest.raises(AdapterUnavailable, match="Cannot create fake adapter"):
            registry.create("fake", "invalid://nowhere")

    def test_validate_kinds(self) -> None:
        registry = AdapterRegistry()
        registry.register("fake", FakeAdapter)
        registry.validate_kinds(["fake"])
        with pytest.raises(UnknownKind, match="cvs, darcs"):
            registry.validate_kinds(["fake", "darcs", "cvs"])


class TestDefaultRegistry:
    async def test_forgejo_registered(self) -> None:
        registry = default_registry(forgejo_timeout=5.0)
        assert registry.kinds() == ["forgejo"]
        adapter = registry.create("forgejo", "https://code.example.org/acme/widgets")
        try:
            assert isinstance(adapter, ForgejoAdapter)
        finally:
            await adapter.close()

    def test_bad_forgejo_url_is_unavailable(self) -> None:
        registry = default_registry()
        with pytest.raises(AdapterUnavailable):
            registry.create("forgejo", "https://code.example.org/")
