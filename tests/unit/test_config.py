# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2026 Revtrack Contributors

from __future__ import annotations

import pytest
from pydantic import ValidationError

from revtrack.config import Settings


def make_settings(**kwargs: object) -> Settings:
    return Settings(database_url="sqlite+aiosqlite://", _env_file=None, **kwargs)


class TestSettings:
    def test_defaults(self) -> None:
        settings = make_settings()
        assert settings.enabled_scm == ["forgejo"]
        assert settings.commit_fix_keywords == ["fixes", "closes"]
        assert settings.commit_fix_done_ratio == 100
        assert settings.commit_cross_project_ref is False
        assert settings.changeset_fetch_interval == 0.0

    def test_keywords_are_stripped(self) -> None:
        settings = make_settings(commit_ref_keywords=[" refs ", "", "*"])
        assert settings.commit_ref_keywords == ["refs", "*"]

    def test_empty_keyword_list_rejected(self) -> None:
        with pytest.raises(ValidationError):
            make_settings(commit_fix_keywords=["  "])

    def test_done_ratio_range(self) -> None:
        assert make_settings(commit_fix_done_ratio=None).commit_fix_done_ratio is None
        with pytest.raises(ValidationError):
            make_settings(commit_fix_done_ratio=101)

    def test_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("COMMIT_CROSS_PROJECT_REF", "true")
        monkeypatch.setenv("ENABLED_SCM", '["forgejo", "fake"]')
        settings = make_settings()
        assert settings.commit_cross_project_ref is True
        assert settings.enabled_scm == ["forgejo", "fake"]
