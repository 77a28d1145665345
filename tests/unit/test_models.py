# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2026 Revtrack Contributors

from __future__ import annotations

import pytest

from revtrack.models.changeset import (
    Change,
    ChangeAction,
    Changeset,
    ChangesetIssue,
    IssueRelation,
    with_leading_slash,
)
from revtrack.models.issue import Issue
from revtrack.models.repository import Repository


class TestRepositoryUrls:
    def test_urls_are_stripped(self) -> None:
        repo = Repository(
            project_id=1,
            kind="forgejo",
            url="  https://code.example.org/acme/widgets \n",
            root_url=" https://code.example.org/acme/widgets",
        )
        assert repo.url == "https://code.example.org/acme/widgets"
        assert repo.root_url == "https://code.example.org/acme/widgets"

    def test_missing_urls_become_empty(self) -> None:
        repo = Repository(project_id=1, kind="forgejo", url=None, root_url=None)
        assert repo.url == ""
        assert repo.root_url == ""

    def test_project_is_unique(self) -> None:
        assert Repository.__table__.c["project_id"].unique


class TestChangePaths:
    def test_leading_slash_added(self) -> None:
        change = Change(action="A", path="lib/foo.rb")
        assert change.path == "/lib/foo.rb"

    def test_existing_slash_kept(self) -> None:
        change = Change(action="M", path="/lib/foo.rb")
        assert change.path == "/lib/foo.rb"

    def test_with_leading_slash_blank(self) -> None:
        assert with_leading_slash(None) == "/"
        assert with_leading_slash("  ") == "/"


class TestChangesetDefaults:
    def test_column_defaults(self) -> None:
        comment_col = Changeset.__table__.c["comment"]
        assert comment_col.default is not None
        assert comment_col.default.arg == ""
        relation_col = ChangesetIssue.__table__.c["relation"]
        assert relation_col.default.arg == IssueRelation.REFERENCES.value
        assert Issue.__table__.c["done_ratio"].default.arg == 0

    def test_revision_unique_per_repository(self) -> None:
        names = {c.name for c in Changeset.__table__.constraints}
        assert "uq_changesets_repository_revision" in names

    def test_changeset_issue_primary_key(self) -> None:
        pk = [c.name for c in ChangesetIssue.__table__.primary_key.columns]
        assert pk == ["changeset_id", "issue_id"]


class TestEnums:
    def test_change_action_values(self) -> None:
        assert [a.value for a in ChangeAction] == ["A", "M", "D", "R", "C"]

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("A", "A"),
            ("m", "M"),
            ("add", "A"),
            ("Deleted", "D"),
            ("copied", "C"),
            ("X", "X"),
        ],
    )
    def test_change_action_normalize(self, raw: str, expected: str) -> None:
        assert ChangeAction.normalize(raw) == expected

    def test_change_normalizes_action(self) -> None:
        assert Change(action="renamed", path="a.py").action == "R"

    def test_issue_relation_is_str(self) -> None:
        assert IssueRelation.FIXES == "fixes"
