# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2026 Revtrack Contributors

from __future__ import annotations

import pytest

from revtrack.services.identity import parse_committer
from revtrack.services.repository_service import MalformedMapping, _coerce_user_id


class TestParseCommitter:
    def test_name_and_email(self) -> None:
        assert parse_committer("jsmith <jsmith@foo.bar>") == ("jsmith", "jsmith@foo.bar")

    def test_bare_name(self) -> None:
        assert parse_committer("jsmith") == ("jsmith", None)

    def test_empty_email(self) -> None:
        assert parse_committer("jsmith <>") == ("jsmith", None)

    def test_email_only(self) -> None:
        assert parse_committer("<jsmith@foo.bar>") is None


class TestCoerceUserId:
    @pytest.mark.parametrize("value", [None, "", 0, -3, "0", "-1"])
    def test_clears(self, value: object) -> None:
        assert _coerce_user_id(value) is None

    @pytest.mark.parametrize("value,expected", [(7, 7), ("7", 7), (" 12 ", 12)])
    def test_accepts_integers(self, value: object, expected: int) -> None:
        assert _coerce_user_id(value) == expected

    @pytest.mark.parametrize("value", ["abc", 1.5, True, [1], {"id": 1}])
    def test_rejects_malformed(self, value: object) -> None:
        with pytest.raises(MalformedMapping):
            _coerce_user_id(value)
