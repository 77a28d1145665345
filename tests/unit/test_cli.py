# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2026 Revtrack Contributors

from __future__ import annotations

import pytest

from revtrack.cli import _report, main
from revtrack.services.scheduler import RunResult


class TestReport:
    def test_all_ok(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert _report([RunResult(1, 3), RunResult(2)], "new changesets") == 0
        out = capsys.readouterr().out
        assert "repository 1: 3 new changesets" in out
        assert "repository 2: 0 new changesets" in out

    def test_failure_sets_exit_code(self, capsys: pytest.CaptureFixture[str]) -> None:
        results = [RunResult(1, 2, "connection reset"), RunResult(2, 1)]
        assert _report(results, "new changesets") == 1
        err = capsys.readouterr().err
        assert "repository 1: FAILED after 2 new changesets: connection reset" in err


class TestArguments:
    def test_purge_requires_repository(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["purge"])
        assert exc_info.value.code == 2

    def test_command_required(self) -> None:
        with pytest.raises(SystemExit):
            main([])
