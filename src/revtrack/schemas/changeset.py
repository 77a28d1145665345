# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2026 Revtrack Contributors

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class ChangeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    action: str
    path: str
    from_path: str | None
    from_revision: str | None


class ChangesetResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    repository_id: int
    revision: str
    scmid: str | None
    committer: str | None
    user_id: int | None
    committed_on: datetime
    comment: str


class ChangesetDetailResponse(ChangesetResponse):
    changes: list[ChangeResponse] = []


class CommitterResponse(BaseModel):
    committer: str | None
    user_id: int | None


class FetchScheduled(BaseModel):
    repository_id: int
    status: str = "scheduled"


class EntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str
    path: str
    kind: str
    size: int | None
    last_revision: str | None
