# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2026 Revtrack Contributors

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    database_url: str
    environment: str = "production"
    log_level: str = "info"
    log_format: str = "json"
    cors_origins: list[str] = []
    database_pool_size: int = 20

    # SCM kinds that may be used when creating a repository. Checked once at
    # creation time; existing repositories keep working if a kind is disabled.
    enabled_scm: list[str] = ["forgejo"]

    # Commit message scanning.
    # A "*" in commit_ref_keywords turns every bare "#123" into a reference.
    commit_ref_keywords: list[str] = ["refs", "references", "IssueID"]
    commit_fix_keywords: list[str] = ["fixes", "closes"]
    # Status name used when the issue's project has no closed status set.
    commit_fix_status: str = "Closed"
    commit_fix_done_ratio: int | None = 100
    commit_cross_project_ref: bool = False

    # Seconds between in-process fetch runs of the web app; 0 leaves
    # fetching to an external scheduler (``revtrack fetch-changesets``).
    changeset_fetch_interval: float = 0.0

    # Forgejo adapter
    forgejo_timeout: float = 30.0

    # Push webhooks
    webhook_secret: str = ""

    model_config = {"env_file": ".env"}

    @field_validator("commit_ref_keywords", "commit_fix_keywords")
    @classmethod
    def _normalize_keywords(cls, value: list[str]) -> list[str]:
        keywords = [kw.strip() for kw in value if kw and kw.strip()]
        if not keywords:
            raise ValueError("keyword list must not be empty")
        return keywords

    @field_validator("commit_fix_done_ratio")
    @classmethod
    def _validate_done_ratio(cls, value: int | None) -> int | None:
        if value is not None and not 0 <= value <= 100:
            raise ValueError("commit_fix_done_ratio must be between 0 and 100")
        return value


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance. Lazy-loaded to avoid import-time failures."""
    return Settings()
