# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2026 Revtrack Contributors

"""Forgejo push webhook.

A push to a mirrored repository schedules a fetch for every tracked
repository whose url matches the pushed repository, so new changesets show
up without waiting for the next cron run. The fetch itself runs after the
response has been sent.

Verification uses HMAC-SHA256 over the request body, matching the shared
secret stored in ``WEBHOOK_SECRET``.
"""

from __future__ import annotations

import hashlib
import hmac
import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from revtrack.api.dependencies import get_registry
from revtrack.config import Settings, get_settings
from revtrack.db.session import get_db, get_session_factory
from revtrack.repositories.repository_repository import RepositoryRepository
from revtrack.scm.registry import AdapterRegistry
from revtrack.services.scheduler import fetch_repository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


def _verify_signature(body: bytes, signature: str, secret: str) -> bool:
    """Verify HMAC-SHA256 signature from Forgejo.

    Forgejo sends the signature in the ``X-Forgejo-Signature`` header
    as a hex-encoded HMAC-SHA256 digest.
    """
    if not secret:
        logger.warning("WEBHOOK_SECRET is not configured, rejecting webhook")
        return False
    expected = hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, signature)


@router.post("/forgejo", status_code=202)
async def handle_forgejo_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    registry: AdapterRegistry = Depends(get_registry),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    settings: Settings = Depends(get_settings),
) -> dict[str, object]:
    """Handle incoming Forgejo webhook events.

    Currently handles:
    - ``push``: schedules a changeset fetch for matching repositories.
    """
    body = await request.body()
    signature = request.headers.get("X-Forgejo-Signature", "")
    if not _verify_signature(body, signature, settings.webhook_secret):
        raise HTTPException(status_code=401, detail="Invalid webhook signature")

    event_type = request.headers.get("X-Forgejo-Event", "")
    if event_type != "push":
        logger.debug("Ignoring Forgejo event type: %s", event_type)
        return {"status": "ignored", "scheduled": []}

    payload = await request.json()
    pushed = payload.get("repository", {})
    urls = [pushed.get("html_url", ""), pushed.get("clone_url", "")]
    repositories = await RepositoryRepository(db).find_by_urls(urls)
    if not repositories:
        logger.info("Push for untracked repository %s", pushed.get("full_name", "?"))

    scheduled = []
    for repository in repositories:
        background_tasks.add_task(
            fetch_repository, session_factory, registry, settings, repository.id
        )
        scheduled.append(repository.id)
    return {"status": "ok", "scheduled": scheduled}
