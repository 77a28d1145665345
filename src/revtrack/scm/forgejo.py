# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2026 Revtrack Contributors

"""Forgejo/Gitea adapter.

Reads a repository through the Forgejo REST API. The repository URL is the
web URL of the repository, e.g. ``https://code.example.org/acme/widgets``;
installations served under a sub-path are supported.
"""

from __future__ import annotations

import logging
import posixpath
from collections.abc import AsyncIterator
from datetime import datetime, timezone

import httpx

from revtrack.scm.base import (
    AdapterError,
    AdapterUnavailable,
    Entry,
    EntryNotFound,
    Revision,
    RevisionPath,
    ScmAdapter,
)

logger = logging.getLogger(__name__)

_PAGE_SIZE = 50  # Forgejo caps list endpoints at 50 per page

_FILE_STATUS_ACTIONS = {
    "added": "A",
    "modified": "M",
    "changed": "M",
    "removed": "D",
    "deleted": "D",
    "renamed": "R",
    "copied": "C",
}


def _parse_datetime(value: str | None) -> datetime:
    """Parse an ISO-8601 datetime string returned by Forgejo."""
    if not value:
        return datetime.fromtimestamp(0, timezone.utc)
    # Forgejo returns e.g. "2026-01-15T12:30:00+00:00" or a trailing "Z"
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _format_author(author: dict) -> str:
    name = (author.get("name") or "").strip()
    email = (author.get("email") or "").strip()
    if name and email:
        return f"{name} <{email}>"
    return name or email


def _parse_revision(raw: dict) -> Revision:
    """Convert a Forgejo commit JSON object to ``Revision``."""
    commit_data = raw.get("commit", raw)
    author_data = commit_data.get("author", {})
    sha = raw.get("sha", commit_data.get("id", ""))
    paths = [
        RevisionPath(
            action=_FILE_STATUS_ACTIONS.get(f.get("status", ""), "M"),
            path=f"/{f.get('filename', '').lstrip('/')}",
            from_path=(
                f"/{f['previous_filename'].lstrip('/')}"
                if f.get("previous_filename")
                else None
            ),
        )
        for f in raw.get("files") or []
    ]
    return Revision(
        identifier=sha,
        scmid=sha,
        author=_format_author(author_data),
        time=_parse_datetime(author_data.get("date")),
        message=commit_data.get("message", "") or "",
        paths=paths,
    )


def _parse_entry(raw: dict) -> Entry:
    return Entry(
        name=raw.get("name", ""),
        path=raw.get("path", ""),
        kind="dir" if raw.get("type") == "dir" else "file",
        size=raw.get("size"),
        last_revision=raw.get("last_commit_sha"),
    )


def _filter_diff(text: str, path: str) -> list[str]:
    """Keep only the file sections of a git diff that touch *path*."""
    lines = text.splitlines()
    path = path.strip("/")
    if not path:
        return lines
    kept: list[str] = []
    keep = False
    for line in lines:
        if line.startswith("diff --git "):
            _, _, a_path, b_path = (line.split(" ", 3) + ["", ""])[:4]
            names = {a_path.removeprefix("a/"), b_path.removeprefix("b/")}
            keep = any(n == path or n.startswith(f"{path}/") for n in names)
        if keep:
            kept.append(line)
    return kept


def _json(resp: httpx.Response):
    """Decode a JSON body; a proxy error page served as 200 is an adapter error."""
    try:
        return resp.json()
    except ValueError as exc:
        raise AdapterError(
            f"Forgejo returned a non-JSON body for {resp.request.url}"
        ) from exc


class ForgejoAdapter(ScmAdapter):
    """``ScmAdapter`` backed by the Forgejo (or Gitea) REST API.

    Parameters
    ----------
    url:
        Web URL of the repository.
    login, password:
        Optional basic-auth credentials; the password may be an access token.
    timeout:
        Per-request timeout in seconds.
    transport:
        Optional httpx transport, used by tests.
    """

    kind = "forgejo"
    scm_name = "Forgejo"

    def __init__(
        self,
        url: str,
        root_url: str = "",
        login: str | None = None,
        password: str | None = None,
        *,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(url, root_url, login, password)
        try:
            parsed = httpx.URL(url.strip())
        except httpx.InvalidURL as exc:
            raise ValueError(f"Invalid repository URL: {url!r}") from exc
        if parsed.scheme not in ("http", "https") or not parsed.host:
            raise ValueError(f"Not an http(s) repository URL: {url!r}")
        parts = [p for p in parsed.path.split("/") if p]
        if len(parts) < 2:
            raise ValueError(f"Repository URL must end with owner/name: {url!r}")

        owner, name = parts[-2], parts[-1].removesuffix(".git")
        prefix = "/".join(parts[:-2])
        port = f":{parsed.port}" if parsed.port else ""
        base = f"{parsed.scheme}://{parsed.host}{port}"
        if prefix:
            base = f"{base}/{prefix}"

        self._repo = f"{owner}/{name}"
        self._web_url = f"{base}/{self._repo}"
        self._client = httpx.AsyncClient(
            base_url=f"{base}/api/v1",
            auth=httpx.BasicAuth(login, password or "") if login else None,
            headers={"Accept": "application/json"},
            timeout=httpx.Timeout(timeout, connect=10.0),
            transport=transport,
        )

    @property
    def root_url(self) -> str:
        return self._root_url or self._web_url

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict | None = None,
    ) -> httpx.Response:
        """Send a request and translate HTTP errors to adapter exceptions."""
        try:
            resp = await self._client.request(method, path, params=params)
        except httpx.ConnectError as exc:
            raise AdapterUnavailable(
                f"Cannot connect to Forgejo for {self._web_url}"
            ) from exc
        except httpx.TimeoutException as exc:
            raise AdapterUnavailable(
                f"Forgejo request timed out: {method} {path}"
            ) from exc
        except httpx.HTTPError as exc:
            raise AdapterError(f"Forgejo request failed: {method} {path}: {exc}") from exc

        if resp.status_code == 404:
            raise EntryNotFound(f"Not found: {method} {path}")
        if resp.status_code == 503:
            raise AdapterUnavailable("Forgejo returned 503 Service Unavailable")
        if resp.status_code >= 400:
            detail = resp.text[:500] if resp.text else str(resp.status_code)
            raise AdapterError(
                f"Forgejo API error {resp.status_code} on {method} {path}: {detail}"
            )
        return resp

    async def _paginate(
        self,
        path: str,
        *,
        params: dict | None = None,
        page: int = 1,
    ) -> list[dict]:
        """Fetch a single page of results from a paginated endpoint."""
        params = dict(params or {})
        params["page"] = page
        params["limit"] = _PAGE_SIZE
        resp = await self._request("GET", path, params=params)
        return _json(resp)

    async def _paginate_all(self, path: str, *, params: dict | None = None) -> list[dict]:
        """Fetch *all* pages from a paginated endpoint."""
        results: list[dict] = []
        page = 1
        while True:
            batch = await self._paginate(path, params=params, page=page)
            results.extend(batch)
            if len(batch) < _PAGE_SIZE:
                break
            page += 1
        return results

    def _contents_path(self, path: str) -> str:
        path = path.strip("/")
        base = f"/repos/{self._repo}/contents"
        return f"{base}/{path}" if path else base

    @staticmethod
    def _ref_params(identifier: str | None) -> dict | None:
        return {"ref": identifier} if identifier else None

    # ------------------------------------------------------------------
    # Browsing
    # ------------------------------------------------------------------

    async def entries(
        self, path: str = "", identifier: str | None = None
    ) -> list[Entry]:
        resp = await self._request(
            "GET", self._contents_path(path), params=self._ref_params(identifier)
        )
        items = _json(resp)
        # A file path returns a single object rather than a listing.
        if isinstance(items, dict):
            return [_parse_entry(items)]
        return sorted(
            (_parse_entry(item) for item in items),
            key=lambda e: (not e.is_dir, e.name),
        )

    async def entry(self, path: str = "", identifier: str | None = None) -> Entry | None:
        path = path.strip("/")
        if not path:
            return Entry(name="", path="", kind="dir")
        try:
            resp = await self._request(
                "GET", self._contents_path(path), params=self._ref_params(identifier)
            )
        except EntryNotFound:
            return None
        data = _json(resp)
        if isinstance(data, list):
            return Entry(name=posixpath.basename(path), path=path, kind="dir")
        return _parse_entry(data)

    async def cat(self, path: str, identifier: str | None = None) -> bytes:
        resp = await self._request(
            "GET",
            f"/repos/{self._repo}/raw/{path.strip('/')}",
            params=self._ref_params(identifier),
        )
        return resp.content

    async def diff(
        self,
        path: str,
        identifier_from: str,
        identifier_to: str | None = None,
    ) -> list[str]:
        if identifier_to is None:
            resp = await self._request(
                "GET", f"/repos/{self._repo}/git/commits/{identifier_from}.diff"
            )
            return _filter_diff(resp.text, path)

        resp = await self._request(
            "GET", f"/repos/{self._repo}/compare/{identifier_to}...{identifier_from}"
        )
        patches = [
            f"diff --git a/{f.get('filename', '')} b/{f.get('filename', '')}\n"
            f"{f.get('patch', '')}"
            for f in _json(resp).get("files", [])
        ]
        return _filter_diff("\n".join(patches), path)

    # ------------------------------------------------------------------
    # Refs
    # ------------------------------------------------------------------

    async def branches(self) -> list[str]:
        raw_list = await self._paginate_all(f"/repos/{self._repo}/branches")
        return sorted(b["name"] for b in raw_list)

    async def tags(self) -> list[str]:
        raw_list = await self._paginate_all(f"/repos/{self._repo}/tags")
        return sorted(t["name"] for t in raw_list)

    async def default_branch(self) -> str | None:
        resp = await self._request("GET", f"/repos/{self._repo}")
        return _json(resp).get("default_branch") or None

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    async def revisions(self, since: str | None = None) -> AsyncIterator[Revision]:
        """Stream commits of the default branch newer than *since*.

        The commit list is paged newest-first and only SHAs are kept until
        *since* is reached; commit details (with changed files) are fetched
        one by one while yielding, oldest first.
        """
        branch = await self.default_branch()
        params = {"stat": "false", "files": "false", "verification": "false"}
        if branch:
            params["sha"] = branch

        pending: list[str] = []
        page = 1
        reached = False
        while not reached:
            try:
                batch = await self._paginate(
                    f"/repos/{self._repo}/commits", params=params, page=page
                )
            except EntryNotFound:
                # Empty repositories have no commit list.
                break
            for raw in batch:
                sha = raw["sha"]
                if since is not None and sha.startswith(since):
                    reached = True
                    break
                pending.append(sha)
            if len(batch) < _PAGE_SIZE:
                break
            page += 1

        logger.debug(
            "Forgejo %s: %d new commits after %s", self._repo, len(pending), since
        )
        for sha in reversed(pending):
            resp = await self._request(
                "GET",
                f"/repos/{self._repo}/git/commits/{sha}",
                params={"stat": "false", "verification": "false"},
            )
            yield _parse_revision(_json(resp))

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()
