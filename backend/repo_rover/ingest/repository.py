"""Repository URL parsing and canonical keys."""

from __future__ import annotations

import re
from urllib.parse import urlparse

from repo_rover.errors import RepositoryURLError
from repo_rover.ingest.types import RepositoryRef

GITHUB_HOST = "github.com"
_NAME_RE = re.compile(r"^[A-Za-z0-9_.-]+$")


def parse_repository_url(url: str) -> RepositoryRef:
    """Split a GitHub URL into owner/name and build the canonical repository key.

    ``https://github.com/Owner/Repo.git/``, ``github.com/Owner/Repo`` and
    ``https://github.com/Owner/Repo/tree/main/src`` all map to the key
    ``https://github.com/Owner/Repo``.
    """
    if not url or not url.strip():
        raise RepositoryURLError("Repository URL is required")
    raw = url.strip()
    if "://" not in raw:
        raw = f"https://{raw}"
    parsed = urlparse(raw)
    host = (parsed.hostname or "").lower()
    if host.startswith("www."):
        host = host[4:]
    if host != GITHUB_HOST:
        raise RepositoryURLError(f"Not a GitHub repository URL: {url}")

    parts = [part for part in parsed.path.split("/") if part]
    if len(parts) < 2:
        raise RepositoryURLError(f"Repository URL must include owner and name: {url}")
    owner, name = parts[0], parts[1]
    if name.endswith(".git"):
        name = name[: -len(".git")]
    if not _NAME_RE.match(owner) or not name or not _NAME_RE.match(name):
        raise RepositoryURLError(f"Invalid repository owner or name: {url}")
    return RepositoryRef(owner=owner, name=name, key=f"https://{GITHUB_HOST}/{owner}/{name}")


__all__ = ["parse_repository_url", "GITHUB_HOST"]
