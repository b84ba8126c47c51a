"""
Resource resolution and ``key=value`` parsing for the token repository.

A locator is resolved, in order, as:
1. a URL, when it contains ``://`` after a scheme
2. a resource found under one of the ``sys.path`` roots
3. a filesystem path

The first strategy that resolves wins.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal, Optional
from urllib.parse import unquote, urlparse

import httpx

from ..errors import ResourceError

ResourceKind = Literal["url", "path_resource", "file"]


@dataclass(frozen=True)
class Resource:
    """A resolved backing resource."""

    locator: str
    kind: ResourceKind
    path: Optional[Path] = None  # set for file-backed resources
    url: Optional[str] = None  # set for remote URLs

    @property
    def is_remote(self) -> bool:
        return self.url is not None


def parse_properties(text: str) -> dict[str, str]:
    """Parse ``key=value`` lines.

    Blank lines and lines starting with ``#`` or ``!`` are skipped. The line
    is split on the first ``=``; a line without ``=`` maps its key to "".
    """
    entries: dict[str, str] = {}
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line[0] in "#!":
            continue
        key, sep, value = line.partition("=")
        key = key.strip()
        if not key:
            continue
        entries[key] = value.strip() if sep else ""
    return entries


class ResourceLoader:
    """Resolves locators and reads them into key/value mappings.

    Args:
        timeout: HTTP timeout (seconds) for URL resources
        search_path: Roots searched for path resources (defaults to sys.path)
    """

    def __init__(self, timeout: float = 10.0, search_path: Optional[list[str]] = None):
        self._timeout = timeout
        self._search_path = search_path

    def resolve(self, locator: str) -> Resource:
        if not locator:
            raise ResourceError("Empty resource locator")

        if locator.find("://") > 0:
            return self._resolve_url(locator)

        found = self._find_on_search_path(locator)
        if found is not None:
            return Resource(locator=locator, kind="path_resource", path=found)

        path = Path(locator).expanduser()
        if path.is_file():
            return Resource(locator=locator, kind="file", path=path)

        raise ResourceError(f"Resource not found: {locator}")

    def read(self, resource: Resource) -> dict[str, Any]:
        """Read the whole resource; raises ResourceError on any failure."""
        if resource.is_remote:
            try:
                resp = httpx.get(resource.url, timeout=self._timeout, follow_redirects=True)
                resp.raise_for_status()
            except httpx.HTTPError as e:
                raise ResourceError(f"Failed to fetch {resource.url}: {e}") from e
            return parse_properties(resp.text)

        try:
            text = resource.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ResourceError(f"Failed to read {resource.path}: {e}") from e
        return parse_properties(text)

    def last_modified(self, resource: Resource) -> Any:
        """Opaque modification signal; compare for inequality only."""
        if resource.is_remote:
            try:
                resp = httpx.head(resource.url, timeout=self._timeout, follow_redirects=True)
                resp.raise_for_status()
            except httpx.HTTPError as e:
                raise ResourceError(f"Failed to check {resource.url}: {e}") from e
            return resp.headers.get("last-modified") or resp.headers.get("etag")

        try:
            return resource.path.stat().st_mtime_ns
        except OSError as e:
            raise ResourceError(f"Failed to stat {resource.path}: {e}") from e

    def load(self, locator: str) -> tuple[Resource, dict[str, Any]]:
        resource = self.resolve(locator)
        return resource, self.read(resource)

    # --------------------------- internals

    def _resolve_url(self, locator: str) -> Resource:
        parsed = urlparse(locator)
        if parsed.scheme == "file":
            path = Path(unquote(parsed.path))
            if not path.is_file():
                raise ResourceError(f"Resource not found: {locator}")
            return Resource(locator=locator, kind="url", path=path)
        if parsed.scheme in ("http", "https"):
            return Resource(locator=locator, kind="url", url=locator)
        raise ResourceError(f"Unsupported URL scheme: {parsed.scheme}")

    def _find_on_search_path(self, locator: str) -> Optional[Path]:
        if Path(locator).is_absolute():
            return None
        relative = locator.lstrip("/")
        roots = self._search_path if self._search_path is not None else sys.path
        for root in roots:
            base = Path(root) if root else Path.cwd()
            candidate = base / relative
            if candidate.is_file():
                return candidate
        return None
