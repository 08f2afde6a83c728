"""Async fetcher for template fragments hosted on GitHub.

Downloads a fragment directory through the GitHub contents API
(``/repos/{owner}/{name}/contents/templates/{template}``) into a local cache
directory, which can then be used as a template catalog.  A fetched fragment
is reused while its ``.cache-info.json`` timestamp is younger than the
configured TTL.

Typical usage::

    fetcher = RemoteTemplateFetcher(settings.remote)
    path = await fetcher.fetch("clerk")
    catalog = TemplateCatalog(path.parent)
"""

from __future__ import annotations

import asyncio
import shutil
import time
from pathlib import Path
from typing import Any

import httpx

from stackforge.config import RemoteConfig
from stackforge.utils import ensure_dir, load_json, save_json

GITHUB_API_URL = "https://api.github.com"
CACHE_INFO_FILE = ".cache-info.json"
USER_AGENT = "stackforge"


class RemoteTemplateError(Exception):
    """Raised when a remote template cannot be fetched."""


class RemoteTemplateFetcher:
    """Fetches template fragments from a GitHub repository.

    The client uses ``httpx.AsyncClient``; tests pass an ``httpx.MockTransport``
    through *transport*.
    """

    def __init__(
        self,
        remote: RemoteConfig,
        base_url: str = GITHUB_API_URL,
        timeout: int = 30,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.remote = remote
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _client(self) -> httpx.AsyncClient:
        """Return a fresh ``AsyncClient`` configured for the GitHub API."""
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.timeout, connect=10.0),
            headers={"User-Agent": USER_AGENT, "Accept": "application/vnd.github+json"},
            follow_redirects=True,
            transport=self.transport,
        )

    def _contents_path(self, subpath: str) -> str:
        if not self.remote.repository:
            raise RemoteTemplateError(
                "No remote template repository configured (set STACKFORGE_REMOTE_REPO)"
            )
        return f"/repos/{self.remote.repository}/contents/{subpath}"

    def cache_path(self, name: str) -> Path:
        return self.remote.cache_dir / _plain_name(name)

    def is_cached(self, name: str, now: float | None = None) -> bool:
        """``True`` when *name* was fetched less than ``cache_ttl`` seconds ago."""
        info_path = self.cache_path(name) / CACHE_INFO_FILE
        if not info_path.is_file():
            return False
        try:
            timestamp = float(load_json(info_path)["timestamp"])
        except (OSError, ValueError, KeyError, TypeError):
            # Unreadable cache info means the cache is stale.
            return False
        now = time.time() if now is None else now
        return now - timestamp < self.remote.cache_ttl

    async def _get_json(self, client: httpx.AsyncClient, url: str) -> Any:
        response = await client.get(url, params={"ref": self.remote.branch})
        response.raise_for_status()
        return response.json()

    async def _download(self, client: httpx.AsyncClient, item: dict[str, Any], dest: Path) -> None:
        name = _plain_name(item["name"])
        if item.get("type") == "file":
            response = await client.get(item["download_url"])
            response.raise_for_status()
            await asyncio.to_thread(_write_bytes, dest / name, response.content)
        elif item.get("type") == "dir":
            subdir = dest / name
            await asyncio.to_thread(ensure_dir, subdir)
            for child in await self._get_json(client, item["url"]):
                await self._download(client, child, subdir)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def fetch(self, name: str, force: bool = False) -> Path:
        """Download template *name* into the cache and return its directory.

        Raises:
            RemoteTemplateError: The name is not a plain directory name, the
                repository is not configured or the download failed.
        """
        target = self.cache_path(name)
        if not force and await asyncio.to_thread(self.is_cached, name):
            return target

        url = self._contents_path(f"templates/{name}")
        cache_root = self.remote.cache_dir.resolve()
        resolved = target.resolve()
        if resolved == cache_root or not resolved.is_relative_to(cache_root):
            raise RemoteTemplateError(f"'{name}' resolves outside the cache directory {cache_root}")
        try:
            async with self._client() as client:
                listing = await self._get_json(client, url)
                if not isinstance(listing, list):
                    raise RemoteTemplateError(f"'{name}' is not a template directory")
                await asyncio.to_thread(_empty_dir, target)
                for item in listing:
                    await self._download(client, item, target)
            await save_json({"timestamp": time.time()}, target / CACHE_INFO_FILE)
        except httpx.ConnectError as exc:
            raise RemoteTemplateError(f"Cannot connect to {self.base_url}: {exc}") from exc
        except httpx.TimeoutException as exc:
            raise RemoteTemplateError(
                f"Request to {self.base_url} timed out after {self.timeout}s."
            ) from exc
        except httpx.HTTPStatusError as exc:
            raise RemoteTemplateError(
                f"Failed to fetch template '{name}': GitHub API returned status code "
                f"{exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise RemoteTemplateError(f"Failed to fetch template '{name}': {exc}") from exc
        except (KeyError, TypeError, ValueError) as exc:
            raise RemoteTemplateError(
                f"Unexpected response while fetching template '{name}': {exc!r}"
            ) from exc
        except OSError as exc:
            raise RemoteTemplateError(f"Cannot write template '{name}' to the cache: {exc}") from exc

        return target

    async def list_templates(self) -> list[str]:
        """Names of the template directories in the remote repository.

        Returns an empty list when the listing cannot be fetched.
        """
        try:
            url = self._contents_path("templates")
            async with self._client() as client:
                listing = await self._get_json(client, url)
        except (RemoteTemplateError, httpx.HTTPError, ValueError):
            return []
        if not isinstance(listing, list):
            return []
        return [
            item["name"] for item in listing if isinstance(item, dict) and item.get("type") == "dir"
        ]


def _empty_dir(path: Path) -> None:
    if path.exists():
        shutil.rmtree(path)
    path.mkdir(parents=True, exist_ok=True)


def _write_bytes(path: Path, content: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)


def _plain_name(name: str) -> str:
    """Return *name* if it is a single path component, else raise."""
    if not isinstance(name, str) or name in ("", ".", "..") or "/" in name or "\\" in name:
        raise RemoteTemplateError(f"Invalid template name: {name!r}")
    return name
