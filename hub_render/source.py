"""Retrieval of chart and manifest sources.

Raw manifest archives are gzipped tarballs of YAML files, addressed by an
http(s) url or a local path. Charts stored in github repositories are cloned
into a cache directory so that several installation steps rendering from the
same repository and ref share one checkout. Branches are fetched again each
time they are checked out.
"""

from abc import ABC, abstractmethod
import asyncio
import hashlib
import io
import logging
from pathlib import Path
from shutil import rmtree
import tarfile
import tempfile
import threading
from urllib.parse import urlparse

import aiofiles
import git
import httpx
from slugify import slugify

from .config import FetchConfig
from .exceptions import FetchException
from .manifest import GithubChart
from .resources import Manifest

__all__ = [
    "ManifestFetcher",
    "ArchiveManifestFetcher",
    "SourceCache",
    "fetch_github_chart",
]

_LOGGER = logging.getLogger(__name__)

MANIFEST_SUFFIXES = (".yaml", ".yml", ".json")


class ManifestFetcher(ABC):
    """Retrieves already rendered manifests from an archive."""

    @abstractmethod
    async def fetch_manifests(self, uri: str) -> list[Manifest]:
        """Return the manifests contained in the archive at uri."""


def _is_remote(uri: str) -> bool:
    return urlparse(uri).scheme in ("http", "https")


def read_manifests_archive(uri: str, content: bytes) -> list[Manifest]:
    """Return the manifest files contained in a tarball, sorted by path."""
    try:
        with tarfile.open(fileobj=io.BytesIO(content), mode="r:*") as archive:
            members = sorted(
                (
                    member
                    for member in archive.getmembers()
                    if member.isfile() and member.name.endswith(MANIFEST_SUFFIXES)
                ),
                key=lambda member: member.name,
            )
            manifests = []
            for member in members:
                if (extracted := archive.extractfile(member)) is None:
                    continue
                manifests.append(
                    Manifest(
                        name=member.name,
                        content=extracted.read().decode("utf-8"),
                    )
                )
    except (tarfile.TarError, UnicodeDecodeError) as err:
        raise FetchException(f"Unable to read manifests archive {uri}: {err}") from err
    _LOGGER.debug("Read %d manifests from %s", len(manifests), uri)
    return manifests


class ArchiveManifestFetcher(ManifestFetcher):
    """Fetches manifests from a tarball at an http(s) url or local path."""

    def __init__(self, config: FetchConfig | None = None) -> None:
        """Initialize ArchiveManifestFetcher."""
        self._config = config or FetchConfig()

    async def _download(self, uri: str) -> bytes:
        _LOGGER.info("Downloading manifests archive %s", uri)
        try:
            async with httpx.AsyncClient(
                timeout=self._config.timeout, follow_redirects=True
            ) as client:
                response = await client.get(uri)
                response.raise_for_status()
                return response.content
        except httpx.HTTPError as err:
            raise FetchException(f"Unable to download {uri}: {err}") from err

    async def _read(self, uri: str) -> bytes:
        path = urlparse(uri).path if uri.startswith("file://") else uri
        try:
            async with aiofiles.open(path, mode="rb") as archive_file:
                return await archive_file.read()
        except OSError as err:
            raise FetchException(f"Unable to read {uri}: {err}") from err

    async def fetch_manifests(self, uri: str) -> list[Manifest]:
        """Return the manifests contained in the archive at uri."""
        if _is_remote(uri):
            content = await self._download(uri)
        else:
            content = await self._read(uri)
        return read_manifests_archive(uri, content)


class SourceCache:
    """Cache of git checkouts, keyed by repository url and ref.

    Checkouts are kept in the cache directory between runs. Each use fetches
    the remote again, so a branch ref always resolves to the current head of
    the branch while tags and commits reuse the existing clone.
    """

    def __init__(self, cache_dir: Path | None = None) -> None:
        """Initialize SourceCache."""
        self._cache_dir = cache_dir or Path(tempfile.gettempdir()) / "hub-render-cache"
        self._locks: dict[Path, threading.Lock] = {}
        self._locks_lock = threading.Lock()

    def get_repo_path(self, url: str, ref: str) -> Path:
        """Return the local path used for a checkout of url at ref."""
        cache_key = hashlib.sha256()
        cache_key.update(url.encode("utf-8"))
        cache_key.update(ref.encode("utf-8"))
        path = urlparse(url).path.removesuffix(".git")
        slug = slugify(
            path.split("/")[-1], max_length=50, lowercase=True, separator="-"
        )
        # e.g. /hub-render-cache/my-repo/ab1234567890abcdef
        return self._cache_dir / (slug or "repo") / cache_key.hexdigest()[:16]

    def _lock(self, repo_path: Path) -> threading.Lock:
        with self._locks_lock:
            return self._locks.setdefault(repo_path, threading.Lock())

    def checkout(self, url: str, ref: str) -> Path:
        """Clone or update url and check out ref, returning the checkout path.

        Calls for the same url and ref are serialized, so concurrent renders
        share a single clone.
        """
        repo_path = self.get_repo_path(url, ref)
        with self._lock(repo_path):
            if (repo_path / ".git").exists():
                self._update(url, ref, repo_path)
            else:
                self._clone(url, ref, repo_path)
        return repo_path

    def _clone(self, url: str, ref: str, repo_path: Path) -> None:
        _LOGGER.info("Cloning repository %s to %s", url, repo_path)
        try:
            repo_path.mkdir(parents=True, exist_ok=True)
            repo = git.Repo.clone_from(url, str(repo_path))
            _LOGGER.debug("Checking out %s", ref)
            repo.git.checkout(ref)
        except git.exc.GitCommandError as err:
            rmtree(repo_path, ignore_errors=True)
            raise FetchException(
                f"Git operation failed for {url}@{ref}: {err}"
            ) from err
        except OSError as err:
            raise FetchException(f"Unable to prepare checkout of {url}: {err}") from err

    def _update(self, url: str, ref: str, repo_path: Path) -> None:
        _LOGGER.info("Updating existing repository at %s", repo_path)
        try:
            repo = git.Repo(str(repo_path))
            origin = repo.remotes.origin
            origin.fetch(tags=True, force=True)
            repo.git.checkout(ref)
            if any(remote_ref.remote_head == ref for remote_ref in origin.refs):
                _LOGGER.debug("Resetting branch %s to origin/%s", ref, ref)
                repo.git.reset("--hard", f"origin/{ref}")
        except (git.exc.GitCommandError, git.exc.InvalidGitRepositoryError) as err:
            raise FetchException(
                f"Git operation failed for {url}@{ref}: {err}"
            ) from err


_SOURCE_CACHE = SourceCache()


def get_source_cache() -> SourceCache:
    """Get the singleton SourceCache instance."""
    return _SOURCE_CACHE


async def fetch_github_chart(
    chart: GithubChart, cache: SourceCache | None = None
) -> Path:
    """Return the local path of the chart directory for a github chart."""
    cache = cache or get_source_cache()
    repo_path = await asyncio.to_thread(cache.checkout, chart.url, chart.ref)
    chart_path = repo_path / chart.directory if chart.directory else repo_path
    if not chart_path.is_dir():
        raise FetchException(
            f"Chart directory '{chart.directory}' not found in {chart}"
        )
    return chart_path
