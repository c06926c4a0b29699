"""GitHub / GitLab repository client.

Fetches repository metadata and the top-level listing over the REST APIs,
then downloads the content of every listed manifest so it can be analyzed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote, urlparse

import httpx

from . import __version__
from .analyzer import DEPENDENCY_FILES, RepoFile
from .config import DEFAULT_GITLAB_URL, Settings

logger = logging.getLogger(__name__)

GITHUB_API_URL = "https://api.github.com"
USER_AGENT = f"repodeps/{__version__}"


class RepositoryError(Exception):
    """Repository could not be resolved or fetched."""

    def __init__(self, message: str, status_code: int = 500):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class ParsedRepo:
    platform: str  # "github" or "gitlab"
    owner: str
    repo: str


@dataclass
class RepoInfo:
    """Repository metadata plus its top-level listing."""

    name: str
    description: str | None
    language: str | None
    platform: str
    owner: str
    files: list[RepoFile] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "language": self.language,
            "platform": self.platform,
            "owner": self.owner,
            "files": [{"name": f.name, "type": f.type, "path": f.path} for f in self.files],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RepoInfo:
        return cls(
            name=data["name"],
            description=data.get("description"),
            language=data.get("language"),
            platform=data["platform"],
            owner=data["owner"],
            files=[RepoFile.from_dict(f) for f in data.get("files", [])],
        )


def parse_repo_url(url: str, gitlab_url: str = DEFAULT_GITLAB_URL) -> ParsedRepo:
    """Split a repository URL into platform, owner and repository name."""
    parsed = urlparse(url.strip())
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        raise RepositoryError("Invalid URL format", 400)

    path = parsed.path
    if path.endswith(".git"):
        path = path[: -len(".git")]
    segments = [s for s in path.split("/") if s]
    if len(segments) < 2:
        raise RepositoryError(
            "URL must contain owner and repository name (e.g. https://github.com/owner/repo)",
            400,
        )

    host = parsed.hostname
    if host == "github.com":
        platform = "github"
    elif host in ("gitlab.com", urlparse(gitlab_url).hostname):
        platform = "gitlab"
    else:
        raise RepositoryError(
            f"Unsupported platform: {host}. Only GitHub and GitLab are supported.", 400
        )

    return ParsedRepo(platform=platform, owner=segments[0], repo=segments[1])


class RepositoryClient:
    """Client for the GitHub and GitLab REST APIs."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or Settings.from_env()
        self._client = httpx.Client(
            timeout=self.settings.timeout,
            follow_redirects=True,
            headers={"User-Agent": USER_AGENT},
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> RepositoryClient:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def get_repo_info(self, url: str) -> RepoInfo:
        """Fetch metadata, listing and manifest contents for a repository URL."""
        parsed = parse_repo_url(url, self.settings.gitlab_url)
        logger.debug("Fetching %s repository %s/%s", parsed.platform, parsed.owner, parsed.repo)
        if parsed.platform == "github":
            return self._fetch_github(parsed.owner, parsed.repo)
        return self._fetch_gitlab(parsed.owner, parsed.repo)

    # --- GitHub ---

    def _github_headers(self) -> dict[str, str]:
        headers = {"Accept": "application/vnd.github.v3+json"}
        if self.settings.github_token:
            headers["Authorization"] = f"Bearer {self.settings.github_token}"
        return headers

    def _fetch_github(self, owner: str, repo: str) -> RepoInfo:
        headers = self._github_headers()
        base = f"{GITHUB_API_URL}/repos/{owner}/{repo}"
        repo_data = self._get_json(base, headers, "GitHub", owner, repo)
        contents = self._get_json(f"{base}/contents", headers, "GitHub", owner, repo)
        if not isinstance(contents, list):
            raise RepositoryError(f"Unexpected GitHub contents response for {owner}/{repo}")

        files = []
        for item in contents:
            f = RepoFile(
                name=item["name"],
                type="dir" if item.get("type") == "dir" else "file",
                path=item["path"],
            )
            download_url = item.get("download_url")
            if f.is_file and f.name in DEPENDENCY_FILES and download_url:
                f.content = self._download(download_url, headers)
            files.append(f)

        return RepoInfo(
            name=repo_data.get("name", repo),
            description=repo_data.get("description"),
            language=repo_data.get("language"),
            platform="github",
            owner=owner,
            files=files,
        )

    # --- GitLab ---

    def _fetch_gitlab(self, owner: str, repo: str) -> RepoInfo:
        headers: dict[str, str] = {}
        if self.settings.gitlab_token:
            headers["PRIVATE-TOKEN"] = self.settings.gitlab_token
        project = f"{self.settings.gitlab_url}/api/v4/projects/{quote(f'{owner}/{repo}', safe='')}"

        repo_data = self._get_json(project, headers, "GitLab", owner, repo)
        tree = self._get_json(f"{project}/repository/tree", headers, "GitLab", owner, repo)
        if not isinstance(tree, list):
            raise RepositoryError(f"Unexpected GitLab tree response for {owner}/{repo}")
        ref = repo_data.get("default_branch") or "HEAD"

        files = []
        for item in tree:
            f = RepoFile(
                name=item["name"],
                type="dir" if item.get("type") == "tree" else "file",
                path=item["path"],
            )
            if f.is_file and f.name in DEPENDENCY_FILES:
                raw_url = f"{project}/repository/files/{quote(f.path, safe='')}/raw?ref={quote(ref, safe='')}"
                f.content = self._download(raw_url, headers)
            files.append(f)

        return RepoInfo(
            name=repo_data.get("name", repo),
            description=repo_data.get("description"),
            language=None,
            platform="gitlab",
            owner=owner,
            files=files,
        )

    # --- HTTP helpers ---

    def _get_json(self, url: str, headers: dict[str, str], platform: str, owner: str, repo: str) -> Any:
        try:
            resp = self._client.get(url, headers=headers)
        except httpx.HTTPError as e:
            raise RepositoryError(f"Failed to fetch {platform} repository: {e}")

        if resp.status_code == 404:
            raise RepositoryError(f"Repository not found: {owner}/{repo}", 404)
        if resp.status_code >= 400:
            raise RepositoryError(
                f"Failed to fetch {platform} repository: HTTP {resp.status_code}",
                resp.status_code,
            )
        try:
            return resp.json()
        except ValueError:
            raise RepositoryError(f"{platform} returned invalid JSON for {owner}/{repo}")

    def _download(self, url: str, headers: dict[str, str]) -> str | None:
        """Fetch a raw file. Failures leave the content absent."""
        try:
            resp = self._client.get(url, headers=headers)
        except httpx.HTTPError as e:
            logger.warning("Could not download %s: %s", url, e)
            return None
        if resp.status_code != 200:
            logger.debug("Download of %s returned %s", url, resp.status_code)
            return None
        return resp.text[: self.settings.max_file_bytes]
