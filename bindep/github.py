"""
GitHub releases client.

Thin wrapper around the GitHub REST API used for two things:
- reading release metadata (assets and their download URLs) when
  installing release-archive binaries;
- hosting the remote build cache (creating releases, uploading and
  replacing assets).

All calls share one requests.Session so headers, authentication and
connection pooling are configured in one place.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

import requests

from bindep.core.exceptions import DownloadFailedError, ReleaseLookupError

logger = logging.getLogger(__name__)

UPLOAD_URL = "https://uploads.github.com"


@dataclass
class ReleaseAsset:
    """A downloadable file attached to a release."""

    name: str
    download_url: str
    id: Optional[int] = None
    size: int = 0


@dataclass
class Release:
    """A GitHub release and its assets."""

    tag: str
    id: Optional[int] = None
    assets: List[ReleaseAsset] = field(default_factory=list)

    @property
    def asset_names(self) -> List[str]:
        return [asset.name for asset in self.assets]

    def asset(self, name: str) -> Optional[ReleaseAsset]:
        for asset in self.assets:
            if asset.name == name:
                return asset
        return None

    @classmethod
    def from_api(cls, data: dict) -> "Release":
        return cls(
            tag=data.get("tag_name", ""),
            id=data.get("id"),
            assets=[
                ReleaseAsset(
                    name=a["name"],
                    download_url=a["browser_download_url"],
                    id=a.get("id"),
                    size=a.get("size", 0),
                )
                for a in data.get("assets", [])
            ],
        )


class GitHubClient:
    """
    Minimal GitHub REST client for releases.

    Example:
        >>> client = GitHubClient(token=os.environ.get("GITHUB_TOKEN"))
        >>> release = client.get_release("go-task/task", "v3.44.1")
        >>> release.asset_names[:2]
        ['task_darwin_amd64.tar.gz', 'task_darwin_arm64.tar.gz']
    """

    def __init__(
        self,
        api_url: str = "https://api.github.com",
        token: Optional[str] = None,
        timeout: int = 30,
        session: Optional[requests.Session] = None,
        upload_url: str = UPLOAD_URL,
    ):
        self.api_url = api_url.rstrip("/")
        self.upload_url = upload_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(self._headers())

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": "bindep",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    @property
    def authenticated(self) -> bool:
        return bool(self.token)

    # ------------------------------------------------------------------
    # Reading releases
    # ------------------------------------------------------------------

    def get_release(self, repo: str, tag: str) -> Release:
        """
        Fetch release metadata by tag.

        Args:
            repo: 'owner/project'
            tag: Release tag, or 'latest' for the latest published release

        Returns:
            Release with its assets

        Raises:
            ReleaseLookupError: On HTTP or network failure
        """
        if tag == "latest":
            url = f"{self.api_url}/repos/{repo}/releases/latest"
        else:
            url = f"{self.api_url}/repos/{repo}/releases/tags/{tag}"

        logger.debug(f"Fetching release metadata: {url}")
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
            return Release.from_api(response.json())
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else "?"
            raise ReleaseLookupError(
                f"release {tag} of {repo} not available (HTTP {status})"
            ) from e
        except (requests.RequestException, ValueError, KeyError) as e:
            raise ReleaseLookupError(
                f"failed to fetch release {tag} of {repo}: {e}"
            ) from e

    def find_release(self, repo: str, tag: str) -> Optional[Release]:
        """
        Like get_release(), but returns None when the release does not exist.

        Raises:
            ReleaseLookupError: On failures other than 404
        """
        try:
            return self.get_release(repo, tag)
        except ReleaseLookupError as e:
            cause = e.__cause__
            if (
                isinstance(cause, requests.HTTPError)
                and cause.response is not None
                and cause.response.status_code == 404
            ):
                return None
            raise

    # ------------------------------------------------------------------
    # Writing releases
    # ------------------------------------------------------------------

    def create_release(self, repo: str, tag: str, body: str = "") -> Release:
        """
        Create a release (and its tag).

        Raises:
            ReleaseLookupError: On HTTP or network failure
        """
        url = f"{self.api_url}/repos/{repo}/releases"
        payload = {"tag_name": tag, "name": tag, "body": body}
        try:
            response = self.session.post(url, json=payload, timeout=self.timeout)
            response.raise_for_status()
            release = Release.from_api(response.json())
        except (requests.RequestException, ValueError, KeyError, AttributeError) as e:
            raise ReleaseLookupError(
                f"failed to create release {tag} in {repo}: {e}"
            ) from e

        logger.info(f"Created release {tag} in {repo}")
        return release

    def delete_asset(self, repo: str, asset_id: int) -> None:
        """
        Delete a release asset.

        Raises:
            DownloadFailedError: On HTTP or network failure
        """
        url = f"{self.api_url}/repos/{repo}/releases/assets/{asset_id}"
        try:
            response = self.session.delete(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise DownloadFailedError(
                f"failed to delete asset {asset_id} in {repo}: {e}", url=url
            ) from e

    def upload_asset(
        self, repo: str, release: Release, file_path: Path, name: str
    ) -> ReleaseAsset:
        """
        Upload a file as a release asset, replacing any asset of the same name.

        Args:
            repo: 'owner/project'
            release: Target release (must have an id)
            file_path: Local file to upload
            name: Asset name

        Returns:
            The uploaded asset

        Raises:
            DownloadFailedError: On HTTP or network failure, an unreadable
                file or an unparseable response
        """
        existing = release.asset(name)
        if existing is not None and existing.id is not None:
            logger.debug(f"Replacing existing asset {name} in {repo}")
            self.delete_asset(repo, existing.id)

        url = f"{self.upload_url}/repos/{repo}/releases/{release.id}/assets"
        try:
            with open(file_path, "rb") as f:
                response = self.session.post(
                    url,
                    params={"name": name},
                    data=f,
                    headers={"Content-Type": "application/octet-stream"},
                    timeout=self.timeout,
                )
            response.raise_for_status()
            data = response.json()
            if not isinstance(data, dict):
                raise ValueError(f"expected an object, got {type(data).__name__}")
        except (requests.RequestException, ValueError, OSError) as e:
            raise DownloadFailedError(
                f"failed to upload {name} to {repo}: {e}", url=url
            ) from e

        logger.info(f"Uploaded {name} to {repo}@{release.tag}")
        return ReleaseAsset(
            name=data.get("name", name),
            download_url=data.get("browser_download_url", ""),
            id=data.get("id"),
            size=data.get("size", 0),
        )


__all__ = ["GitHubClient", "Release", "ReleaseAsset"]
