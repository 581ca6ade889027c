from typing import Any, List, Optional

import requests

from vdockerlib import constants, logutil
from vdockerlib.exceptions import DecodeError, NetworkError

logger = logutil.getLogger(__name__)


class VersionResolver:
    """
    Looks up release tags of the upstream project on its release source (the GitHub releases API).
    """

    def __init__(self, releases_url: str = constants.DEFAULT_RELEASES_URL, session: Optional[requests.Session] = None,
                 timeout: float = constants.HTTP_TIMEOUT):
        self.releases_url = releases_url.rstrip('/')
        self.session = session or requests.Session()
        self.timeout = timeout

    def latest(self) -> str:
        """
        :return: The tag of the most recent release
        """
        url = f"{self.releases_url}/latest"
        release = self._get_json(url)
        if not isinstance(release, dict):
            raise DecodeError(f"Release at {url}: expected a JSON object, got {type(release).__name__}")
        tag = self._tag_name(release, url)
        logger.info("Latest upstream release is %s", tag)
        return tag

    def latest_n(self, n: int) -> List[str]:
        """
        :param n: How many releases to return; must be positive
        :return: Tags of the n most recent releases, most recent first
        """
        if n <= 0:
            raise ValueError(f"Number of releases must be positive, got {n}")
        url = self.releases_url
        releases = self._get_json(url, params={"per_page": n})
        if not isinstance(releases, list):
            raise DecodeError(f"Releases at {url}: expected a JSON array, got {type(releases).__name__}")
        tags = [self._tag_name(release, url) for release in releases[:n]]
        logger.info("%s most recent upstream release(s): %s", len(tags), ", ".join(tags))
        return tags

    def _get_json(self, url: str, params=None) -> Any:
        try:
            response = self.session.get(url, params=params, timeout=self.timeout,
                                        headers={"Accept": "application/vnd.github+json"})
            response.raise_for_status()
        except requests.RequestException as ex:
            raise NetworkError(f"Loading releases at {url} failed: {ex}") from ex
        try:
            return response.json()
        except ValueError as ex:
            raise DecodeError(f"Releases at {url} are not valid JSON: {ex}") from ex

    @staticmethod
    def _tag_name(release: Any, url: str) -> str:
        if not isinstance(release, dict) or not isinstance(release.get("tag_name"), str) or not release["tag_name"]:
            raise DecodeError(f"Release from {url} has no tag_name")
        return release["tag_name"]
