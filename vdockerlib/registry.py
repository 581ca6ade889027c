"""
Read access to the tag listing of the image repository on the registry.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, NamedTuple, Optional, Set

import requests

from vdockerlib import constants, logutil
from vdockerlib.exceptions import DecodeError, NetworkError

logger = logutil.getLogger(__name__)


class EntryKind(Enum):
    MANIFEST = "manifest"
    CONTAINER = "container"


class ImageRef(NamedTuple):
    """ One architecture-specific image referenced by a registry tag """
    architecture: str
    variant: Optional[str] = None

    @staticmethod
    def from_dict(image: Dict[str, Any]) -> "ImageRef":
        return ImageRef(architecture=image["architecture"], variant=image.get("variant") or None)


def classify(media_type: Optional[str]) -> EntryKind:
    """
    :param media_type: The media type the registry reports for a tag
    :return: MANIFEST for (multi-arch) distribution manifests, CONTAINER for anything else
    """
    if media_type and constants.MANIFEST_MEDIA_TYPE_MARKER in media_type:
        return EntryKind.MANIFEST
    return EntryKind.CONTAINER


@dataclass
class RegistryEntry:
    name: str
    kind: EntryKind
    images: List[ImageRef] = field(default_factory=list)

    @property
    def architectures(self) -> Set[str]:
        return {image.architecture for image in self.images}

    @staticmethod
    def from_dict(result: Dict[str, Any]) -> "RegistryEntry":
        images = [ImageRef.from_dict(image) for image in result.get("images") or [] if image.get("architecture")]
        return RegistryEntry(
            name=result["name"],
            kind=classify(result.get("media_type")),
            images=images,
        )


@dataclass
class TagListing:
    count: int
    results: List[RegistryEntry] = field(default_factory=list)

    def names(self) -> List[str]:
        return [entry.name for entry in self.results]


class RegistryClient:
    """
    Lists the tags of one repository, most recently updated first.

    Only the first page (constants.REGISTRY_PAGE_SIZE tags) is read unless max_pages
    is raised, so tags that were not updated recently are invisible to callers.
    """

    def __init__(self, tags_url: str, page_size: int = constants.REGISTRY_PAGE_SIZE,
                 max_pages: int = constants.REGISTRY_MAX_PAGES, session: Optional[requests.Session] = None,
                 timeout: float = constants.HTTP_TIMEOUT):
        if page_size <= 0:
            raise ValueError("page_size must be positive")
        if max_pages <= 0:
            raise ValueError("max_pages must be positive")
        self.tags_url = tags_url
        self.page_size = page_size
        self.max_pages = max_pages
        self.session = session or requests.Session()
        self.timeout = timeout

    def list_tags(self) -> TagListing:
        """
        Fetch the tag listing. Nothing is cached; every call queries the registry.
        :raises NetworkError: registry unreachable or non-2xx
        :raises DecodeError: body is not a tag listing
        """
        params = {"page_size": self.page_size, "page": 1, "ordering": constants.REGISTRY_ORDERING}
        data = self._get_json(self.tags_url, params)
        listing = self._decode(data)
        next_url = data.get("next")
        pages = 1
        while next_url and pages < self.max_pages:
            data = self._get_json(next_url)
            listing.results.extend(self._decode(data).results)
            next_url = data.get("next")
            pages += 1
        if next_url:
            logger.debug("Registry has more than %s tags; only %s page(s) were read",
                         len(listing.results), pages)
        return listing

    def exists(self, tag: str) -> bool:
        """
        :return: True if a tag with exactly this name is in a fresh listing
        """
        found = tag in self.list_tags().names()
        logger.debug("Tag %s %s in registry listing", tag, "found" if found else "not found")
        return found

    def _get_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        logger.debug("Fetching registry tags from %s %s", url, params or "")
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as ex:
            raise NetworkError(f"Loading registry tags at {url} failed: {ex}") from ex
        try:
            data = response.json()
        except ValueError as ex:
            raise DecodeError(f"Registry tags at {url} are not valid JSON: {ex}") from ex
        if not isinstance(data, dict):
            raise DecodeError(f"Registry tags at {url}: expected a JSON object, got {type(data).__name__}")
        return data

    @staticmethod
    def _decode(data: Dict[str, Any]) -> TagListing:
        try:
            results = [RegistryEntry.from_dict(result) for result in data.get("results") or []]
            return TagListing(count=int(data.get("count", len(results))), results=results)
        except (KeyError, TypeError, ValueError, AttributeError) as ex:
            raise DecodeError(f"Unexpected registry tag listing: {ex}") from ex
