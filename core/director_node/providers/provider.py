"""Generation provider and media store abstractions.

The executor never talks to a concrete AI API. imageGen and videoGen nodes
receive these collaborators through NodeServices, so a deployment plugs in
real clients and tests plug in spies.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

import httpx

from director_node.errors import ProviderError

logger = logging.getLogger(__name__)


@dataclass
class ImageRequest:
    """One image generation call."""

    prompt: str
    reference_images: list[bytes] = field(default_factory=list)
    aspect_ratio: str = "16:9"
    image_size: str = "2K"
    seed: int | None = None


@dataclass
class ImageResult:
    image_bytes: bytes
    mime_type: str = "image/png"


@dataclass
class VideoRequest:
    """One image-to-video generation call, keyed by the keyframe URL."""

    keyframe_url: str
    prompt: str
    model: str
    duration: int
    resolution: str | None = None


@dataclass
class VideoResult:
    video_bytes: bytes
    task_id: str | None = None
    file_id: str | None = None
    mime_type: str = "video/mp4"


@dataclass
class UploadResult:
    url: str
    key: str


class ImageProvider(ABC):
    """
    Abstract image generator.

    Implementations raise ProviderError (or any exception) on failure; the
    executor turns that into an error result for the node.
    """

    @abstractmethod
    async def generate(self, request: ImageRequest) -> ImageResult:
        pass


class VideoProvider(ABC):
    """
    Abstract video generator.

    generate() may take minutes; the worker calls it only during video
    finalize, after the run already holds a placeholder asset.
    """

    @abstractmethod
    async def generate(self, request: VideoRequest) -> VideoResult:
        pass


class MediaStore(ABC):
    """Object storage for generated media."""

    @abstractmethod
    async def upload(
        self,
        data: bytes,
        filename: str,
        content_type: str,
        path: str,
    ) -> UploadResult:
        """Store data under {path}/{filename} and return its public URL and key."""
        pass


class ReferenceImageLoader:
    """
    Downloads reference images over HTTP for imageGen.

    A download that fails is logged and skipped; generation continues with
    whatever references could be fetched.
    """

    def __init__(self, client: httpx.AsyncClient | None = None, timeout: float = 30.0):
        self._client = client
        self._timeout = timeout

    async def _fetch(self, client: httpx.AsyncClient, url: str) -> bytes | None:
        try:
            response = await client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"Failed to download reference image {url}: {e}")
            return None
        return response.content

    async def load(self, urls: list[str]) -> list[bytes]:
        """Download every URL in order, dropping the ones that fail."""
        if not urls:
            return []
        if self._client is not None:
            results = [await self._fetch(self._client, url) for url in urls]
        else:
            async with httpx.AsyncClient(timeout=self._timeout, follow_redirects=True) as client:
                results = [await self._fetch(client, url) for url in urls]
        return [data for data in results if data is not None]


def require_bytes(data: bytes | None, what: str) -> bytes:
    """Guard against providers that return an empty payload."""
    if not data:
        raise ProviderError(f"{what} returned no data")
    return data
