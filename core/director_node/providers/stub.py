"""
Offline providers for dry runs and tests.

StubImageProvider and StubVideoProvider return small placeholder payloads
without touching the network. LocalMediaStore writes uploads to a directory
and hands back file:// URLs.
"""

import asyncio
import hashlib
import logging
import uuid
from pathlib import Path

from director_node.providers.provider import (
    ImageProvider,
    ImageRequest,
    ImageResult,
    MediaStore,
    UploadResult,
    VideoProvider,
    VideoRequest,
    VideoResult,
)
from director_node.utils.io import atomic_write

logger = logging.getLogger(__name__)

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


class StubImageProvider(ImageProvider):
    """Returns a PNG signature followed by a digest of the request."""

    def __init__(self):
        self.requests: list[ImageRequest] = []

    async def generate(self, request: ImageRequest) -> ImageResult:
        self.requests.append(request)
        digest = hashlib.sha256(request.prompt.encode("utf-8")).digest()
        return ImageResult(image_bytes=PNG_SIGNATURE + digest)


class StubVideoProvider(VideoProvider):
    """Returns a fake MP4 payload and generated task/file ids."""

    def __init__(self):
        self.requests: list[VideoRequest] = []

    async def generate(self, request: VideoRequest) -> VideoResult:
        self.requests.append(request)
        payload = f"stub-video:{request.model}:{request.duration}s:{request.prompt}"
        return VideoResult(
            video_bytes=payload.encode("utf-8"),
            task_id=f"task_{uuid.uuid4().hex[:12]}",
            file_id=f"file_{uuid.uuid4().hex[:12]}",
        )


class LocalMediaStore(MediaStore):
    """Stores uploads under root_dir, mirroring the object key layout."""

    def __init__(self, root_dir: str | Path, base_url: str | None = None):
        self.root_dir = Path(root_dir)
        self.base_url = base_url.rstrip("/") if base_url else None

    async def upload(
        self,
        data: bytes,
        filename: str,
        content_type: str,
        path: str,
    ) -> UploadResult:
        key = f"{path.strip('/')}/{filename}" if path else filename
        target = self.root_dir / key

        def _write():
            with atomic_write(target, mode="wb", encoding=None) as f:
                f.write(data)

        await asyncio.to_thread(_write)
        logger.debug(f"Stored {len(data)} bytes ({content_type}) at {key}")

        url = f"{self.base_url}/{key}" if self.base_url else target.resolve().as_uri()
        return UploadResult(url=url, key=key)
