"""Generation providers and media storage."""

from director_node.providers.provider import (
    ImageProvider,
    ImageRequest,
    ImageResult,
    MediaStore,
    ReferenceImageLoader,
    UploadResult,
    VideoProvider,
    VideoRequest,
    VideoResult,
)
from director_node.providers.stub import LocalMediaStore, StubImageProvider, StubVideoProvider

__all__ = [
    "ImageProvider",
    "ImageRequest",
    "ImageResult",
    "LocalMediaStore",
    "MediaStore",
    "ReferenceImageLoader",
    "StubImageProvider",
    "StubVideoProvider",
    "UploadResult",
    "VideoProvider",
    "VideoRequest",
    "VideoResult",
]
