"""
Asset Schema - Generated media and its storage location.

Image assets are written once, already ready. Video assets start as a
placeholder in the generating state and are flipped to ready (or failed)
when the background generation finishes.
"""

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

from director_node.schemas.run import utc_now


class AssetKind(StrEnum):
    IMAGE = "image"
    VIDEO = "video"


class AssetStatus(StrEnum):
    GENERATING = "generating"
    READY = "ready"
    FAILED = "failed"


class AssetRecord(BaseModel):
    """A stored image or video."""

    id: str
    kind: AssetKind
    user_id: str
    project_id: str | None = None

    status: AssetStatus = AssetStatus.READY
    url: str = ""
    storage_key: str | None = None
    bucket: str | None = None
    mime_type: str | None = None
    byte_size: int | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    model_config = {"extra": "allow"}
