"""
Run Schema - One request to compute one target node of a graph.

A run carries a snapshot of the graph as it was when the run was queued
(meta.graph_json), so later edits in the editor never change what a queued
run executes. Workers claim runs queued → processing and finish them as
completed or failed.
"""

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


def utc_now() -> datetime:
    return datetime.now(UTC)


class RunStatus(StrEnum):
    """Status of a run."""

    QUEUED = "queued"
    PROCESSING = "processing"  # Claimed by a worker, or waiting on video finalize
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (RunStatus.COMPLETED, RunStatus.FAILED)


class RunRecord(BaseModel):
    """
    A persisted run.

    output_payload holds the target node's outputs (tagged with __nodeType)
    once the run completes; the cross-run cache reads it back.
    """

    id: str
    graph_id: str
    node_id: str
    node_type: str | None = None
    user_id: str
    project_id: str | None = None
    provider: str | None = None

    status: RunStatus = RunStatus.QUEUED
    meta: dict[str, Any] = Field(default_factory=dict)
    output_payload: dict[str, Any] | None = None
    error_message: str | None = None
    placeholder_asset_id: str | None = None

    # Background job descriptors, e.g. {"video_generation": {...}}
    node_results: dict[str, Any] = Field(default_factory=dict)

    created_at: datetime = Field(default_factory=utc_now)
    started_at: datetime | None = None
    completed_at: datetime | None = None

    model_config = {"extra": "allow"}

    @property
    def graph_json(self) -> dict[str, Any] | None:
        return self.meta.get("graph_json")

    @property
    def asset_url(self) -> str | None:
        """URL of the produced image, else of the produced video."""
        payload = self.output_payload or {}
        for key in ("image_asset", "video_asset"):
            asset = payload.get(key)
            if isinstance(asset, dict) and asset.get("url"):
                return asset["url"]
        return None

    def status_view(self) -> dict[str, Any]:
        """The fields a client polls while waiting on a run."""
        return {
            "id": self.id,
            "status": str(self.status),
            "node_id": self.node_id,
            "node_type": self.node_type,
            "provider": self.provider,
            "output_payload": self.output_payload,
            "error_message": self.error_message,
            "asset_url": self.asset_url,
            "created_at": self.created_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }
