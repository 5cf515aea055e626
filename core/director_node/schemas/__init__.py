"""Persisted records: runs and assets."""

from director_node.schemas.asset import AssetKind, AssetRecord, AssetStatus
from director_node.schemas.run import RunRecord, RunStatus

__all__ = [
    "AssetKind",
    "AssetRecord",
    "AssetStatus",
    "RunRecord",
    "RunStatus",
]
