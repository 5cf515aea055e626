"""
Store - Persistence for runs and assets.

The worker only talks to the Store interface. Two operations carry the
concurrency guarantees the runtime relies on:

- claim_run: compare-and-set queued → processing. Exactly one caller wins.
- finalize_video: the asset becoming ready and the run becoming completed
  are applied together, so a reader never sees one without the other.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any

from director_node.errors import StorageError
from director_node.schemas.asset import AssetRecord
from director_node.schemas.run import RunRecord, RunStatus, utc_now

logger = logging.getLogger(__name__)


def apply_run_update(run: RunRecord, fields: dict[str, Any]) -> RunRecord:
    """Return a validated copy of run with fields replaced."""
    return RunRecord.model_validate({**run.model_dump(), **fields})


def apply_asset_update(asset: AssetRecord, fields: dict[str, Any]) -> AssetRecord:
    """Return a validated copy of asset with fields replaced and updated_at bumped."""
    return AssetRecord.model_validate({**asset.model_dump(), **fields, "updated_at": utc_now()})


class Store(ABC):
    """Abstract run and asset store."""

    # === RUNS ===

    @abstractmethod
    async def create_run(self, run: RunRecord) -> RunRecord:
        """Insert a new run."""
        pass

    @abstractmethod
    async def get_run(self, run_id: str) -> RunRecord | None:
        pass

    @abstractmethod
    async def claim_run(self, run_id: str) -> RunRecord | None:
        """
        Atomically move a run from queued to processing and set started_at.

        Returns:
            The claimed run, or None if the run is missing or not queued
        """
        pass

    @abstractmethod
    async def update_run(self, run_id: str, **fields: Any) -> RunRecord:
        """Replace fields on a run. Raises StorageError if it does not exist."""
        pass

    @abstractmethod
    async def list_completed_runs(self, graph_id: str, node_ids: list[str]) -> list[RunRecord]:
        """Completed runs of graph_id targeting any of node_ids, newest first."""
        pass

    # === ASSETS ===

    @abstractmethod
    async def create_asset(self, asset: AssetRecord) -> AssetRecord:
        pass

    @abstractmethod
    async def get_asset(self, asset_id: str) -> AssetRecord | None:
        pass

    @abstractmethod
    async def update_asset(self, asset_id: str, **fields: Any) -> AssetRecord:
        """Replace fields on an asset. Raises StorageError if it does not exist."""
        pass

    # === VIDEO FINALIZE ===

    @abstractmethod
    async def finalize_video(
        self,
        asset_id: str,
        asset_fields: dict[str, Any],
        run_id: str,
        run_fields: dict[str, Any],
    ) -> None:
        """Apply the asset update and the run update as one unit."""
        pass

    async def recover_finalizations(self) -> int:
        """
        Complete finalize operations interrupted by a crash.

        Returns:
            Number of finalize operations replayed
        """
        return 0


def newest_completed_first(runs: list[RunRecord]) -> list[RunRecord]:
    completed = [r for r in runs if r.status == RunStatus.COMPLETED]
    return sorted(
        completed,
        key=lambda r: r.completed_at or r.created_at,
        reverse=True,
    )


class InMemoryStore(Store):
    """
    Store kept in process memory.

    One asyncio.Lock serializes every write, which makes claim_run a true
    compare-and-set and finalize_video a single step for every task in the
    event loop.
    """

    def __init__(self):
        self.runs: dict[str, RunRecord] = {}
        self.assets: dict[str, AssetRecord] = {}
        self._lock = asyncio.Lock()

    async def create_run(self, run: RunRecord) -> RunRecord:
        async with self._lock:
            if run.id in self.runs:
                raise StorageError(f"Run {run.id} already exists")
            self.runs[run.id] = run
        return run

    async def get_run(self, run_id: str) -> RunRecord | None:
        return self.runs.get(run_id)

    async def claim_run(self, run_id: str) -> RunRecord | None:
        async with self._lock:
            run = self.runs.get(run_id)
            if run is None or run.status != RunStatus.QUEUED:
                return None
            claimed = apply_run_update(
                run, {"status": RunStatus.PROCESSING, "started_at": utc_now()}
            )
            self.runs[run_id] = claimed
            return claimed

    async def update_run(self, run_id: str, **fields: Any) -> RunRecord:
        async with self._lock:
            return self._update_run(run_id, fields)

    def _update_run(self, run_id: str, fields: dict[str, Any]) -> RunRecord:
        run = self.runs.get(run_id)
        if run is None:
            raise StorageError(f"Run {run_id} not found")
        updated = apply_run_update(run, fields)
        self.runs[run_id] = updated
        return updated

    async def list_completed_runs(self, graph_id: str, node_ids: list[str]) -> list[RunRecord]:
        wanted = set(node_ids)
        matching = [r for r in self.runs.values() if r.graph_id == graph_id and r.node_id in wanted]
        return newest_completed_first(matching)

    async def create_asset(self, asset: AssetRecord) -> AssetRecord:
        async with self._lock:
            if asset.id in self.assets:
                raise StorageError(f"Asset {asset.id} already exists")
            self.assets[asset.id] = asset
        return asset

    async def get_asset(self, asset_id: str) -> AssetRecord | None:
        return self.assets.get(asset_id)

    async def update_asset(self, asset_id: str, **fields: Any) -> AssetRecord:
        async with self._lock:
            return self._update_asset(asset_id, fields)

    def _update_asset(self, asset_id: str, fields: dict[str, Any]) -> AssetRecord:
        asset = self.assets.get(asset_id)
        if asset is None:
            raise StorageError(f"Asset {asset_id} not found")
        updated = apply_asset_update(asset, fields)
        self.assets[asset_id] = updated
        return updated

    async def finalize_video(
        self,
        asset_id: str,
        asset_fields: dict[str, Any],
        run_id: str,
        run_fields: dict[str, Any],
    ) -> None:
        async with self._lock:
            asset = self.assets.get(asset_id)
            run = self.runs.get(run_id)
            if asset is None:
                raise StorageError(f"Asset {asset_id} not found")
            if run is None:
                raise StorageError(f"Run {run_id} not found")
            # Build both records before writing either
            updated_asset = apply_asset_update(asset, asset_fields)
            updated_run = apply_run_update(run, run_fields)
            self.assets[asset_id] = updated_asset
            self.runs[run_id] = updated_run
        logger.debug(f"Finalized video asset {asset_id} for run {run_id}")
