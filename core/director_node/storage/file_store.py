"""
File Store - Runs and assets as JSON files on disk.

Layout:
  {base_path}/
    runs/{run_id}.json          # RunRecord
    assets/{asset_id}.json      # AssetRecord
    claims/{run_id}.claim       # Held by the worker that won a run, released on re-queue
    journal/{run_id}.json       # Pending video finalize, deleted once applied

Every record write goes through atomic_write (temp file + rename), so a crash
never leaves a half-written record. Claims use O_CREAT | O_EXCL, which the
filesystem guarantees only one process can win, even across processes
sharing the directory.
"""

import asyncio
import json
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Any

from director_node.errors import StorageError
from director_node.schemas.asset import AssetRecord
from director_node.schemas.run import RunRecord, RunStatus, utc_now
from director_node.storage.backend import (
    Store,
    apply_asset_update,
    apply_run_update,
    newest_completed_first,
)
from director_node.utils.io import atomic_write

logger = logging.getLogger(__name__)


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


class FileStore(Store):
    """File-backed store usable by several worker processes at once."""

    def __init__(self, base_path: str | Path):
        self.base_path = Path(base_path)
        self.runs_dir = self.base_path / "runs"
        self.assets_dir = self.base_path / "assets"
        self.claims_dir = self.base_path / "claims"
        self.journal_dir = self.base_path / "journal"
        # Serializes read-modify-write cycles inside this process
        self._lock = asyncio.Lock()

    def _validate_key(self, key: str) -> None:
        """
        Validate an id before using it as a file name.

        Raises:
            StorageError: If the id is empty or could escape the store directory
        """
        if not key or key.strip() == "":
            raise StorageError("Record id cannot be empty")
        if "/" in key or "\\" in key:
            raise StorageError(f"Invalid record id: path separators not allowed in '{key}'")
        if ".." in key or key.startswith("."):
            raise StorageError(f"Invalid record id: path traversal detected in '{key}'")
        if "\x00" in key:
            raise StorageError("Invalid record id: null bytes not allowed")

    def _run_path(self, run_id: str) -> Path:
        self._validate_key(run_id)
        return self.runs_dir / f"{run_id}.json"

    def _asset_path(self, asset_id: str) -> Path:
        self._validate_key(asset_id)
        return self.assets_dir / f"{asset_id}.json"

    # === SYNC HELPERS (run in a worker thread) ===

    def _read_run(self, run_id: str) -> RunRecord | None:
        path = self._run_path(run_id)
        if not path.exists():
            return None
        return RunRecord.model_validate_json(path.read_text(encoding="utf-8"))

    def _write_run(self, run: RunRecord) -> None:
        with atomic_write(self._run_path(run.id)) as f:
            f.write(run.model_dump_json(indent=2))

    def _read_asset(self, asset_id: str) -> AssetRecord | None:
        path = self._asset_path(asset_id)
        if not path.exists():
            return None
        return AssetRecord.model_validate_json(path.read_text(encoding="utf-8"))

    def _write_asset(self, asset: AssetRecord) -> None:
        with atomic_write(self._asset_path(asset.id)) as f:
            f.write(asset.model_dump_json(indent=2))

    def _claim_path(self, run_id: str) -> Path:
        self._validate_key(run_id)
        return self.claims_dir / f"{run_id}.claim"

    def _update_run_sync(self, run_id: str, fields: dict[str, Any]) -> RunRecord:
        run = self._read_run(run_id)
        if run is None:
            raise StorageError(f"Run {run_id} not found")
        updated = apply_run_update(run, fields)
        self._write_run(updated)
        if updated.status == RunStatus.QUEUED and run.status != RunStatus.QUEUED:
            # Re-queued, so the next claim needs a fresh marker
            self._claim_path(run_id).unlink(missing_ok=True)
            logger.debug(f"Released claim on re-queued run {run_id}")
        return updated

    def _update_asset_sync(self, asset_id: str, fields: dict[str, Any]) -> AssetRecord:
        asset = self._read_asset(asset_id)
        if asset is None:
            raise StorageError(f"Asset {asset_id} not found")
        updated = apply_asset_update(asset, fields)
        self._write_asset(updated)
        return updated

    # === RUNS ===

    async def create_run(self, run: RunRecord) -> RunRecord:
        def _create():
            if self._run_path(run.id).exists():
                raise StorageError(f"Run {run.id} already exists")
            self._write_run(run)

        async with self._lock:
            await asyncio.to_thread(_create)
        logger.debug(f"Created run {run.id}")
        return run

    async def get_run(self, run_id: str) -> RunRecord | None:
        return await asyncio.to_thread(self._read_run, run_id)

    async def claim_run(self, run_id: str) -> RunRecord | None:
        def _claim() -> RunRecord | None:
            run = self._read_run(run_id)
            if run is None or run.status != RunStatus.QUEUED:
                return None

            self.claims_dir.mkdir(parents=True, exist_ok=True)
            claim_path = self._claim_path(run_id)
            try:
                fd = os.open(claim_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
            except FileExistsError:
                return None
            with os.fdopen(fd, "w") as f:
                f.write(f"{os.getpid()} {utc_now().isoformat()}\n")

            claimed = apply_run_update(
                run, {"status": RunStatus.PROCESSING, "started_at": utc_now()}
            )
            self._write_run(claimed)
            return claimed

        async with self._lock:
            return await asyncio.to_thread(_claim)

    async def update_run(self, run_id: str, **fields: Any) -> RunRecord:
        async with self._lock:
            return await asyncio.to_thread(self._update_run_sync, run_id, fields)

    async def list_completed_runs(self, graph_id: str, node_ids: list[str]) -> list[RunRecord]:
        wanted = set(node_ids)

        def _list() -> list[RunRecord]:
            if not self.runs_dir.exists():
                return []
            runs = []
            for path in self.runs_dir.glob("*.json"):
                try:
                    run = RunRecord.model_validate_json(path.read_text(encoding="utf-8"))
                except (OSError, ValueError) as e:
                    logger.warning(f"Skipping unreadable run file {path.name}: {e}")
                    continue
                if run.graph_id == graph_id and run.node_id in wanted:
                    runs.append(run)
            return runs

        return newest_completed_first(await asyncio.to_thread(_list))

    # === ASSETS ===

    async def create_asset(self, asset: AssetRecord) -> AssetRecord:
        def _create():
            if self._asset_path(asset.id).exists():
                raise StorageError(f"Asset {asset.id} already exists")
            self._write_asset(asset)

        async with self._lock:
            await asyncio.to_thread(_create)
        return asset

    async def get_asset(self, asset_id: str) -> AssetRecord | None:
        return await asyncio.to_thread(self._read_asset, asset_id)

    async def update_asset(self, asset_id: str, **fields: Any) -> AssetRecord:
        async with self._lock:
            return await asyncio.to_thread(self._update_asset_sync, asset_id, fields)

    # === VIDEO FINALIZE ===

    def _journal_path(self, run_id: str) -> Path:
        self._validate_key(run_id)
        return self.journal_dir / f"{run_id}.json"

    def _apply_journal_entry(self, entry: dict[str, Any]) -> None:
        self._update_asset_sync(entry["asset_id"], entry["asset_fields"])
        self._update_run_sync(entry["run_id"], entry["run_fields"])

    async def finalize_video(
        self,
        asset_id: str,
        asset_fields: dict[str, Any],
        run_id: str,
        run_fields: dict[str, Any],
    ) -> None:
        """
        Journal the finalize, apply asset then run, then drop the journal.

        A crash between the two writes leaves the journal behind, and
        recover_finalizations() replays it.
        """
        entry = {
            "asset_id": asset_id,
            "asset_fields": asset_fields,
            "run_id": run_id,
            "run_fields": run_fields,
        }

        def _finalize():
            journal_path = self._journal_path(run_id)
            with atomic_write(journal_path) as f:
                json.dump(entry, f, default=_json_default)
            self._apply_journal_entry(entry)
            journal_path.unlink()

        async with self._lock:
            await asyncio.to_thread(_finalize)
        logger.debug(f"Finalized video asset {asset_id} for run {run_id}")

    async def recover_finalizations(self) -> int:
        def _recover() -> int:
            if not self.journal_dir.exists():
                return 0
            replayed = 0
            for path in sorted(self.journal_dir.glob("*.json")):
                entry = json.loads(path.read_text(encoding="utf-8"))
                self._apply_journal_entry(entry)
                path.unlink()
                replayed += 1
                logger.info(f"Replayed video finalize for run {entry['run_id']}")
            return replayed

        async with self._lock:
            return await asyncio.to_thread(_recover)
