"""Tests for the file-backed store."""

import asyncio
import json
from datetime import timedelta

import pytest

from director_node.errors import StorageError
from director_node.schemas.asset import AssetKind, AssetRecord, AssetStatus
from director_node.schemas.run import RunRecord, RunStatus, utc_now
from director_node.storage.file_store import FileStore


def make_run(run_id: str = "run-1", **fields) -> RunRecord:
    defaults = {"graph_id": "graph-1", "node_id": "n1", "user_id": "user-1"}
    return RunRecord(id=run_id, **{**defaults, **fields})


def make_asset(asset_id: str = "asset-1", **fields) -> AssetRecord:
    return AssetRecord(
        id=asset_id,
        kind=fields.pop("kind", AssetKind.VIDEO),
        user_id="user-1",
        status=fields.pop("status", AssetStatus.GENERATING),
        **fields,
    )


@pytest.fixture
def store(tmp_path):
    return FileStore(tmp_path / "store")


class TestRuns:
    @pytest.mark.asyncio
    async def test_create_and_get(self, store):
        await store.create_run(make_run(meta={"graph_json": {"nodes": [], "edges": []}}))

        loaded = await store.get_run("run-1")
        assert loaded.status == RunStatus.QUEUED
        assert loaded.graph_json == {"nodes": [], "edges": []}
        assert (store.runs_dir / "run-1.json").exists()
        assert await store.get_run("missing") is None

    @pytest.mark.asyncio
    async def test_create_twice_raises(self, store):
        await store.create_run(make_run())
        with pytest.raises(StorageError, match="already exists"):
            await store.create_run(make_run())

    @pytest.mark.asyncio
    async def test_claim_once(self, store):
        await store.create_run(make_run())

        claimed = await store.claim_run("run-1")
        assert claimed.status == RunStatus.PROCESSING
        assert claimed.started_at is not None
        assert (store.claims_dir / "run-1.claim").exists()

        assert await store.claim_run("run-1") is None
        assert await store.claim_run("missing") is None

    @pytest.mark.asyncio
    async def test_requeued_run_can_be_claimed_again(self, store):
        await store.create_run(make_run())
        assert await store.claim_run("run-1") is not None
        await store.update_run("run-1", status=RunStatus.FAILED, error_message="boom")
        await store.update_run("run-1", status=RunStatus.QUEUED, error_message=None)

        reclaimed = await store.claim_run("run-1")

        assert reclaimed is not None
        assert reclaimed.status == RunStatus.PROCESSING
        assert (store.claims_dir / "run-1.claim").exists()
        assert await store.claim_run("run-1") is None

    @pytest.mark.asyncio
    async def test_failed_run_keeps_its_claim(self, store):
        await store.create_run(make_run())
        await store.claim_run("run-1")
        await store.update_run("run-1", status=RunStatus.FAILED)

        assert (store.claims_dir / "run-1.claim").exists()
        assert await store.claim_run("run-1") is None

    @pytest.mark.asyncio
    async def test_claim_across_store_instances(self, tmp_path):
        first = FileStore(tmp_path / "shared")
        second = FileStore(tmp_path / "shared")
        await first.create_run(make_run())

        results = await asyncio.gather(first.claim_run("run-1"), second.claim_run("run-1"))

        assert sum(r is not None for r in results) == 1
        assert (await first.get_run("run-1")).status == RunStatus.PROCESSING

    @pytest.mark.asyncio
    async def test_update_missing_run(self, store):
        with pytest.raises(StorageError, match="not found"):
            await store.update_run("missing", status=RunStatus.FAILED)

    @pytest.mark.asyncio
    async def test_update_validates_fields(self, store):
        await store.create_run(make_run())
        updated = await store.update_run(
            "run-1", status="completed", output_payload={"prompt_text": "a"}
        )
        assert updated.status == RunStatus.COMPLETED
        assert (await store.get_run("run-1")).output_payload == {"prompt_text": "a"}

    @pytest.mark.asyncio
    async def test_list_completed_runs(self, store):
        now = utc_now()
        await store.create_run(
            make_run("old", status=RunStatus.COMPLETED, completed_at=now - timedelta(minutes=5))
        )
        await store.create_run(make_run("new", status=RunStatus.COMPLETED, completed_at=now))
        await store.create_run(make_run("queued"))
        await store.create_run(
            make_run("other-graph", graph_id="graph-2", status=RunStatus.COMPLETED)
        )
        await store.create_run(make_run("other-node", node_id="n9", status=RunStatus.COMPLETED))
        (store.runs_dir / "corrupt.json").write_text("{not json", encoding="utf-8")

        runs = await store.list_completed_runs("graph-1", ["n1"])

        assert [r.id for r in runs] == ["new", "old"]

    @pytest.mark.asyncio
    async def test_list_completed_runs_empty_store(self, store):
        assert await store.list_completed_runs("graph-1", ["n1"]) == []

    @pytest.mark.parametrize("bad_id", ["../escape", "a/b", ".hidden", "", "nul\x00"])
    @pytest.mark.asyncio
    async def test_rejects_unsafe_ids(self, store, bad_id):
        with pytest.raises(StorageError):
            await store.get_run(bad_id)


class TestAssets:
    @pytest.mark.asyncio
    async def test_update_bumps_timestamp(self, store):
        created = await store.create_asset(make_asset())

        updated = await store.update_asset("asset-1", status=AssetStatus.FAILED)

        assert updated.status == AssetStatus.FAILED
        assert updated.updated_at >= created.updated_at
        assert (await store.get_asset("asset-1")).status == AssetStatus.FAILED


class TestFinalizeVideo:
    def finalize_fields(self):
        asset_fields = {
            "status": AssetStatus.READY,
            "url": "https://cdn/asset-1.mp4",
            "storage_key": "outputs/asset-1.mp4",
            "mime_type": "video/mp4",
        }
        run_fields = {
            "status": RunStatus.COMPLETED,
            "output_payload": {"video_asset": {"asset_id": "asset-1", "status": "ready"}},
            "completed_at": utc_now(),
        }
        return asset_fields, run_fields

    @pytest.mark.asyncio
    async def test_applies_both_and_clears_journal(self, store):
        await store.create_run(make_run(status=RunStatus.PROCESSING))
        await store.create_asset(make_asset())
        asset_fields, run_fields = self.finalize_fields()

        await store.finalize_video("asset-1", asset_fields, "run-1", run_fields)

        assert (await store.get_asset("asset-1")).status == AssetStatus.READY
        run = await store.get_run("run-1")
        assert run.status == RunStatus.COMPLETED
        assert run.asset_url is None
        assert list(store.journal_dir.glob("*.json")) == []

    @pytest.mark.asyncio
    async def test_recover_replays_leftover_journal(self, store):
        await store.create_run(make_run(status=RunStatus.PROCESSING))
        await store.create_asset(make_asset())
        asset_fields, run_fields = self.finalize_fields()
        run_fields["completed_at"] = run_fields["completed_at"].isoformat()

        # A crash after journaling leaves this behind
        store.journal_dir.mkdir(parents=True)
        (store.journal_dir / "run-1.json").write_text(
            json.dumps(
                {
                    "asset_id": "asset-1",
                    "asset_fields": asset_fields,
                    "run_id": "run-1",
                    "run_fields": run_fields,
                }
            ),
            encoding="utf-8",
        )

        assert await store.recover_finalizations() == 1

        asset = await store.get_asset("asset-1")
        assert asset.status == AssetStatus.READY
        assert asset.url == "https://cdn/asset-1.mp4"
        assert (await store.get_run("run-1")).status == RunStatus.COMPLETED
        assert await store.recover_finalizations() == 0

    @pytest.mark.asyncio
    async def test_missing_asset_keeps_journal(self, store):
        await store.create_run(make_run(status=RunStatus.PROCESSING))
        asset_fields, run_fields = self.finalize_fields()

        with pytest.raises(StorageError):
            await store.finalize_video("asset-1", asset_fields, "run-1", run_fields)

        assert (store.journal_dir / "run-1.json").exists()
        assert (await store.get_run("run-1")).status == RunStatus.PROCESSING
