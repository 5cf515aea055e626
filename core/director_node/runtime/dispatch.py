"""
Run Dispatch - Queue runs for graph nodes and drain them through a worker.

Queueing snapshots the graph into each run, so the worker executes exactly
the graph the user saw when asking for the run.
"""

import logging
import uuid

from director_node.errors import GraphError
from director_node.graph.schema import DirectorGraph, NodeType
from director_node.runtime.worker import RunWorker
from director_node.schemas.asset import AssetKind, AssetRecord, AssetStatus
from director_node.schemas.run import RunRecord, RunStatus
from director_node.storage.backend import Store

logger = logging.getLogger(__name__)

PLACEHOLDER_KINDS = {
    NodeType.IMAGE_GEN: AssetKind.IMAGE,
    NodeType.VIDEO_GEN: AssetKind.VIDEO,
}


class RunDispatcher:
    """Creates queued runs and hands them to a RunWorker."""

    def __init__(self, store: Store, worker: RunWorker):
        self.store = store
        self.worker = worker

    async def queue_runs(
        self,
        graph_id: str,
        graph: DirectorGraph,
        node_ids: list[str],
        user_id: str,
        project_id: str | None = None,
    ) -> list[RunRecord]:
        """
        Create one queued run per requested node found in the graph.

        Generation nodes (imageGen, videoGen) also get a placeholder asset in
        the generating state, linked from the run.

        Raises:
            GraphError: none of node_ids is a node of the graph
        """
        wanted = set(node_ids)
        nodes = [n for n in graph.nodes if n.id in wanted]
        if not nodes:
            raise GraphError("No matching nodes found in graph")

        graph_json = graph.to_json()
        runs = []
        for node in nodes:
            logger.info(f"Queuing node {node.id} ({node.type})")

            placeholder_id = None
            kind = PLACEHOLDER_KINDS.get(node.type)
            if kind is not None:
                placeholder = AssetRecord(
                    id=str(uuid.uuid4()),
                    kind=kind,
                    user_id=user_id,
                    project_id=project_id,
                    status=AssetStatus.GENERATING,
                    metadata={"node_id": node.id, "source": "director_node_v1"},
                )
                await self.store.create_asset(placeholder)
                placeholder_id = placeholder.id

            run = RunRecord(
                id=str(uuid.uuid4()),
                graph_id=graph_id,
                node_id=node.id,
                node_type=node.type.value,
                user_id=user_id,
                project_id=project_id,
                provider=getattr(node.data, "provider", None),
                status=RunStatus.QUEUED,
                placeholder_asset_id=placeholder_id,
                meta={"graph_json": graph_json},
            )
            runs.append(await self.store.create_run(run))

        return runs

    async def process_runs(self, run_ids: list[str]) -> list[RunRecord | None]:
        """
        Process runs one after another.

        A run that blows up is logged and skipped; the rest still run.
        """
        results: list[RunRecord | None] = []
        for run_id in run_ids:
            try:
                results.append(await self.worker.process_run(run_id))
            except Exception as e:
                logger.error(f"Error processing run {run_id}: {e}")
                results.append(None)
        return results
