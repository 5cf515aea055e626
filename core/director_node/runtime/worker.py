"""
Run Worker - Turns a queued run into a completed or failed one.

Flow of process_run():
1. Claim the run (queued → processing). Losing the claim is a silent no-op.
2. Rebuild the graph from the run's graph_json snapshot.
3. Seed the context with the newest completed result of every node of the
   graph (cross-run cache).
4. Walk the target's dependencies depth-first and execute what is missing.
5. Persist the target's outputs, or finalize the video job it started.

Any exception after the claim marks the run (and its placeholder asset)
failed. There are no retries.
"""

import logging
from typing import Any

from director_node.errors import GraphCycleError, GraphError, StorageError
from director_node.graph.executor import (
    NodeExecutionResult,
    NodeExecutor,
    RuntimeContext,
    resolve_node_inputs,
)
from director_node.graph.handlers import DEFAULT_VIDEO_PROMPT, NodeServices, text_input
from director_node.graph.schema import DirectorGraph, GraphNode
from director_node.observability import clear_trace_context, set_trace_context
from director_node.providers.provider import VideoRequest, require_bytes
from director_node.schemas.asset import AssetStatus
from director_node.schemas.run import RunRecord, RunStatus, utc_now

logger = logging.getLogger(__name__)

FINALIZE_SOURCE = "director_node_worker"


class RunWorker:
    """
    Processes runs against a store.

    Several workers may point at the same store; the store's claim makes
    sure each run is processed by exactly one of them.
    """

    def __init__(self, services: NodeServices, executor: NodeExecutor | None = None):
        self.services = services
        self.store = services.store
        self.config = services.config
        self.executor = executor or NodeExecutor(services)

    async def recover(self) -> int:
        """Replay video finalizations interrupted by a crash. Call at startup."""
        replayed = await self.store.recover_finalizations()
        if replayed:
            logger.info(f"Recovered {replayed} interrupted video finalization(s)")
        return replayed

    async def process_run(self, run_id: str) -> RunRecord | None:
        """
        Claim and process one run.

        Returns:
            The run as stored after processing, or None if the claim failed
        """
        logger.debug(f"Attempting to claim run {run_id}")
        run = await self.store.claim_run(run_id)
        if run is None:
            logger.info(f"Run {run_id} already claimed or not found")
            return None

        set_trace_context(run_id=run.id, graph_id=run.graph_id, user_id=run.user_id)
        logger.info(f"Processing run {run.id} for node {run.node_id}")
        try:
            await self._execute_run(run)
        except Exception as e:
            logger.error(f"❌ Run {run.id} failed: {e}", exc_info=True)
            await self._fail_run(run, str(e))
        finally:
            clear_trace_context()

        return await self.store.get_run(run.id)

    async def _execute_run(self, run: RunRecord) -> None:
        graph_json = run.graph_json
        if not graph_json:
            raise GraphError("No graph_json in run meta")
        graph = DirectorGraph.from_json(graph_json)

        node = graph.get_node(run.node_id)
        if node is None:
            raise GraphError(f"Node {run.node_id} not found in graph")

        context = RuntimeContext(
            run_id=run.id,
            graph_id=run.graph_id,
            user_id=run.user_id,
            project_id=run.project_id,
            target_node_id=node.id,
            placeholder_asset_id=run.placeholder_asset_id,
        )
        await self.load_previous_runs(graph, context)

        result = await self.execute_node_with_dependencies(node, graph, context)
        set_trace_context(node_id=node.id)
        if not result.is_success:
            raise GraphError(result.error or "Node execution failed")

        outputs = result.outputs or {}
        video = outputs.get("video_asset")
        if isinstance(video, dict) and video.get("status") == "generating":
            await self.finalize_video(run, node, graph, context, outputs)
            return

        await self.store.update_run(
            run.id,
            status=RunStatus.COMPLETED,
            output_payload=outputs,
            error_message=None,
            completed_at=utc_now(),
        )
        await self._settle_placeholder(run, outputs)
        logger.info(f"✓ Run {run.id} completed")

    async def load_previous_runs(self, graph: DirectorGraph, context: RuntimeContext) -> int:
        """
        Seed context.node_results from completed runs on the same graph.

        Only the most recently completed run per node counts, and only if it
        stored an output payload.

        Returns:
            Number of cached results loaded
        """
        node_ids = [n.id for n in graph.nodes]
        previous = await self.store.list_completed_runs(context.graph_id, node_ids)
        if not previous:
            logger.debug("No previous completed runs found")
            return 0

        loaded = 0
        seen: set[str] = set()
        for run in previous:
            if run.node_id in seen:
                continue
            seen.add(run.node_id)
            if not run.output_payload:
                continue
            context.record(
                NodeExecutionResult.from_cached(run.node_id, run.output_payload, run.completed_at)
            )
            loaded += 1
            logger.debug(f"✓ Loaded cached result for node {run.node_id} (from run {run.id})")

        logger.info(f"Loaded {loaded} cached results from previous runs")
        return loaded

    async def execute_node_with_dependencies(
        self,
        node: GraphNode,
        graph: DirectorGraph,
        context: RuntimeContext,
        _path: list[str] | None = None,
    ) -> NodeExecutionResult:
        """
        Execute node after every node feeding it, each at most once.

        Raises:
            GraphCycleError: node depends on itself
            GraphError: an edge points at a node missing from the graph
        """
        cached = context.get_result(node.id)
        if cached is not None:
            logger.debug(f"Node {node.id} already executed, using cached result")
            return cached

        path = _path if _path is not None else []
        if node.id in path:
            raise GraphCycleError(path[path.index(node.id) :] + [node.id])

        path.append(node.id)
        try:
            for edge in graph.get_incoming_edges(node.id):
                source = graph.get_node(edge.source)
                if source is None:
                    raise GraphError(f"Source node {edge.source} not found")
                await self.execute_node_with_dependencies(source, graph, context, path)
        finally:
            path.pop()

        set_trace_context(node_id=node.id)
        inputs = resolve_node_inputs(
            node.id,
            node.type,
            graph.edges,
            context,
            strict=self.config.strict_input_handles,
            graph=graph,
        )

        if inputs is None:
            result = NodeExecutionResult(node_id=node.id)
            result.start()
            result.fail(self._not_ready_message(node, graph, context))
        else:
            result = await self.executor.execute_node(node, inputs, context)

        context.record(result)
        return result

    def _not_ready_message(
        self, node: GraphNode, graph: DirectorGraph, context: RuntimeContext
    ) -> str:
        """Name the first upstream node that failed, with its error."""
        for edge in graph.get_incoming_edges(node.id):
            upstream = context.get_result(edge.source)
            if upstream is not None and not upstream.is_success:
                return (
                    f"Inputs for node {node.id} are not ready: upstream node {edge.source} "
                    f"failed: {upstream.error}"
                )
        return f"Inputs for node {node.id} are not ready: an upstream output is missing"

    async def finalize_video(
        self,
        run: RunRecord,
        node: GraphNode,
        graph: DirectorGraph,
        context: RuntimeContext,
        outputs: dict[str, Any],
    ) -> None:
        """
        Generate the video behind a placeholder asset and commit it.

        The asset turning ready and the run turning completed go through
        Store.finalize_video as one unit. A provider or upload failure marks
        both failed instead.
        """
        asset_id = outputs["video_asset"]["asset_id"]
        logger.info(f"Starting video generation for asset {asset_id}", extra={"asset_id": asset_id})

        current = await self.store.get_run(run.id)
        job = (current.node_results if current else {}).get("video_generation", {})
        asset = await self.store.get_asset(asset_id)
        meta = dict(asset.metadata) if asset else {}

        # Re-resolve to pick up a prompt wired in from upstream (e.g. camera movement)
        inputs = (
            resolve_node_inputs(
                node.id,
                node.type,
                graph.edges,
                context,
                strict=self.config.strict_input_handles,
                graph=graph,
            )
            or {}
        )
        prompt = (
            text_input(inputs.get("prompt"))
            or job.get("prompt")
            or meta.get("prompt")
            or DEFAULT_VIDEO_PROMPT
        )
        request = VideoRequest(
            keyframe_url=job.get("keyframe_url") or meta.get("keyframe", ""),
            prompt=prompt,
            model=job.get("model") or meta.get("model") or self.config.default_video_model,
            duration=job.get("duration") or meta.get("duration") or 6,
            resolution=job.get("resolution") or meta.get("resolution"),
        )
        logger.info(f"Video prompt: {prompt}")

        try:
            video = await self.services.video_provider.generate(request)
            video_bytes = require_bytes(video.video_bytes, "Video provider")
            upload = await self.services.media_store.upload(
                data=video_bytes,
                filename=f"{asset_id}.mp4",
                content_type=video.mime_type,
                path=self.config.output_path,
            )
        except Exception as e:
            logger.error(f"❌ Video generation failed for asset {asset_id}: {e}")
            await self.store.update_asset(
                asset_id,
                status=AssetStatus.FAILED,
                metadata={**meta, "error": str(e), "source": FINALIZE_SOURCE},
            )
            await self.store.update_run(
                run.id,
                status=RunStatus.FAILED,
                error_message=str(e),
                completed_at=utc_now(),
            )
            return

        asset_fields = {
            "status": AssetStatus.READY,
            "url": upload.url,
            "storage_key": upload.key,
            "bucket": self.config.bucket,
            "mime_type": video.mime_type,
            "byte_size": len(video_bytes),
            "metadata": {
                **meta,
                "prompt": prompt,
                "task_id": video.task_id,
                "file_id": video.file_id,
                "status": "ready",
            },
        }
        run_fields = {
            "status": RunStatus.COMPLETED,
            "provider": meta.get("provider") or run.provider,
            "output_payload": {
                **outputs,
                "video_asset": {
                    "asset_id": asset_id,
                    "url": upload.url,
                    "r2_key": upload.key,
                    "status": "ready",
                },
            },
            "error_message": None,
            "completed_at": utc_now(),
        }
        await self.store.finalize_video(asset_id, asset_fields, run.id, run_fields)
        logger.info(
            f"✓ Run {run.id} completed with video {upload.url}", extra={"asset_id": asset_id}
        )

    async def _settle_placeholder(self, run: RunRecord, outputs: dict[str, Any]) -> None:
        """
        Point a still-generating placeholder at the asset the run produced.

        Happens when the target's result came from the cross-run cache, so no
        handler filled the placeholder.
        """
        if not run.placeholder_asset_id:
            return
        placeholder = await self.store.get_asset(run.placeholder_asset_id)
        if placeholder is None or placeholder.status != AssetStatus.GENERATING:
            return

        produced = outputs.get("image_asset") or outputs.get("video_asset") or {}
        if not isinstance(produced, dict) or not produced.get("url"):
            return
        await self.store.update_asset(
            placeholder.id,
            status=AssetStatus.READY,
            url=produced["url"],
            storage_key=produced.get("r2_key"),
            metadata={**placeholder.metadata, "source_asset_id": produced.get("asset_id")},
        )

    async def _fail_run(self, run: RunRecord, message: str) -> None:
        await self.store.update_run(
            run.id,
            status=RunStatus.FAILED,
            error_message=message,
            completed_at=utc_now(),
        )
        if not run.placeholder_asset_id:
            return
        try:
            placeholder = await self.store.get_asset(run.placeholder_asset_id)
            if placeholder is None or placeholder.status != AssetStatus.GENERATING:
                return
            await self.store.update_asset(
                placeholder.id,
                status=AssetStatus.FAILED,
                metadata={**placeholder.metadata, "error": message, "source": FINALIZE_SOURCE},
            )
        except StorageError as e:
            logger.warning(
                f"Could not mark placeholder asset {run.placeholder_asset_id} failed: {e}"
            )
