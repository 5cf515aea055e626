"""
Graph Executor - Resolves node inputs and runs single nodes.

The executor knows nothing about runs or claiming. It answers two
questions for the worker:

1. Given the results so far, what are this node's inputs? (None if some
   upstream result is missing or failed)
2. Given those inputs, what does the node produce? (always a result,
   never an exception for node-level failures)
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any

from director_node.errors import DirectorNodeError, GraphError, UnknownNodeTypeError
from director_node.graph.contracts import (
    is_fan_in,
    resolve_input_key,
    resolve_output_key,
    validate_node_inputs,
)
from director_node.graph.handlers import NODE_HANDLERS, NodeHandler, NodeServices
from director_node.graph.schema import DirectorGraph, GraphEdge, GraphNode, NodeType
from director_node.schemas.run import utc_now

logger = logging.getLogger(__name__)

# Success outputs carry the producing node type under this key so that
# downstream handle resolution works from cached payloads alone
NODE_TYPE_KEY = "__nodeType"


class NodeState(StrEnum):
    IDLE = "idle"
    RUNNING = "running"
    SUCCESS = "success"
    ERROR = "error"


@dataclass
class NodeExecutionResult:
    """Outcome of one node. Moves to success or error exactly once."""

    node_id: str
    state: NodeState = NodeState.IDLE
    outputs: dict[str, Any] | None = None
    error: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def is_success(self) -> bool:
        return self.state == NodeState.SUCCESS

    @property
    def is_terminal(self) -> bool:
        return self.state in (NodeState.SUCCESS, NodeState.ERROR)

    @property
    def node_type(self) -> NodeType | None:
        """Type of the producing node, read from the tagged outputs."""
        raw = (self.outputs or {}).get(NODE_TYPE_KEY)
        if raw is None:
            return None
        try:
            return NodeType.parse(raw)
        except UnknownNodeTypeError:
            return None

    def start(self) -> None:
        if self.state != NodeState.IDLE:
            raise DirectorNodeError(f"Node {self.node_id} already started ({self.state})")
        self.state = NodeState.RUNNING
        self.started_at = utc_now()

    def succeed(self, outputs: dict[str, Any]) -> None:
        self._finish()
        self.state = NodeState.SUCCESS
        self.outputs = outputs

    def fail(self, error: str) -> None:
        self._finish()
        self.state = NodeState.ERROR
        self.error = error

    def _finish(self) -> None:
        if self.is_terminal:
            raise DirectorNodeError(f"Node {self.node_id} already finished ({self.state})")
        self.completed_at = utc_now()

    @classmethod
    def from_cached(
        cls,
        node_id: str,
        outputs: dict[str, Any],
        completed_at: datetime | None = None,
    ) -> "NodeExecutionResult":
        """Rebuild a success result from a completed run's output_payload."""
        return cls(
            node_id=node_id,
            state=NodeState.SUCCESS,
            outputs=dict(outputs),
            completed_at=completed_at,
        )


@dataclass
class RuntimeContext:
    """
    State of one worker invocation.

    node_results is append-only: once a node has a result in this context it
    is never replaced, which is what makes each node run at most once.
    """

    run_id: str
    graph_id: str
    user_id: str
    project_id: str | None = None
    target_node_id: str | None = None
    placeholder_asset_id: str | None = None
    node_results: dict[str, NodeExecutionResult] = field(default_factory=dict)

    def record(self, result: NodeExecutionResult) -> None:
        if result.node_id in self.node_results:
            raise DirectorNodeError(f"Result for node {result.node_id} already recorded")
        self.node_results[result.node_id] = result

    def get_result(self, node_id: str) -> NodeExecutionResult | None:
        return self.node_results.get(node_id)

    def placeholder_for(self, node_id: str) -> str | None:
        """The run's placeholder asset id, only for the run's target node."""
        if node_id == self.target_node_id:
            return self.placeholder_asset_id
        return None


def _source_type(
    edge: GraphEdge,
    result: NodeExecutionResult,
    graph: DirectorGraph | None,
) -> NodeType:
    node_type = result.node_type
    if node_type is not None:
        return node_type
    source = graph.get_node(edge.source) if graph else None
    if source is None:
        raise GraphError(f"Cannot determine node type of source {edge.source}")
    return source.type


def resolve_node_inputs(
    node_id: str,
    node_type: NodeType,
    edges: list[GraphEdge],
    context: RuntimeContext,
    strict: bool = False,
    graph: DirectorGraph | None = None,
) -> dict[str, Any] | None:
    """
    Build a node's input dict from the results of its upstream nodes.

    Edges are taken in graph order. A second value for a non-fan-in key turns
    the key into a list; fan-in keys are lists from the first value.

    Args:
        node_id: Node whose inputs are being resolved
        node_type: That node's type (selects the input handle table)
        edges: All graph edges; only those targeting node_id are used
        context: Results computed so far
        strict: Reject target handles that are not declared for node_type
        graph: Fallback for source types when a result carries no type tag

    Returns:
        The inputs, or None if any source has no successful result yet or
        lacks the requested output

    Raises:
        InvalidHandleError: An edge names a handle its node type does not have
    """
    inputs: dict[str, Any] = {}
    accumulated: set[str] = set()

    for edge in edges:
        if edge.target != node_id:
            continue

        result = context.get_result(edge.source)
        if result is None or not result.is_success:
            return None

        output_key = resolve_output_key(_source_type(edge, result, graph), edge.source_handle)
        outputs = result.outputs or {}
        if output_key not in outputs:
            logger.warning(
                f"Output '{output_key}' not found on node {edge.source} "
                f"(available: {', '.join(k for k in outputs if k != NODE_TYPE_KEY)})"
            )
            return None
        value = outputs[output_key]

        input_key = resolve_input_key(node_type, edge.target_handle, strict=strict)
        if is_fan_in(node_type, input_key):
            inputs.setdefault(input_key, []).append(value)
        elif input_key in accumulated:
            inputs[input_key].append(value)
        elif input_key in inputs:
            inputs[input_key] = [inputs[input_key], value]
            accumulated.add(input_key)
        else:
            inputs[input_key] = value

    return inputs


class NodeExecutor:
    """
    Runs one node: validate inputs, dispatch to the type's handler, tag outputs.

    Handlers can be overridden per executor, which is how tests count or
    replace node behavior without touching the global table.
    """

    def __init__(
        self,
        services: NodeServices,
        handlers: dict[NodeType, NodeHandler] | None = None,
    ):
        self.services = services
        self.handlers = dict(NODE_HANDLERS)
        if handlers:
            self.handlers.update(handlers)

    async def execute_node(
        self,
        node: GraphNode,
        inputs: dict[str, Any],
        context: RuntimeContext,
    ) -> NodeExecutionResult:
        result = NodeExecutionResult(node_id=node.id)
        result.start()
        start = time.time()

        validation = validate_node_inputs(node.type, inputs)
        if not validation.valid:
            logger.warning(f"Node {node.id} rejected inputs: {validation.error}")
            result.fail(validation.error or "Invalid inputs")
            return result

        handler = self.handlers.get(node.type)
        if handler is None:
            result.fail(f"Unknown node type: {node.type}")
            return result

        try:
            outputs = await handler(node, inputs, context, self.services)
        except Exception as e:
            logger.error(
                f"❌ Node {node.id} ({node.type}) failed: {e}",
                extra={"node_id": node.id, "node_type": str(node.type)},
            )
            result.fail(str(e))
            return result

        result.succeed({**outputs, NODE_TYPE_KEY: node.type.value})
        logger.info(
            f"✓ Node {node.id} ({node.type}) completed",
            extra={
                "node_id": node.id,
                "node_type": str(node.type),
                "duration_ms": int((time.time() - start) * 1000),
            },
        )
        return result
