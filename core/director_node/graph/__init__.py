"""Graph model, node contracts and the single-node executor."""

from director_node.graph.contracts import (
    HandleDirection,
    HandleSpec,
    InputValidation,
    resolve_input_key,
    resolve_output_key,
    validate_node_inputs,
)
from director_node.graph.executor import (
    NodeExecutionResult,
    NodeExecutor,
    NodeState,
    RuntimeContext,
    resolve_node_inputs,
)
from director_node.graph.handlers import NodeServices
from director_node.graph.schema import DirectorGraph, GraphEdge, GraphNode, NodeType

__all__ = [
    "DirectorGraph",
    "GraphEdge",
    "GraphNode",
    "HandleDirection",
    "HandleSpec",
    "InputValidation",
    "NodeExecutionResult",
    "NodeExecutor",
    "NodeServices",
    "NodeState",
    "NodeType",
    "RuntimeContext",
    "resolve_input_key",
    "resolve_node_inputs",
    "resolve_output_key",
    "validate_node_inputs",
]
