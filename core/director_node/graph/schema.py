"""
Graph Schema - Typed description of director node graphs (v1).

A graph is what the editor saves: nodes with a type, a canvas position and
per-type configuration data, plus edges between named handles.

The node-type set is closed. Wire strings are matched case-insensitively
("ImageGen" and "imageGen" are the same type) and normalized once here, at
parse time, so nothing downstream compares raw strings.
"""

import json
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from director_node.errors import GraphCycleError, UnknownNodeTypeError


class NodeType(StrEnum):
    """Every node type the runtime can execute."""

    PROMPT = "prompt"
    COMBINE_TEXT = "combineText"
    REFERENCE_IMAGE = "referenceImage"
    IMAGE_GEN = "imageGen"
    ROUTER = "router"
    VIDEO_GEN = "videoGen"
    # Editor extensions handled by the executor's dispatch table
    DIRECTOR_STYLE = "directorStyle"
    CINEMATIC_SETUP = "cinematicSetup"
    CAMERA_MOVEMENT = "cameraMovement"
    COMBINE_IMAGE = "combineImage"

    @classmethod
    def parse(cls, value: "str | NodeType | None") -> "NodeType":
        """Parse a wire string case-insensitively. Raises UnknownNodeTypeError."""
        if isinstance(value, NodeType):
            return value
        if isinstance(value, str):
            member = _NODE_TYPES_BY_LOWER.get(value.lower())
            if member is not None:
                return member
        raise UnknownNodeTypeError(str(value))


_NODE_TYPES_BY_LOWER = {member.value.lower(): member for member in NodeType}

# A prompt must go through combineText before reaching imageGen
FORBIDDEN_EDGES: list[tuple[NodeType, NodeType]] = [
    (NodeType.PROMPT, NodeType.IMAGE_GEN),
]


# === NODE DATA ===


class BaseNodeData(BaseModel):
    """Fields shared by every node. Unknown editor fields are kept as extras."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    label: str = ""
    disabled: bool = False


class PromptData(BaseNodeData):
    text: str = ""


class CombineTextData(BaseNodeData):
    separator: str = ", "


class ReferenceImageData(BaseNodeData):
    preview_url: str | None = None
    image_url: str | None = Field(default=None, alias="imageUrl")
    r2_key: str | None = None
    legacy_r2_key: str | None = Field(default=None, alias="r2Key")
    asset_id: str | None = None

    @property
    def resolved_url(self) -> str | None:
        """preview_url for new uploads, imageUrl for graphs saved before it existed."""
        return self.preview_url or self.image_url

    @property
    def resolved_key(self) -> str | None:
        return self.r2_key or self.legacy_r2_key


class CombineImageData(BaseNodeData):
    pass


class ImageGenData(BaseNodeData):
    provider: str = "gemini"
    prompt: str | None = None
    aspect_ratio: str | None = Field(default=None, alias="aspectRatio")
    image_size: str | None = Field(default=None, alias="imageSize")
    seed: int | None = None


class RouterData(BaseNodeData):
    branches: int = Field(default=2, ge=2, le=10)


class VideoGenData(BaseNodeData):
    provider: str = "minimax"
    resolution: str | None = None
    duration: int | None = None
    model: str | None = None
    prompt: str | None = None


class DirectorStyleData(BaseNodeData):
    director: str = "nolan"


class CinematicSetupData(BaseNodeData):
    camera: str | None = None
    lens: str | None = None
    focal: str | None = None
    aperture: str | None = None
    quality: str | None = None
    aspect_ratio: str | None = Field(default=None, alias="aspectRatio")


class CameraMovementData(BaseNodeData):
    movement: str = "static"


NodeData = (
    PromptData
    | CombineTextData
    | ReferenceImageData
    | CombineImageData
    | ImageGenData
    | RouterData
    | VideoGenData
    | DirectorStyleData
    | CinematicSetupData
    | CameraMovementData
)

NODE_DATA_MODELS: dict[NodeType, type[BaseNodeData]] = {
    NodeType.PROMPT: PromptData,
    NodeType.COMBINE_TEXT: CombineTextData,
    NodeType.REFERENCE_IMAGE: ReferenceImageData,
    NodeType.COMBINE_IMAGE: CombineImageData,
    NodeType.IMAGE_GEN: ImageGenData,
    NodeType.ROUTER: RouterData,
    NodeType.VIDEO_GEN: VideoGenData,
    NodeType.DIRECTOR_STYLE: DirectorStyleData,
    NodeType.CINEMATIC_SETUP: CinematicSetupData,
    NodeType.CAMERA_MOVEMENT: CameraMovementData,
}


# === NODES AND EDGES ===


class Position(BaseModel):
    x: float = 0.0
    y: float = 0.0


class GraphNode(BaseModel):
    """
    A node on the canvas.

    Example:
        GraphNode.model_validate({
            "id": "p1",
            "type": "Prompt",
            "position": {"x": 0, "y": 0},
            "data": {"label": "Prompt", "text": "a cat"},
        })
    """

    model_config = ConfigDict(frozen=True)

    id: str
    type: NodeType
    position: Position = Field(default_factory=Position)
    data: NodeData

    @model_validator(mode="before")
    @classmethod
    def _parse_type_and_data(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        values = dict(values)
        node_type = NodeType.parse(values.get("type"))
        values["type"] = node_type
        data = values.get("data")
        if data is None or isinstance(data, dict):
            values["data"] = NODE_DATA_MODELS[node_type].model_validate(data or {})
        return values


class GraphEdge(BaseModel):
    """A directed data dependency from source's output handle to target's input handle."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    source: str = Field(description="Source node ID")
    target: str = Field(description="Target node ID")
    source_handle: str | None = Field(default=None, alias="sourceHandle")
    target_handle: str | None = Field(default=None, alias="targetHandle")


class DirectorGraph(BaseModel):
    """
    A complete director node graph, as snapshotted into a run's meta.graph_json.
    """

    model_config = ConfigDict(extra="allow")

    version: str = "v1"
    nodes: list[GraphNode] = Field(default_factory=list)
    edges: list[GraphEdge] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_json(cls, payload: "dict[str, Any] | str") -> "DirectorGraph":
        """Parse a graph from its stored JSON (dict or string)."""
        if isinstance(payload, str):
            payload = json.loads(payload)
        return cls.model_validate(payload)

    def to_json(self) -> dict[str, Any]:
        """Wire form with the editor's camelCase handle names."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def get_node(self, node_id: str) -> GraphNode | None:
        """Get a node by ID."""
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def get_incoming_edges(self, node_id: str) -> list[GraphEdge]:
        """Get all edges entering a node, in graph order."""
        return [e for e in self.edges if e.target == node_id]

    def get_outgoing_edges(self, node_id: str) -> list[GraphEdge]:
        """Get all edges leaving a node, in graph order."""
        return [e for e in self.edges if e.source == node_id]

    def dependency_order(self, node_id: str) -> list[str]:
        """
        Node IDs in the order a run targeting node_id executes them.

        Depth-first over incoming edges, dependencies before dependents,
        each node once. Raises GraphCycleError on a cycle.
        """
        order: list[str] = []
        done: set[str] = set()
        in_progress: list[str] = []

        def visit(current: str) -> None:
            if current in done:
                return
            if current in in_progress:
                raise GraphCycleError(in_progress[in_progress.index(current) :] + [current])
            in_progress.append(current)
            for edge in self.get_incoming_edges(current):
                visit(edge.source)
            in_progress.pop()
            done.add(current)
            order.append(current)

        visit(node_id)
        return order

    def validate_graph(self) -> list[str]:
        """Validate the graph structure. Returns a list of error messages."""
        errors = []

        seen_ids: set[str] = set()
        for node in self.nodes:
            if node.id in seen_ids:
                errors.append(f"Duplicate node ID: '{node.id}'")
            seen_ids.add(node.id)

        for edge in self.edges:
            source = self.get_node(edge.source)
            target = self.get_node(edge.target)
            if source is None:
                errors.append(f"Edge '{edge.id}' references missing source '{edge.source}'")
            if target is None:
                errors.append(f"Edge '{edge.id}' references missing target '{edge.target}'")
            if source is None or target is None:
                continue
            if (source.type, target.type) in FORBIDDEN_EDGES:
                errors.append(
                    f"Edge '{edge.id}' connects {source.type} directly to {target.type}; "
                    f"route it through {NodeType.COMBINE_TEXT}"
                )

        for node in self.nodes:
            try:
                self.dependency_order(node.id)
            except GraphCycleError as e:
                errors.append(str(e))
                break

        return errors
