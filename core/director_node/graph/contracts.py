"""
Node Contracts - Input/output definitions per node type.

Contracts define:
1. Which handle ids each node type exposes and the payload key behind each
2. Which input keys are fan-in keys (always lists)
3. What a node needs before it may run (validate_node_inputs)
4. The shapes of the asset descriptors passed between nodes

Handles and payload keys are different names: the editor draws an edge from
the "combined_prompt" handle of a combineText node, while the payload key
holding the text is "prompt". One table keyed by (node type, direction,
handle) answers both directions.

Output handles are strict: an unknown source handle raises
InvalidHandleError. Input handles are lenient: an unknown target handle is
used as the input key as-is, unless strict mode is requested.
"""

import re
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict

from director_node.errors import InvalidHandleError, UnknownNodeTypeError
from director_node.graph.schema import NodeType

MAX_COMBINED_IMAGES = 14


class HandleDirection(StrEnum):
    INPUT = "input"
    OUTPUT = "output"


@dataclass(frozen=True)
class HandleSpec:
    """One named port on a node type and the payload key it reads or writes."""

    node_type: NodeType
    direction: HandleDirection
    handle: str
    key: str
    fan_in: bool = False


HANDLES: dict[tuple[NodeType, HandleDirection, str], HandleSpec] = {}
# Default input key per node type, used when an edge has no targetHandle
PRIMARY_KEYS: dict[NodeType, str] = {}


def _declare(
    node_type: NodeType,
    direction: HandleDirection,
    key: str,
    *handles: str,
    fan_in: bool = False,
    primary: bool = False,
) -> None:
    for handle in (key, *handles):
        HANDLES[(node_type, direction, handle.lower())] = HandleSpec(
            node_type=node_type,
            direction=direction,
            handle=handle.lower(),
            key=key,
            fan_in=fan_in,
        )
    if primary:
        PRIMARY_KEYS[node_type] = key


OUT = HandleDirection.OUTPUT
IN = HandleDirection.INPUT

# Outputs
_declare(NodeType.PROMPT, OUT, "prompt_text", "prompt")
_declare(NodeType.COMBINE_TEXT, OUT, "prompt", "combined", "combined_prompt")
_declare(NodeType.REFERENCE_IMAGE, OUT, "reference_image", "reference", "image")
_declare(NodeType.COMBINE_IMAGE, OUT, "reference_image", "reference")
_declare(NodeType.IMAGE_GEN, OUT, "image_asset", "image")
_declare(NodeType.VIDEO_GEN, OUT, "video_asset", "video")
for _injector in (NodeType.DIRECTOR_STYLE, NodeType.CINEMATIC_SETUP, NodeType.CAMERA_MOVEMENT):
    _declare(_injector, OUT, "prompt_text", "text")

# Inputs
_declare(
    NodeType.COMBINE_TEXT, IN, "prompt_texts", "input", "prompt_text", fan_in=True, primary=True
)
_declare(NodeType.IMAGE_GEN, IN, "prompt", "combined_prompt", "combined", primary=True)
_declare(NodeType.IMAGE_GEN, IN, "reference_image", "reference")
_declare(
    NodeType.COMBINE_IMAGE,
    IN,
    "images",
    "image",
    *(f"image_{i}" for i in range(1, MAX_COMBINED_IMAGES + 1)),
    fan_in=True,
    primary=True,
)
_declare(NodeType.VIDEO_GEN, IN, "reference_image", "image", "keyframe", primary=True)
_declare(NodeType.VIDEO_GEN, IN, "prompt", "prompt_text")
_declare(NodeType.ROUTER, IN, "image_asset", "input", "image", primary=True)
_declare(NodeType.ROUTER, IN, "combined_prompt")

# Router source handles are generated per branch: "branch-0" (editor),
# "output-1" (node picker) or the payload key itself ("branch_a")
_ROUTER_HANDLE = re.compile(
    r"^(?:branch-(?P<zero>\d+)|output-(?P<one>\d+)|branch_(?P<letter>[a-j]))$"
)


def router_branch_key(index: int) -> str:
    """branch_A for index 0, branch_B for 1, ..."""
    return f"branch_{chr(ord('A') + index)}"


def _resolve_router_output(handle: str) -> str | None:
    match = _ROUTER_HANDLE.match(handle)
    if not match:
        return None
    if match.group("zero") is not None:
        index = int(match.group("zero"))
    elif match.group("one") is not None:
        index = int(match.group("one")) - 1
    else:
        index = ord(match.group("letter")) - ord("a")
    if not 0 <= index < 10:
        return None
    return router_branch_key(index)


def resolve_output_key(node_type: NodeType, handle: str | None) -> str:
    """
    Map a source handle to the output payload key. Strict.

    Raises:
        InvalidHandleError: the handle is missing or is not an output of
            this node type
    """
    if handle is None:
        raise InvalidHandleError("output", handle, node_type)

    normalized = handle.lower()
    if node_type == NodeType.ROUTER:
        key = _resolve_router_output(normalized)
    else:
        spec = HANDLES.get((node_type, OUT, normalized))
        key = spec.key if spec else None
    if key is None:
        raise InvalidHandleError("output", handle, node_type)
    return key


def resolve_input_key(node_type: NodeType, handle: str | None, strict: bool = False) -> str:
    """
    Map a target handle to the input key the node reads.

    Unmapped handles are used verbatim unless strict is set. A missing
    handle means the node type's primary input.

    Raises:
        InvalidHandleError: no handle on a node type without inputs, or an
            unmapped handle in strict mode
    """
    if handle is None:
        key = PRIMARY_KEYS.get(node_type)
        if key is None:
            raise InvalidHandleError("target", handle, node_type)
        return key

    spec = HANDLES.get((node_type, IN, handle.lower()))
    if spec is not None:
        return spec.key
    if strict:
        raise InvalidHandleError("target", handle, node_type)
    return handle


def is_fan_in(node_type: NodeType, key: str) -> bool:
    """True if the input key collects every incoming value into a list."""
    spec = HANDLES.get((node_type, IN, key.lower()))
    return bool(spec and spec.fan_in and spec.key == key)


def output_handles(node_type: NodeType) -> list[str]:
    """All source handle ids accepted for a node type (router: first form per branch)."""
    if node_type == NodeType.ROUTER:
        return [f"branch-{i}" for i in range(10)]
    return sorted(h for (t, d, h) in HANDLES if t == node_type and d == OUT)


# === VALIDATION ===

@dataclass
class InputValidation:
    """Result of checking a node's resolved inputs against its contract."""

    valid: bool
    error: str | None = None


_NO_INPUTS = {
    NodeType.PROMPT,
    NodeType.REFERENCE_IMAGE,
    # imageGen may run standalone from node.data.prompt
    NodeType.IMAGE_GEN,
    # Config injectors read only node.data
    NodeType.DIRECTOR_STYLE,
    NodeType.CINEMATIC_SETUP,
    NodeType.CAMERA_MOVEMENT,
}


def validate_node_inputs(node_type: NodeType | str, inputs: dict[str, Any]) -> InputValidation:
    """Check inputs against the node type's contract. Never raises."""
    try:
        node_type = NodeType.parse(node_type)
    except UnknownNodeTypeError as e:
        return InputValidation(valid=False, error=str(e))

    if node_type in _NO_INPUTS:
        return InputValidation(valid=True)

    if node_type == NodeType.COMBINE_TEXT:
        texts = inputs.get("prompt_texts")
        if not isinstance(texts, list) or len(texts) == 0:
            return InputValidation(
                valid=False, error="CombineText requires at least 1 prompt_text input"
            )
        return InputValidation(valid=True)

    if node_type == NodeType.ROUTER:
        if not inputs.get("image_asset") and not inputs.get("combined_prompt"):
            return InputValidation(valid=False, error="Router requires image_asset input")
        return InputValidation(valid=True)

    if node_type == NodeType.VIDEO_GEN:
        if not inputs.get("reference_image"):
            return InputValidation(
                valid=False, error="VideoGen requires reference_image input (keyframe)"
            )
        return InputValidation(valid=True)

    if node_type == NodeType.COMBINE_IMAGE:
        images = inputs.get("images")
        if not images or (isinstance(images, list) and len(images) == 0):
            return InputValidation(
                valid=False, error="CombineImage requires at least 1 image input"
            )
        return InputValidation(valid=True)

    return InputValidation(valid=False, error=f"Unknown node type: {node_type}")


# === PAYLOAD DESCRIPTORS ===


class ReferenceImageRef(BaseModel):
    """An uploaded reference image, as emitted by referenceImage nodes."""

    model_config = ConfigDict(extra="allow")

    url: str
    r2_key: str | None = None
    asset_id: str | None = None


class ImageAssetRef(BaseModel):
    """A generated image stored in the assets table."""

    model_config = ConfigDict(extra="allow")

    asset_id: str
    url: str
    r2_key: str


class VideoAssetRef(BaseModel):
    """A video asset; url and r2_key stay None while status is generating."""

    model_config = ConfigDict(extra="allow")

    asset_id: str
    url: str | None = None
    r2_key: str | None = None
    status: str = "generating"
