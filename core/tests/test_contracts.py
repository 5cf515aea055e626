"""Tests for handle mapping and per-type input validation."""

import pytest

from director_node.errors import InvalidHandleError
from director_node.graph.contracts import (
    is_fan_in,
    output_handles,
    resolve_input_key,
    resolve_output_key,
    validate_node_inputs,
)
from director_node.graph.schema import NodeType


class TestOutputHandles:
    """Source handles are strict."""

    @pytest.mark.parametrize(
        "node_type,handle,key",
        [
            (NodeType.PROMPT, "prompt", "prompt_text"),
            (NodeType.COMBINE_TEXT, "combined_prompt", "prompt"),
            (NodeType.COMBINE_TEXT, "Combined", "prompt"),
            (NodeType.REFERENCE_IMAGE, "reference", "reference_image"),
            (NodeType.REFERENCE_IMAGE, "image", "reference_image"),
            (NodeType.IMAGE_GEN, "image", "image_asset"),
            (NodeType.VIDEO_GEN, "video", "video_asset"),
            (NodeType.CAMERA_MOVEMENT, "text", "prompt_text"),
        ],
    )
    def test_known_handles(self, node_type, handle, key):
        assert resolve_output_key(node_type, handle) == key

    @pytest.mark.parametrize("node_type", [NodeType.IMAGE_GEN, NodeType.ROUTER, NodeType.PROMPT])
    def test_missing_handle_raises(self, node_type):
        with pytest.raises(InvalidHandleError) as exc_info:
            resolve_output_key(node_type, None)
        assert exc_info.value.direction == "output"
        assert exc_info.value.handle is None

    def test_unknown_handle_raises(self):
        with pytest.raises(InvalidHandleError) as exc_info:
            resolve_output_key(NodeType.PROMPT, "bogus")
        assert str(exc_info.value) == 'Invalid output handle "bogus" on node type "prompt"'

    @pytest.mark.parametrize(
        "handle,key",
        [
            ("branch-0", "branch_A"),
            ("branch-2", "branch_C"),
            ("output-1", "branch_A"),
            ("output-3", "branch_C"),
            ("branch_b", "branch_B"),
            ("branch_B", "branch_B"),
        ],
    )
    def test_router_branch_handles(self, handle, key):
        assert resolve_output_key(NodeType.ROUTER, handle) == key

    @pytest.mark.parametrize("handle", ["branch-10", "output-0", "branch_z", "image"])
    def test_router_rejects_out_of_range(self, handle):
        with pytest.raises(InvalidHandleError):
            resolve_output_key(NodeType.ROUTER, handle)

    def test_output_handles_listing(self):
        assert "combined_prompt" in output_handles(NodeType.COMBINE_TEXT)
        assert output_handles(NodeType.ROUTER)[:2] == ["branch-0", "branch-1"]


class TestInputHandles:
    """Target handles are lenient unless strict."""

    def test_known_handles(self):
        assert resolve_input_key(NodeType.COMBINE_TEXT, "input") == "prompt_texts"
        assert resolve_input_key(NodeType.IMAGE_GEN, "combined_prompt") == "prompt"
        assert resolve_input_key(NodeType.IMAGE_GEN, "reference") == "reference_image"
        assert resolve_input_key(NodeType.COMBINE_IMAGE, "image_7") == "images"
        assert resolve_input_key(NodeType.VIDEO_GEN, "image") == "reference_image"
        assert resolve_input_key(NodeType.VIDEO_GEN, "prompt_text") == "prompt"

    def test_unknown_handle_falls_back_to_raw_id(self):
        assert resolve_input_key(NodeType.IMAGE_GEN, "style_hint") == "style_hint"

    def test_unknown_handle_raises_when_strict(self):
        with pytest.raises(InvalidHandleError, match="Invalid target handle"):
            resolve_input_key(NodeType.IMAGE_GEN, "style_hint", strict=True)

    def test_missing_handle_uses_primary_input(self):
        assert resolve_input_key(NodeType.COMBINE_TEXT, None) == "prompt_texts"
        assert resolve_input_key(NodeType.ROUTER, None) == "image_asset"

    def test_missing_handle_on_type_without_inputs_raises(self):
        with pytest.raises(InvalidHandleError):
            resolve_input_key(NodeType.PROMPT, None)

    def test_fan_in_keys(self):
        assert is_fan_in(NodeType.COMBINE_TEXT, "prompt_texts")
        assert is_fan_in(NodeType.COMBINE_IMAGE, "images")
        assert not is_fan_in(NodeType.IMAGE_GEN, "prompt")
        assert not is_fan_in(NodeType.IMAGE_GEN, "style_hint")


class TestValidateNodeInputs:
    def test_nodes_without_requirements(self):
        for node_type in ("prompt", "referenceImage", "imageGen", "directorStyle"):
            assert validate_node_inputs(node_type, {}).valid

    def test_combine_text_needs_texts(self):
        result = validate_node_inputs(NodeType.COMBINE_TEXT, {})
        assert not result.valid
        assert result.error == "CombineText requires at least 1 prompt_text input"
        assert not validate_node_inputs(NodeType.COMBINE_TEXT, {"prompt_texts": []}).valid
        assert validate_node_inputs(NodeType.COMBINE_TEXT, {"prompt_texts": ["a"]}).valid

    def test_router(self):
        assert validate_node_inputs("Router", {}).error == "Router requires image_asset input"
        assert validate_node_inputs("router", {"combined_prompt": "a cat"}).valid

    def test_video_gen_needs_reference(self):
        result = validate_node_inputs(NodeType.VIDEO_GEN, {"prompt": "pan"})
        assert result.error == "VideoGen requires reference_image input (keyframe)"

    def test_combine_image_needs_an_image(self):
        result = validate_node_inputs(NodeType.COMBINE_IMAGE, {"images": []})
        assert result.error == "CombineImage requires at least 1 image input"

    def test_unknown_type_is_invalid_not_raised(self):
        result = validate_node_inputs("upscaler", {})
        assert not result.valid
        assert result.error == "Unknown node type: upscaler"
