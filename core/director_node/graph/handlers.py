"""
Node handlers - What each node type does once its inputs are ready.

A handler receives the node, its resolved inputs, the run context and the
injected services, and returns the node's output payload. Handlers raise
NodeExecutionError (or let provider/storage errors escape); NodeExecutor
turns any exception into an error result, so handlers never build results
themselves.
"""

import logging
import time
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from director_node.config import RuntimeConfig
from director_node.errors import NodeExecutionError
from director_node.graph.contracts import (
    MAX_COMBINED_IMAGES,
    ImageAssetRef,
    ReferenceImageRef,
    VideoAssetRef,
    router_branch_key,
)
from director_node.graph.presets import (
    VIDEO_PROVIDER_CONFIGS,
    build_cinematic_prompt,
    director_style_prompt,
    is_valid_combination,
    movement_prompt,
)
from director_node.graph.schema import (
    CameraMovementData,
    CinematicSetupData,
    CombineTextData,
    DirectorStyleData,
    GraphNode,
    ImageGenData,
    NodeType,
    PromptData,
    ReferenceImageData,
    RouterData,
    VideoGenData,
)
from director_node.providers.provider import (
    ImageProvider,
    ImageRequest,
    MediaStore,
    ReferenceImageLoader,
    VideoProvider,
)
from director_node.schemas.asset import AssetKind, AssetRecord, AssetStatus
from director_node.schemas.run import RunStatus
from director_node.storage.backend import Store

if TYPE_CHECKING:
    from director_node.graph.executor import RuntimeContext

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_PROMPT = "A serene landscape with mountains and a lake at sunset, photorealistic, 4K"
DEFAULT_VIDEO_PROMPT = "Generate video from keyframe"
SUPPORTED_IMAGE_PROVIDERS = ("gemini",)


@dataclass
class NodeServices:
    """Collaborators handed to node handlers. Nothing here is a module global."""

    store: Store
    media_store: MediaStore
    image_provider: ImageProvider
    video_provider: VideoProvider
    reference_loader: ReferenceImageLoader = field(default_factory=ReferenceImageLoader)
    config: RuntimeConfig = field(default_factory=RuntimeConfig)


NodeHandler = Callable[
    [GraphNode, dict[str, Any], "RuntimeContext", NodeServices], Awaitable[dict[str, Any]]
]


# === TEXT ===


async def execute_prompt(node, inputs, context, services) -> dict[str, Any]:
    data: PromptData = node.data
    return {"prompt_text": data.text or ""}


async def execute_combine_text(node, inputs, context, services) -> dict[str, Any]:
    data: CombineTextData = node.data
    separator = data.separator or ", "
    texts = [str(t) for t in inputs["prompt_texts"]]
    return {
        "prompt": separator.join(texts),
        "prompt_metadata": {"source": "CombineText"},
    }


# === CONFIG INJECTORS ===


async def execute_director_style(node, inputs, context, services) -> dict[str, Any]:
    data: DirectorStyleData = node.data
    style = director_style_prompt(data.director)
    # prompt_text lets the style feed combineText directly
    return {"text": style, "prompt_text": style}


async def execute_cinematic_setup(node, inputs, context, services) -> dict[str, Any]:
    data: CinematicSetupData = node.data
    setup = build_cinematic_prompt(
        camera=data.camera,
        lens=data.lens,
        focal=data.focal,
        aperture=data.aperture,
        quality=data.quality,
        aspect_ratio=data.aspect_ratio,
    )
    return {"text": setup, "prompt_text": setup}


async def execute_camera_movement(node, inputs, context, services) -> dict[str, Any]:
    data: CameraMovementData = node.data
    return {"prompt_text": movement_prompt(data.movement)}


# === IMAGES ===


async def execute_reference_image(node, inputs, context, services) -> dict[str, Any]:
    data: ReferenceImageData = node.data
    url = data.resolved_url
    if not url:
        raise NodeExecutionError("Reference image not uploaded")
    ref = ReferenceImageRef(url=url, r2_key=data.resolved_key, asset_id=data.asset_id)
    return {"reference_image": ref.model_dump()}


async def execute_combine_image(node, inputs, context, services) -> dict[str, Any]:
    images = inputs.get("images") or []
    if not isinstance(images, list):
        images = [images]

    if len(images) == 0:
        raise NodeExecutionError("CombineImage requires at least 1 image input")
    if len(images) > MAX_COMBINED_IMAGES:
        raise NodeExecutionError(
            f"CombineImage supports maximum {MAX_COMBINED_IMAGES} images (Gemini API limit)"
        )

    labeled = [
        {**image, "reference_number": i + 1, "reference_label": f"Ref {i + 1}"}
        for i, image in enumerate(images)
    ]
    for image in labeled:
        logger.debug(f"  - {image['reference_label']}: {image.get('url')}")
    logger.info(f"✓ Combined {len(labeled)} reference images with labels")

    return {"reference_image": {"images": labeled, "count": len(labeled), "labeled": True}}


def text_input(value: Any) -> str | None:
    """A prompt input is a string, or a list when several edges feed it."""
    if isinstance(value, list):
        parts = [str(v) for v in value if v]
        return ", ".join(parts) or None
    return value or None


async def _prepare_references(
    reference: Any, prompt: str, loader: ReferenceImageLoader
) -> tuple[list[bytes], str]:
    """
    Download reference images and prefix the prompt to point at them.

    Accepts a combineImage bundle ({"images": [...], "labeled": True}), a
    list of single references (several edges into one handle), or a single
    reference dict. The prompt is only prefixed when at least one download
    succeeded.
    """
    if isinstance(reference, dict) and isinstance(reference.get("images"), list):
        images = reference["images"]
        downloaded = await loader.load([img["url"] for img in images if img.get("url")])
        if not downloaded:
            return [], prompt
        if reference.get("labeled"):
            labels = ", ".join(
                f"Reference Image {i + 1} ({img.get('reference_label', f'Ref {i + 1}')})"
                for i, img in enumerate(images)
            )
            logger.info(f"✓ Added reference labels to prompt: {labels}")
            return downloaded, f"Using {labels}. {prompt}"
        return downloaded, f"These subjects, {prompt}"

    if isinstance(reference, list):
        urls = [r["url"] for r in reference if isinstance(r, dict) and r.get("url")]
        downloaded = await loader.load(urls)
        if not downloaded:
            return [], prompt
        return downloaded, f"These subjects, {prompt}"

    if isinstance(reference, dict) and reference.get("url"):
        downloaded = await loader.load([reference["url"]])
        if not downloaded:
            return [], prompt
        return downloaded, f"This subject, {prompt}"

    return [], prompt


async def execute_image_gen(node, inputs, context, services) -> dict[str, Any]:
    data: ImageGenData = node.data
    provider = data.provider or "gemini"
    if provider not in SUPPORTED_IMAGE_PROVIDERS:
        raise NodeExecutionError(f"Unsupported provider: {provider}. V1 supports gemini only.")

    # Connected prompt wins over the standalone prompt on the node
    prompt = text_input(inputs.get("prompt"))
    if not prompt and data.prompt:
        logger.info("Using standalone prompt from node data")
        prompt = data.prompt
    if not prompt:
        logger.info("No prompt found, using default prompt")
        prompt = DEFAULT_IMAGE_PROMPT

    references, prompt = await _prepare_references(
        inputs.get("reference_image"), prompt, services.reference_loader
    )
    if references:
        logger.info(f"Using {len(references)} reference image(s)")

    aspect_ratio = data.aspect_ratio or services.config.image_aspect_ratio
    image_size = data.image_size or services.config.image_size
    result = await services.image_provider.generate(
        ImageRequest(
            prompt=prompt,
            reference_images=references,
            aspect_ratio=aspect_ratio,
            image_size=image_size,
            seed=data.seed,
        )
    )

    filename = f"{node.id}_{int(time.time() * 1000)}.png"
    upload = await services.media_store.upload(
        data=result.image_bytes,
        filename=filename,
        content_type="image/png",
        path=services.config.output_path,
    )
    logger.info(f"Uploaded image to {upload.url}")

    fields = {
        "status": AssetStatus.READY,
        "url": upload.url,
        "storage_key": upload.key,
        "bucket": services.config.bucket,
        "mime_type": "image/png",
        "byte_size": len(result.image_bytes),
        "metadata": {
            "provider": provider,
            "prompt": prompt,
            "aspectRatio": aspect_ratio,
            "imageSize": image_size,
            "hasReferenceImage": len(references) > 0,
            "referenceImageCount": len(references),
            "node_id": node.id,
        },
    }
    asset_id = await _save_asset(node, AssetKind.IMAGE, fields, context, services)
    logger.info(f"Image asset saved: {asset_id}", extra={"asset_id": asset_id})

    ref = ImageAssetRef(asset_id=asset_id, url=upload.url, r2_key=upload.key)
    return {"image_asset": ref.model_dump()}


async def _save_asset(
    node: GraphNode,
    kind: AssetKind,
    fields: dict[str, Any],
    context: "RuntimeContext",
    services: NodeServices,
) -> str:
    """Fill the run's placeholder asset when node is the run's target, else insert one."""
    placeholder_id = context.placeholder_for(node.id)
    if placeholder_id and await services.store.get_asset(placeholder_id):
        await services.store.update_asset(placeholder_id, **fields)
        return placeholder_id

    asset = AssetRecord(
        id=str(uuid.uuid4()),
        kind=kind,
        user_id=context.user_id,
        project_id=context.project_id,
        **fields,
    )
    await services.store.create_asset(asset)
    return asset.id


# === ROUTING ===


async def execute_router(node, inputs, context, services) -> dict[str, Any]:
    data: RouterData = node.data
    value = inputs.get("image_asset") or inputs.get("combined_prompt")
    return {router_branch_key(i): value for i in range(data.branches)}


# === VIDEO ===


def _keyframe_url(inputs: dict[str, Any]) -> str | None:
    reference = inputs.get("image") or inputs.get("reference_image")
    if isinstance(reference, list):
        reference = reference[0] if reference else None
    if isinstance(reference, dict):
        return reference.get("url") or None
    return None


async def execute_video_gen(node, inputs, context, services) -> dict[str, Any]:
    """
    Start a video generation without waiting for it.

    Creates (or fills) a placeholder asset in the generating state and
    records the job on the run under node_results.video_generation. The
    worker finalizes the asset once the provider returns.
    """
    data: VideoGenData = node.data
    provider = data.provider or "minimax"
    if provider not in VIDEO_PROVIDER_CONFIGS:
        supported = ", ".join(VIDEO_PROVIDER_CONFIGS)
        raise NodeExecutionError(f"Unsupported provider: {provider}. Supported: {supported}")

    config = VIDEO_PROVIDER_CONFIGS[provider]
    resolution = data.resolution or config.default_resolution
    duration = data.duration or config.default_duration
    logger.info(f"VideoGen {provider} {resolution} {duration}s (async mode)")

    if not is_valid_combination(provider, resolution, duration):
        valid = ", ".join(str(d) for d in config.durations_for(resolution))
        raise NodeExecutionError(
            f"Invalid combination for {config.label}: {resolution} does not support "
            f"{duration}s. Valid durations for {resolution}: {valid}s"
        )

    keyframe_url = _keyframe_url(inputs)
    if not keyframe_url:
        raise NodeExecutionError("VideoGen requires image input (keyframe from ImageGen)")

    prompt = data.prompt or DEFAULT_VIDEO_PROMPT
    model = data.model or services.config.default_video_model

    fields = {
        "status": AssetStatus.GENERATING,
        "url": "",
        "storage_key": None,
        "metadata": {
            "provider": provider,
            "keyframe": keyframe_url,
            "prompt": prompt,
            "duration": duration,
            "resolution": resolution,
            "model": model,
            "node_id": node.id,
            "run_id": context.run_id,
        },
    }
    asset_id = await _save_asset(node, AssetKind.VIDEO, fields, context, services)
    logger.info(f"Video placeholder asset created: {asset_id}", extra={"asset_id": asset_id})

    await services.store.update_run(
        context.run_id,
        status=RunStatus.PROCESSING,
        node_results={
            "video_generation": {
                "asset_id": asset_id,
                "keyframe_url": keyframe_url,
                "prompt": prompt,
                "duration": duration,
                "resolution": resolution,
                "model": model,
            }
        },
    )
    logger.info(f"Background video job recorded on run {context.run_id}")

    return {"video_asset": VideoAssetRef(asset_id=asset_id).model_dump()}


NODE_HANDLERS: dict[NodeType, NodeHandler] = {
    NodeType.PROMPT: execute_prompt,
    NodeType.COMBINE_TEXT: execute_combine_text,
    NodeType.REFERENCE_IMAGE: execute_reference_image,
    NodeType.COMBINE_IMAGE: execute_combine_image,
    NodeType.IMAGE_GEN: execute_image_gen,
    NodeType.ROUTER: execute_router,
    NodeType.VIDEO_GEN: execute_video_gen,
    NodeType.DIRECTOR_STYLE: execute_director_style,
    NodeType.CINEMATIC_SETUP: execute_cinematic_setup,
    NodeType.CAMERA_MOVEMENT: execute_camera_movement,
}
