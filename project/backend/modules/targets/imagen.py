"""
Image targets: Imagen 4 Fast and Gemini 2.5 Flash Image.
"""

from typing import List, Literal, Optional

from pydantic import Field

from .base import MediaRef, Prompt, TargetRequest, TargetSpec
from .replicate_adapter import ReplicateAdapter


class ImagenFastRequest(TargetRequest):
    model: Literal["imagen-4.0-fast-generate-001"]
    prompt: Prompt
    aspect_ratio: Literal["1:1", "9:16", "16:9", "3:4", "4:3"] = "1:1"
    output_format: Literal["jpg", "png"] = "jpg"
    safety_filter_level: Literal[
        "block_low_and_above", "block_medium_and_above", "block_only_high"
    ] = "block_only_high"


class FlashImageRequest(TargetRequest):
    model: Literal["gemini-2.5-flash-image"]
    prompt: Prompt
    image_input: Optional[List[MediaRef]] = Field(
        default=None, max_length=3, description="Images to edit or combine"
    )
    aspect_ratio: Literal[
        "match_input_image", "1:1", "3:2", "2:3", "3:4", "4:3", "4:5", "5:4", "9:16", "16:9", "21:9"
    ] = "match_input_image"
    output_format: Literal["jpg", "png"] = "jpg"


IMAGE_TARGETS = [
    TargetSpec(
        target_id="imagen-4.0-fast-generate-001",
        category="image",
        display_name="Imagen 4 Fast",
        is_async=False,
        request_model=ImagenFastRequest,
        adapter_factory=lambda: ReplicateAdapter("google/imagen-4-fast", long_running=False),
        usage="Text-to-image only. Photorealistic stills from a description.",
    ),
    TargetSpec(
        target_id="gemini-2.5-flash-image",
        category="image",
        display_name="Gemini 2.5 Flash Image (nano-banana)",
        is_async=False,
        request_model=FlashImageRequest,
        adapter_factory=lambda: ReplicateAdapter("google/nano-banana", long_running=False),
        usage="Image editing and composition from input images, or text-to-image.",
    ),
]
