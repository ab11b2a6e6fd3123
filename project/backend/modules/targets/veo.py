"""
Veo video targets.
"""

from typing import List, Literal, Optional

from pydantic import Field

from .base import MediaRef, Prompt, TargetRequest, TargetSpec
from .replicate_adapter import ReplicateAdapter

VeoAspectRatio = Literal["16:9", "9:16", "1:1", "21:9", "3:4", "4:3"]
VeoDuration = Literal[4, 6, 8]


class VeoRequest(TargetRequest):
    model: Literal["veo-3.1-generate-preview"]
    prompt: Prompt
    duration: VeoDuration = Field(default=8, description="Clip length in seconds")
    aspect_ratio: VeoAspectRatio = "16:9"
    resolution: Literal["720p", "1080p"] = "1080p"
    generate_audio: bool = Field(default=True, description="Generate a synchronized soundtrack")
    image: Optional[MediaRef] = Field(default=None, description="First frame (image-to-video)")
    last_frame: Optional[MediaRef] = Field(
        default=None, description="Last frame to interpolate towards; requires image"
    )
    reference_images: Optional[List[MediaRef]] = Field(
        default=None, max_length=3, description="Subject reference images"
    )
    negative_prompt: Optional[str] = Field(default=None, description="What to avoid")
    seed: Optional[int] = Field(default=None, ge=0, le=4294967295)


class VeoFastRequest(VeoRequest):
    model: Literal["veo-3.1-fast-generate-preview"]


VEO_TARGETS = [
    TargetSpec(
        target_id="veo-3.1-generate-preview",
        category="video",
        display_name="Veo 3.1",
        is_async=True,
        request_model=VeoRequest,
        adapter_factory=lambda: ReplicateAdapter("google/veo-3.1"),
        usage=(
            "Highest quality video with native audio. Use for text-to-video, "
            "image-to-video (image) and first/last frame interpolation."
        ),
    ),
    TargetSpec(
        target_id="veo-3.1-fast-generate-preview",
        category="video",
        display_name="Veo 3.1 Fast",
        is_async=True,
        request_model=VeoFastRequest,
        adapter_factory=lambda: ReplicateAdapter("google/veo-3.1-fast"),
        usage="Faster, cheaper Veo. Default choice for video unless top quality is asked for.",
    ),
]
