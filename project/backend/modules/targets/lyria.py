"""
Lyria music target.
"""

from typing import Literal, Optional

from pydantic import Field

from .base import Prompt, TargetRequest, TargetSpec
from .replicate_adapter import ReplicateAdapter


class LyriaRequest(TargetRequest):
    model: Literal["lyria-002"]
    prompt: Prompt
    negative_prompt: Optional[str] = Field(default=None, description="Instruments or styles to avoid")
    seed: Optional[int] = Field(default=None, ge=0, le=4294967295)


LYRIA_TARGETS = [
    TargetSpec(
        target_id="lyria-002",
        category="audio",
        display_name="Lyria 2",
        is_async=True,
        request_model=LyriaRequest,
        adapter_factory=lambda: ReplicateAdapter("google/lyria-2"),
        usage="Instrumental music clips (about 30s) from a genre/mood description. No vocals or speech.",
    ),
]
