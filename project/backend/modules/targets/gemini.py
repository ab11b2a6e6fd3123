"""
Gemini text and speech targets.
"""

from typing import Literal, Optional

from pydantic import Field

from .base import Prompt, TargetRequest, TargetSpec
from .openai_adapter import ChatTextAdapter, SpeechAdapter

GeminiVoice = Literal["Kore", "Puck", "Charon", "Fenrir", "Aoede", "Leda", "Orus", "Zephyr"]


class FlashTextRequest(TargetRequest):
    model: Literal["gemini-2.5-flash"]
    prompt: Prompt
    system_instruction: Optional[str] = Field(default=None, description="Role or style for the answer")
    temperature: Optional[float] = Field(default=None, ge=0, le=2)
    max_output_tokens: Optional[int] = Field(default=None, ge=1, le=65536)


class FlashSpeechRequest(TargetRequest):
    model: Literal["gemini-2.5-flash-preview-tts"]
    text: Prompt = Field(description="Exact words to speak")
    voice: GeminiVoice = "Kore"


GEMINI_TARGETS = [
    TargetSpec(
        target_id="gemini-2.5-flash",
        category="text",
        display_name="Gemini 2.5 Flash",
        is_async=False,
        request_model=FlashTextRequest,
        adapter_factory=ChatTextAdapter,
        usage="Written text: answers, scripts, captions, summaries.",
    ),
    TargetSpec(
        target_id="gemini-2.5-flash-preview-tts",
        category="audio",
        display_name="Gemini 2.5 Flash TTS",
        is_async=False,
        request_model=FlashSpeechRequest,
        adapter_factory=SpeechAdapter,
        usage="Speech (narration, voice-over) reading the given text aloud in one voice.",
        text_field="text",
    ),
]
