"""
Adapters for targets served by an OpenAI-compatible endpoint (text and speech).

Both complete inline; there is no operation to poll.
"""

from typing import Any, Dict, Optional

from openai import APIError, AsyncOpenAI

from shared.config import settings
from shared.errors import GenerationError
from shared.logging import get_logger
from shared.storage import storage

from .base import ModelOutput, StartResult, TargetAdapter

logger = get_logger("targets.openai")

_client: Optional[AsyncOpenAI] = None


def _get_client() -> AsyncOpenAI:
    global _client
    if _client is None:
        _client = AsyncOpenAI(api_key=settings.openai_api_key, base_url=settings.reasoning_base_url)
    return _client


class ChatTextAdapter(TargetAdapter):
    """Single-turn text generation through chat completions."""

    async def start(self, request: Dict[str, Any], job_id: str) -> StartResult:
        messages = []
        if request.get("system_instruction"):
            messages.append({"role": "system", "content": request["system_instruction"]})
        messages.append({"role": "user", "content": request["prompt"]})

        params: Dict[str, Any] = {"model": request["model"], "messages": messages}
        if request.get("temperature") is not None:
            params["temperature"] = request["temperature"]
        if request.get("max_output_tokens") is not None:
            params["max_tokens"] = request["max_output_tokens"]

        try:
            completion = await _get_client().chat.completions.create(**params)
        except APIError as e:
            raise GenerationError(f"Text generation failed: {str(e)}", job_id=job_id, code="START_FAILED") from e

        choice = completion.choices[0]
        text = choice.message.content or ""
        usage = getattr(completion, "usage", None)
        metadata = {"model": completion.model, "finish_reason": choice.finish_reason}
        if usage is not None:
            metadata["input_tokens"] = usage.prompt_tokens
            metadata["output_tokens"] = usage.completion_tokens

        logger.info(
            "Text generation completed",
            extra={"job_id": job_id, "model": request["model"], "chars": len(text)}
        )
        return StartResult(output=ModelOutput(text=text, mime_type="text/plain", metadata=metadata))


class SpeechAdapter(TargetAdapter):
    """Text-to-speech; the audio is stored and returned by locator."""

    response_format = "wav"

    async def start(self, request: Dict[str, Any], job_id: str) -> StartResult:
        try:
            response = await _get_client().audio.speech.create(
                model=request["model"],
                voice=request["voice"],
                input=request["text"],
                response_format=self.response_format,
            )
        except APIError as e:
            raise GenerationError(f"Speech synthesis failed: {str(e)}", job_id=job_id, code="START_FAILED") from e

        audio = response.content
        if not audio:
            raise GenerationError("Speech synthesis returned no audio", job_id=job_id)

        mime_type = f"audio/{self.response_format}"
        locator = await storage.upload_file(
            settings.output_bucket,
            f"jobs/{job_id}/speech.{self.response_format}",
            audio,
            content_type=mime_type,
        )
        return StartResult(
            output=ModelOutput(
                uri=locator,
                mime_type=mime_type,
                files=[locator],
                metadata={"model": request["model"], "voice": request["voice"], "bytes": len(audio)},
            )
        )
