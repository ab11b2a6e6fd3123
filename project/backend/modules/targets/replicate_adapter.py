"""
Replicate-backed target adapters.

Long-running targets are submitted as predictions and polled by id; immediate
targets use run() and return their output directly. Media references in the
request are turned into fetchable URLs before submission.
"""

from typing import Any, Dict, List, Optional

import httpx
import replicate
from replicate.exceptions import ModelError, ReplicateError

from shared.config import settings
from shared.errors import GenerationError, RetryableError
from shared.logging import get_logger
from shared.retry import retry_with_backoff
from shared.storage import storage

from modules.reference_tagger import guess_mime_type

from .base import ModelOutput, OperationStatus, StartResult, TargetAdapter

logger = get_logger("targets.replicate")

_client: Optional[replicate.Client] = None

PENDING_STATUSES = ("starting", "processing")


def _get_client() -> replicate.Client:
    global _client
    if _client is None:
        _client = replicate.Client(api_token=settings.replicate_api_token)
    return _client


def _as_url(item: Any) -> str:
    # FileOutput exposes .url; older clients return plain strings
    return getattr(item, "url", None) or str(item)


def output_urls(output: Any) -> List[str]:
    if output is None:
        return []
    if isinstance(output, (list, tuple)):
        return [_as_url(item) for item in output]
    return [_as_url(output)]


@retry_with_backoff(max_attempts=3, base_delay=2)
async def download_bytes(url: str) -> bytes:
    """
    Download a delivery URL.

    Raises:
        RetryableError: If the download fails after retries
    """
    try:
        async with httpx.AsyncClient(timeout=120.0, follow_redirects=True) as client:
            response = await client.get(url)
            response.raise_for_status()
            return response.content
    except httpx.HTTPError as e:
        logger.error(f"Failed to download output from {url}: {e}")
        raise RetryableError(f"Output download failed: {str(e)}") from e


def _object_name(url: str, index: int, total: int) -> str:
    name = url.split("?", 1)[0].rstrip("/").rsplit("/", 1)[-1] or "output"
    return f"{index}_{name}" if total > 1 else name


async def persist_outputs(urls: List[str], job_id: str) -> List[str]:
    """
    Copy delivery URLs (which expire) into the output bucket.

    Returns:
        Canonical locators, in the same order as urls
    """
    locators = []
    for index, url in enumerate(urls):
        name = _object_name(url, index, len(urls))
        data = await download_bytes(url)
        locators.append(
            await storage.upload_file(
                settings.output_bucket,
                f"jobs/{job_id}/{name}",
                data,
                content_type=guess_mime_type(name),
            )
        )
    logger.info(
        f"Persisted {len(locators)} output file(s)",
        extra={"job_id": job_id, "bucket": settings.output_bucket},
    )
    return locators


def _output_from_urls(urls: List[str], metadata: Dict[str, Any]) -> ModelOutput:
    if not urls:
        raise GenerationError("Prediction finished without output")
    return ModelOutput(
        uri=urls[0],
        mime_type=guess_mime_type(urls[0]),
        files=urls,
        metadata=metadata,
    )


class ReplicateAdapter(TargetAdapter):
    """
    Adapter for one Replicate model.

    Args:
        model_ref: Replicate model name, e.g. "google/veo-3.1"
        long_running: Submit as a prediction and poll (True) or run inline (False)
        persist: Copy outputs into the output bucket before reporting them
    """

    def __init__(
        self,
        model_ref: str,
        long_running: bool = True,
        persist: bool = True,
    ):
        self.model_ref = model_ref
        self.long_running = long_running
        self.persist = persist

    async def _collect(self, urls: List[str], metadata: Dict[str, Any], job_id: str) -> ModelOutput:
        if urls and self.persist:
            metadata = {**metadata, "source_urls": urls}
            urls = await persist_outputs(urls, job_id)
        return _output_from_urls(urls, metadata)

    async def _resolve_media(self, value: Any) -> Any:
        if isinstance(value, dict) and "uri" in value:
            return await storage.resolve_url(value["uri"])
        if isinstance(value, list):
            return [await self._resolve_media(item) for item in value]
        return value

    async def build_input(self, request: Dict[str, Any]) -> Dict[str, Any]:
        """Map a validated request onto the model's input dict."""
        inputs: Dict[str, Any] = {}
        for key, value in request.items():
            if key == "model" or value is None:
                continue
            inputs[key] = await self._resolve_media(value)
        return inputs

    async def start(self, request: Dict[str, Any], job_id: str) -> StartResult:
        inputs = await self.build_input(request)
        client = _get_client()

        logger.info(
            f"Submitting to {self.model_ref}",
            extra={"job_id": job_id, "model": self.model_ref, "input_params": ",".join(sorted(inputs))}
        )

        try:
            if self.long_running:
                prediction = await client.predictions.async_create(model=self.model_ref, input=inputs)
                return StartResult(operation_handle=prediction.id)

            output = await client.async_run(self.model_ref, input=inputs)
        except ModelError as e:
            raise GenerationError(f"{self.model_ref} failed: {str(e)}", job_id=job_id) from e
        except ReplicateError as e:
            raise GenerationError(
                f"Failed to submit to {self.model_ref}: {str(e)}", job_id=job_id, code="START_FAILED"
            ) from e

        return StartResult(
            output=await self._collect(output_urls(output), {"model": self.model_ref}, job_id)
        )

    async def poll_status(self, handle: str) -> OperationStatus:
        prediction = await _get_client().predictions.async_get(handle)

        if prediction.status in PENDING_STATUSES:
            return OperationStatus(done=False)

        if prediction.status == "succeeded":
            return OperationStatus(
                done=True,
                data={
                    "id": prediction.id,
                    "output": output_urls(prediction.output),
                    "metrics": prediction.metrics or {},
                },
            )

        code = "CANCELED" if prediction.status == "canceled" else "MODEL_ERROR"
        return OperationStatus(
            done=True,
            error={
                "message": str(prediction.error or f"Prediction {prediction.status}"),
                "code": code,
            },
        )

    async def extract_output(self, data: Dict[str, Any], job_id: str) -> ModelOutput:
        return await self._collect(
            list(data.get("output") or []),
            {"model": self.model_ref, "prediction_id": data.get("id"), "metrics": data.get("metrics", {})},
            job_id,
        )
