from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from modules.targets import lookup
from modules.targets import openai_adapter, replicate_adapter
from shared.errors import GenerationError


class _FileOutput:
    def __init__(self, url):
        self.url = url


@pytest.fixture()
def fake_storage(monkeypatch):
    fake = SimpleNamespace(
        resolve_url=AsyncMock(side_effect=lambda uri: "https://signed.example/" + uri.split("://", 1)[1]),
        upload_file=AsyncMock(side_effect=lambda bucket, path, data, content_type=None: f"gs://{bucket}/{path}"),
    )
    monkeypatch.setattr(replicate_adapter, "storage", fake)
    monkeypatch.setattr(openai_adapter, "storage", fake)
    return fake


@pytest.fixture()
def fake_download(monkeypatch):
    download = AsyncMock(return_value=b"artifact-bytes")
    monkeypatch.setattr(replicate_adapter, "download_bytes", download)
    return download


@pytest.fixture()
def fake_replicate(monkeypatch):
    client = SimpleNamespace(
        predictions=SimpleNamespace(
            async_create=AsyncMock(return_value=SimpleNamespace(id="pred-123")),
            async_get=AsyncMock(),
        ),
        async_run=AsyncMock(),
    )
    monkeypatch.setattr(replicate_adapter, "_get_client", lambda: client)
    return client


@pytest.mark.asyncio
async def test_long_running_start_returns_handle(fake_replicate, fake_storage):
    adapter = lookup("veo-3.1-generate-preview").adapter()
    request = {
        "model": "veo-3.1-generate-preview",
        "prompt": "a cat",
        "duration": 8,
        "image": {"uri": "gs://b/cat.png", "mime_type": "image/png"},
    }

    result = await adapter.start(request, "job-1")

    assert result.operation_handle == "pred-123"
    assert result.output is None
    fake_replicate.predictions.async_create.assert_awaited_once_with(
        model="google/veo-3.1",
        input={"prompt": "a cat", "duration": 8, "image": "https://signed.example/b/cat.png"},
    )


@pytest.mark.asyncio
async def test_immediate_start_persists_output(fake_replicate, fake_storage, fake_download):
    fake_replicate.async_run.return_value = _FileOutput("https://replicate.delivery/out.jpg")
    adapter = lookup("imagen-4.0-fast-generate-001").adapter()

    result = await adapter.start({"model": "imagen-4.0-fast-generate-001", "prompt": "a fox"}, "job-1")

    assert result.operation_handle is None
    assert result.output.uri == "gs://generated-media/jobs/job-1/out.jpg"
    assert result.output.mime_type == "image/jpeg"
    assert result.output.metadata["source_urls"] == ["https://replicate.delivery/out.jpg"]
    fake_download.assert_awaited_once_with("https://replicate.delivery/out.jpg")
    fake_storage.upload_file.assert_awaited_once_with(
        "generated-media", "jobs/job-1/out.jpg", b"artifact-bytes", content_type="image/jpeg"
    )


@pytest.mark.asyncio
async def test_media_list_is_resolved(fake_replicate, fake_storage, fake_download):
    fake_replicate.async_run.return_value = ["https://replicate.delivery/a.png"]
    adapter = lookup("gemini-2.5-flash-image").adapter()

    await adapter.start(
        {
            "model": "gemini-2.5-flash-image",
            "prompt": "merge",
            "image_input": [{"uri": "gs://b/1.png"}, {"uri": "https://x.com/2.png"}],
        },
        "job-1",
    )

    _, kwargs = fake_replicate.async_run.call_args
    assert kwargs["input"]["image_input"] == ["https://signed.example/b/1.png", "https://signed.example/x.com/2.png"]


@pytest.mark.asyncio
async def test_poll_pending(fake_replicate):
    fake_replicate.predictions.async_get.return_value = SimpleNamespace(status="processing")

    status = await lookup("lyria-002").adapter().poll_status("pred-123")

    assert status.done is False


@pytest.mark.asyncio
async def test_poll_succeeded_then_extract(fake_replicate, fake_storage, fake_download):
    fake_replicate.predictions.async_get.return_value = SimpleNamespace(
        id="pred-123",
        status="succeeded",
        output=_FileOutput("https://replicate.delivery/song.wav"),
        metrics={"predict_time": 12.5},
    )
    adapter = lookup("lyria-002").adapter()

    status = await adapter.poll_status("pred-123")
    output = await adapter.extract_output(status.data, "job-1")

    assert status.done is True and status.error is None
    assert output.uri == "gs://generated-media/jobs/job-1/song.wav"
    assert output.files == ["gs://generated-media/jobs/job-1/song.wav"]
    assert output.mime_type == "audio/wav"
    assert output.metadata["prediction_id"] == "pred-123"


@pytest.mark.asyncio
async def test_poll_failed(fake_replicate):
    fake_replicate.predictions.async_get.return_value = SimpleNamespace(
        status="failed", error="NSFW content detected"
    )

    status = await lookup("veo-3.1-generate-preview").adapter().poll_status("pred-123")

    assert status.done is True
    assert status.error == {"message": "NSFW content detected", "code": "MODEL_ERROR"}


@pytest.mark.asyncio
async def test_extract_without_output_raises(fake_replicate):
    with pytest.raises(GenerationError):
        await lookup("veo-3.1-generate-preview").adapter().extract_output({"id": "p", "output": []}, "job-1")


@pytest.mark.asyncio
async def test_text_target(monkeypatch):
    completion = SimpleNamespace(
        model="gemini-2.5-flash",
        choices=[SimpleNamespace(message=SimpleNamespace(content="Once upon a time"), finish_reason="stop")],
        usage=SimpleNamespace(prompt_tokens=5, completion_tokens=4),
    )
    client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=AsyncMock(return_value=completion))))
    monkeypatch.setattr(openai_adapter, "_get_client", lambda: client)

    result = await lookup("gemini-2.5-flash").adapter().start(
        {"model": "gemini-2.5-flash", "prompt": "tell a story", "temperature": 0.2}, "job-1"
    )

    assert result.output.text == "Once upon a time"
    _, kwargs = client.chat.completions.create.call_args
    assert kwargs["messages"] == [{"role": "user", "content": "tell a story"}]
    assert kwargs["temperature"] == 0.2


@pytest.mark.asyncio
async def test_speech_target_uploads_audio(monkeypatch, fake_storage):
    speech = SimpleNamespace(create=AsyncMock(return_value=SimpleNamespace(content=b"RIFF....")))
    client = SimpleNamespace(audio=SimpleNamespace(speech=speech))
    monkeypatch.setattr(openai_adapter, "_get_client", lambda: client)

    result = await lookup("gemini-2.5-flash-preview-tts").adapter().start(
        {"model": "gemini-2.5-flash-preview-tts", "text": "Hello", "voice": "Puck"}, "job-1"
    )

    assert result.output.uri == "gs://generated-media/jobs/job-1/speech.wav"
    fake_storage.upload_file.assert_awaited_once()
    assert speech.create.call_args.kwargs["voice"] == "Puck"


@pytest.mark.asyncio
async def test_multiple_outputs_get_distinct_names(fake_storage, fake_download):
    adapter = replicate_adapter.ReplicateAdapter("google/nano-banana", long_running=False)

    output = await adapter.extract_output(
        {"id": "p", "output": ["https://replicate.delivery/a/output.png", "https://replicate.delivery/b/output.png"]},
        "job-9",
    )

    assert output.files == [
        "gs://generated-media/jobs/job-9/0_output.png",
        "gs://generated-media/jobs/job-9/1_output.png",
    ]


@pytest.mark.asyncio
async def test_outputs_kept_as_delivered_without_persist(fake_download):
    adapter = replicate_adapter.ReplicateAdapter("google/lyria-2", persist=False)

    output = await adapter.extract_output({"id": "p", "output": ["https://replicate.delivery/song.wav"]}, "job-1")

    assert output.uri == "https://replicate.delivery/song.wav"
    fake_download.assert_not_awaited()
