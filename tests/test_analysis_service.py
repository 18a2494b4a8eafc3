import json

import pytest

from glowworm.sandbox.orchestrator import SandboxOrchestrator
from glowworm.schemas.analysis import Complexity, MediaDescriptor, MediaKind, ProcessingMethod
from glowworm.services.analysis import MediaAnalysisService, error_stub
from glowworm.services.outcome import Degraded, Success
from glowworm.services.vision import VisionAnalyzer

MB = 1024 * 1024

VISION_REPLY = json.dumps({
    "description": "A lighthouse at dusk",
    "objects": ["lighthouse", "sea"],
    "colors": ["orange", "blue"],
    "mood": "serene",
    "confidence": 0.88,
    "tags": ["lighthouse", "coast"],
})


def _service(vision_client=None, provider=None, sleep=None):
    vision = VisionAnalyzer(vision_client, "gpt-4o-mini")
    orchestrator = None
    if provider is not None:
        orchestrator = SandboxOrchestrator(provider, sleep=sleep)
    return MediaAnalysisService(vision, orchestrator)


@pytest.mark.asyncio
async def test_small_image_is_simple_and_local(openai_factory):
    service = _service(openai_factory(VISION_REPLY))
    descriptor = MediaDescriptor(name="lighthouse.png", size=3 * MB, mime_type="image/png")

    outcome = await service.analyze(b"png", descriptor, "user-1")

    assert isinstance(outcome, Success)
    assert outcome.result.complexity is Complexity.SIMPLE
    assert outcome.result.processing_method is ProcessingMethod.LOCAL
    assert outcome.result.description == "A lighthouse at dusk"
    assert outcome.result.sandbox_id is None


@pytest.mark.asyncio
async def test_image_without_vision_provider_is_degraded():
    descriptor = MediaDescriptor(name="x.jpg", size=1024, mime_type="image/jpeg")

    outcome = await _service().analyze(b"jpg", descriptor, "user-1")

    assert isinstance(outcome, Degraded)
    assert outcome.result.description == "Image uploaded successfully"
    assert outcome.result.processing_method is ProcessingMethod.LOCAL


@pytest.mark.asyncio
async def test_large_video_runs_in_sandbox(fake_provider_factory, no_sleep):
    provider = fake_provider_factory(worker_result={"type": "video", "status": "completed"})
    service = _service(provider=provider, sleep=no_sleep)
    descriptor = MediaDescriptor(name="film.mp4", size=600 * MB, mime_type="video/mp4")

    outcome = await service.analyze(b"mp4", descriptor, "user-1")

    assert isinstance(outcome, Success)
    assert outcome.result.complexity is Complexity.ENTERPRISE
    assert outcome.result.processing_method is ProcessingMethod.SANDBOX
    assert outcome.result.sandbox_id == "sbx-1"
    assert outcome.result.resource_usage is not None


@pytest.mark.asyncio
async def test_video_falls_back_locally_when_provisioning_fails(fake_provider_factory, no_sleep):
    provider = fake_provider_factory(failures=3)
    service = _service(provider=provider, sleep=no_sleep)
    descriptor = MediaDescriptor(name="film.mp4", size=600 * MB, mime_type="video/mp4")

    outcome = await service.analyze(b"mp4", descriptor, "user-1")

    assert isinstance(outcome, Degraded)
    assert outcome.reason.startswith("sandbox failed")
    result = outcome.result
    assert result.processing_method is ProcessingMethod.LOCAL
    assert result.complexity is Complexity.ENTERPRISE
    assert result.description == "Video file: film.mp4"
    assert result.confidence == 0.8
    assert result.tags == ["video", "media", "uploaded", "processed", "analyzed"]
    assert result.sandbox_id is None


@pytest.mark.asyncio
async def test_video_without_sandbox_is_degraded():
    descriptor = MediaDescriptor(name="clip.mov", size=2 * MB, mime_type="video/quicktime")

    outcome = await _service().analyze(b"mov", descriptor, "user-1")

    assert isinstance(outcome, Degraded)
    assert outcome.reason == "sandbox not configured"
    assert outcome.result.complexity is Complexity.MEDIUM


@pytest.mark.asyncio
async def test_audio_and_documents_use_basic_analysis():
    service = _service()

    audio = await service.analyze(b"mp3", MediaDescriptor(name="a.mp3", size=100, mime_type="audio/mpeg"), "u")
    document = await service.analyze(b"pdf", MediaDescriptor(name="r.pdf", size=100, mime_type="application/pdf"), "u")

    assert isinstance(audio, Success)
    assert audio.result.tags == ["mpeg", "audio", "media"]
    assert audio.result.colors == []
    assert isinstance(document, Success)
    assert document.result.description == "File: r.pdf"
    assert document.result.tags == ["pdf", "document"]
    assert document.result.confidence == 0.3


@pytest.mark.asyncio
async def test_custom_method_table_routes_images_to_sandbox(fake_provider_factory, no_sleep):
    provider = fake_provider_factory(worker_result={"ai_analysis": {"description": "big photo", "confidence": 0.95}})
    vision = VisionAnalyzer(None, "gpt-4o-mini")
    table = {(MediaKind.IMAGE, Complexity.ENTERPRISE): ProcessingMethod.SANDBOX}
    service = MediaAnalysisService(vision, SandboxOrchestrator(provider, sleep=no_sleep), table)
    descriptor = MediaDescriptor(name="poster.tiff", size=150 * MB, mime_type="image/tiff")

    outcome = await service.analyze(b"tiff", descriptor, "user-1")

    assert isinstance(outcome, Success)
    assert outcome.result.processing_method is ProcessingMethod.SANDBOX
    assert outcome.result.description == "big photo"


def test_error_stub():
    stub = error_stub(MediaDescriptor(name="broken.bin", size=5))
    assert stub.description == "Failed to analyze: broken.bin"
    assert stub.confidence == 0.1
    assert stub.tags == ["error", "failed"]
    assert stub.processing_method is ProcessingMethod.LOCAL
    assert stub.processing_time == 0
