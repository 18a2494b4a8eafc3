import json

import httpx
import pytest
from httpx import AsyncClient, ASGITransport
from glowworm.main import app
from glowworm.services.video_generation import LumaClient, VideoGenerationError

BASE_URL = "https://luma.test/dream-machine/v1"


def _luma(handler) -> LumaClient:
    http_client = httpx.AsyncClient(
        base_url=BASE_URL,
        headers={"Authorization": "Bearer luma-test"},
        transport=httpx.MockTransport(handler),
    )
    return LumaClient(http_client)


def _luma_backend(requests: list[httpx.Request]):
    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if request.method == "POST":
            return httpx.Response(201, json={"id": "gen-1", "state": "queued", "request": json.loads(request.content)})
        return httpx.Response(200, json={
            "id": "gen-1",
            "state": "completed",
            "assets": {"video": "https://cdn.test/gen-1.mp4", "thumbnail": "https://cdn.test/gen-1.jpg"},
            "request": {"prompt": "a glowing forest"},
        })
    return handler


@pytest.mark.asyncio
async def test_generate_posts_prompt_with_defaults():
    requests: list[httpx.Request] = []
    luma = _luma(_luma_backend(requests))

    generation = await luma.generate("a glowing forest")

    assert generation.id == "gen-1"
    assert generation.state == "queued"
    assert generation.prompt == "a glowing forest"
    assert requests[0].url.path == "/dream-machine/v1/generations"
    assert json.loads(requests[0].content) == {"prompt": "a glowing forest", "aspect_ratio": "16:9", "loop": False}
    assert requests[0].headers["Authorization"] == "Bearer luma-test"
    await luma.close()


@pytest.mark.asyncio
async def test_get_maps_assets():
    luma = _luma(_luma_backend([]))

    generation = await luma.get("gen-1")

    assert generation.state == "completed"
    assert generation.video_url == "https://cdn.test/gen-1.mp4"
    assert generation.thumbnail_url == "https://cdn.test/gen-1.jpg"
    await luma.close()


@pytest.mark.asyncio
async def test_provider_error_status_is_raised():
    luma = _luma(lambda request: httpx.Response(429, json={"detail": "rate limited"}))

    with pytest.raises(VideoGenerationError) as exc_info:
        await luma.generate("anything")

    assert exc_info.value.status_code == 429
    await luma.close()


@pytest.mark.asyncio
async def test_unexpected_payload_is_raised():
    luma = _luma(lambda request: httpx.Response(200, json={"state": "queued"}))

    with pytest.raises(VideoGenerationError, match="unexpected response"):
        await luma.get("gen-2")
    await luma.close()


@pytest.mark.asyncio
async def test_transport_error_is_raised():
    def handler(request):
        raise httpx.ConnectError("connection refused")

    luma = _luma(handler)
    with pytest.raises(VideoGenerationError, match="unreachable"):
        await luma.generate("anything")
    await luma.close()


@pytest.mark.asyncio
async def test_generate_endpoint(install_services):
    install_services(luma=_luma(_luma_backend([])))
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.post("/api/v1/videos/generate", json={"prompt": "a glowing forest"})

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "generation_id": "gen-1",
        "status": "queued",
        "message": "Video generation started",
    }


@pytest.mark.asyncio
async def test_status_endpoint(install_services):
    install_services(luma=_luma(_luma_backend([])))
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/api/v1/videos/gen-1")

    data = response.json()
    assert data["success"] is True
    assert data["status"] == "completed"
    assert data["video_url"] == "https://cdn.test/gen-1.mp4"
    assert data["prompt"] == "a glowing forest"


@pytest.mark.asyncio
async def test_generate_requires_prompt(install_services):
    install_services(luma=_luma(_luma_backend([])))
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.post("/api/v1/videos/generate", json={"prompt": "   "})

    assert response.status_code == 400
    assert response.json() == {"error": "Prompt is required"}


@pytest.mark.asyncio
async def test_generate_without_luma_key():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.post("/api/v1/videos/generate", json={"prompt": "a glowing forest"})

    assert response.status_code == 500
    assert response.json() == {"error": "Luma API key not configured"}


@pytest.mark.asyncio
async def test_provider_failure_maps_to_status(install_services):
    install_services(luma=_luma(lambda request: httpx.Response(503, text="down")))
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/api/v1/videos/gen-9")

    assert response.status_code == 503
    assert response.json() == {"error": "Failed to check video status"}
